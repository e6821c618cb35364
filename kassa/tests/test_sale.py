"""Tests for finalized sale records and cancellation."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from kassa.domain.cart import aggregate
from kassa.domain.cash import settle_payment
from kassa.domain.errors import InvalidSaleTransition
from kassa.domain.loyalty import LoyaltyConfig, points_earned_for_sale
from kassa.domain.pricing import make_line
from kassa.domain.product import Product
from kassa.domain.sale import Sale, build_sale, cancel_sale

_AT = datetime(2026, 3, 14, 10, 30)


def _sale(bread: Product, wine: Product) -> Sale:
    lines = [make_line(bread, 2), make_line(wine, 1)]
    totals = aggregate(lines)
    return build_sale(
        sale_number="T1",
        created_at=_AT,
        lines=lines,
        totals=totals,
        settlement=settle_payment(totals.total, "cash", Decimal("20")),
        customer_id="c1",
        loyalty_points_earned=170,
        idempotency_key="key-1",
        actor="alice",
    )


def test_build_sale_snapshots_lines(bread: Product, wine: Product) -> None:
    sale = _sale(bread, wine)

    assert sale.status == "finalized"
    assert [line.product_id for line in sale.lines] == ["bread", "wine"]
    assert sale.lines[0].total == Decimal("5.00")
    assert sale.lines[0].vat_rate == Decimal("6")
    assert sale.amount_due == Decimal("17.00")
    assert sale.change == Decimal("3.00")
    assert sale.audit_trail[0].action == "finalized"
    assert sale.audit_trail[0].actor == "alice"


def test_cancel_sale_returns_new_record(bread: Product, wine: Product) -> None:
    sale = _sale(bread, wine)
    cancelled = cancel_sale(sale, "customer changed mind", datetime(2026, 3, 14, 11, 0), actor="bob")

    assert cancelled.is_cancelled
    assert sale.status == "finalized"
    assert len(sale.audit_trail) == 1
    assert [entry.action for entry in cancelled.audit_trail] == ["finalized", "cancelled"]
    assert cancelled.audit_trail[-1].reason == "customer changed mind"


def test_cancelled_sale_cannot_be_cancelled_again(bread: Product, wine: Product) -> None:
    cancelled = cancel_sale(_sale(bread, wine), "oops", _AT)

    with pytest.raises(InvalidSaleTransition):
        cancel_sale(cancelled, "again", _AT)


def test_sale_records_are_immutable(bread: Product, wine: Product) -> None:
    sale = _sale(bread, wine)

    with pytest.raises(AttributeError):
        sale.status = "cancelled"  # type: ignore[misc]


def test_points_earned_for_sale_ignores_cancelled(bread: Product, wine: Product) -> None:
    sale = _sale(bread, wine)
    config = LoyaltyConfig()

    assert points_earned_for_sale(config, sale) == 170
    assert points_earned_for_sale(config, cancel_sale(sale, "void", _AT)) == 0
    assert sale.loyalty_points_delta == 170
