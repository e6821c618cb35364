"""Tests for the HTTP backend adapter using httpx.MockTransport."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

import httpx
import pytest

from kassa.domain.cart import aggregate
from kassa.domain.cash import PaymentSplit, settle_payment, settle_split_payment
from kassa.domain.pricing import make_line
from kassa.domain.product import Product
from kassa.domain.sale import Sale, build_sale, cancel_sale
from kassa.runtime import BackendClient, BackendUnavailable

_BASE = "https://backend.test/rest/v1"


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> BackendClient:
    return BackendClient(_BASE, api_key="secret", client=httpx.Client(transport=httpx.MockTransport(handler)))


def _sale() -> Sale:
    lines = [make_line(Product(id="bread", name="Bread", price=Decimal("2.50"), vat_rate=Decimal("6")), 2)]
    totals = aggregate(lines)
    return build_sale(
        sale_number="T1",
        created_at=datetime(2026, 3, 14, 10, 30),
        lines=lines,
        totals=totals,
        settlement=settle_payment(totals.total, "cash", Decimal("10")),
        idempotency_key="key-1",
    )


def test_get_product_maps_catalog_row() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/rest/v1/products"
        assert request.url.params["id"] == "eq.cheese"
        assert request.headers["apikey"] == "secret"
        return httpx.Response(
            200,
            json=[{"id": "cheese", "name": "Cheese", "price": "18.90", "type": "weight", "vat_rate": 6}],
        )

    product = _client(handler).get_product("cheese")

    assert product.pricing_mode == "weight"
    assert product.price == Decimal("18.90")
    assert product.vat_rate == Decimal("6")


def test_get_product_unknown_raises_key_error() -> None:
    client = _client(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(KeyError):
        client.get_product("nope")


def test_adjust_points_reads_then_writes_balance() -> None:
    calls: list[tuple[str, dict[str, object] | None]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            calls.append(("GET", None))
            return httpx.Response(200, json=[{"loyalty_points": 120}])
        calls.append((request.method, json.loads(request.content)))
        return httpx.Response(204)

    client = _client(handler)
    assert client.get_points("c1") == 120
    client.adjust_points("c1", -200)

    assert calls[-1] == ("PATCH", {"loyalty_points": 0})


def test_commit_sale_sends_idempotency_key() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers.get("idempotency-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json=[{"id": "abc-123"}])

    commit = _client(handler).commit_sale(_sale())

    assert commit.sale_id == "abc-123"
    assert commit.created
    assert seen["key"] == "key-1"
    body = seen["body"]
    assert isinstance(body, dict)
    assert body["total"] == "5.00"
    assert body["amount_paid"] == "10.00"
    assert body["change_amount"] == "5.00"
    assert body["payments"] == [{"method": "cash", "amount": "5.00"}]
    assert body["sale_items"][0]["product_id"] == "bread"


def test_commit_sale_replay_returns_stored_row() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=[{"id": "abc-123", "sale_number": "T0", "date": "2026-03-14T10:29:00"}],
        )

    commit = _client(handler).commit_sale(_sale())

    assert not commit.created
    assert commit.sale_id == "abc-123"
    assert commit.sale.sale_number == "T0"
    assert commit.sale.created_at == datetime(2026, 3, 14, 10, 29)


def test_commit_sale_posts_every_payment_part() -> None:
    lines = [make_line(Product(id="bread", name="Bread", price=Decimal("12.43"), vat_rate=Decimal("6")), 1)]
    totals = aggregate(lines)
    sale = build_sale(
        sale_number="T2",
        created_at=datetime(2026, 3, 14, 10, 30),
        lines=lines,
        totals=totals,
        settlement=settle_split_payment(
            totals.total, [PaymentSplit("card", Decimal("10.00")), PaymentSplit("cash", Decimal("2.45"))]
        ),
    )
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json=[{"id": "abc-124"}])

    _client(handler).commit_sale(sale)

    body = seen["body"]
    assert isinstance(body, dict)
    assert body["payment_method"] == "mixed"
    assert body["payments"] == [
        {"method": "card", "amount": "10.00"},
        {"method": "cash", "amount": "2.45"},
    ]


def test_record_cancellation_patches_status() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["filter"] = request.url.params["sale_number"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(204)

    _client(handler).record_cancellation(cancel_sale(_sale(), "void", datetime(2026, 3, 14, 11, 0)))

    assert seen == {
        "method": "PATCH",
        "filter": "eq.T1",
        "body": {"status": "cancelled", "cancellation_reason": "void"},
    }


def test_error_status_raises_backend_unavailable() -> None:
    client = _client(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(BackendUnavailable):
        client.get_points("c1")


def test_transport_error_raises_backend_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BackendUnavailable):
        _client(handler).commit_sale(_sale())
