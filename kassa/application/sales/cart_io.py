"""JSON document <-> cart/sale conversion for the CLI and HTTP service.

Cart documents look like::

    {
      "lines": [
        {"product": {"id": "p1", "name": "Bread", "price": "2.50", "vat": 6}, "quantity": 2},
        {"product_id": "p2", "quantity": "0.450", "discount": {"type": "percentage", "value": 10}}
      ],
      "order_discount": {"type": "amount", "value": 5},
      "promo_code": "BIENVENUE10",
      "stacking": "order_then_promo",
      "special_prices": {"p1": "2.20"}
    }

Lines either embed the product or reference it by ``product_id`` (resolved
through a catalog). ``promo_code`` is resolved through the registry unless
an explicit ``promo_discount`` is given.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from kassa.application.ports import Catalog, PromoCodeRegistry
from kassa.domain.cart import Cart, CartTotals, VatBreakdownEntry
from kassa.domain.cash import CashSettlement, PaymentSplit, format_rounding_difference
from kassa.domain.discount import discount_from_mapping, discount_to_mapping
from kassa.domain.errors import InvalidDiscount
from kassa.domain.money import to_decimal
from kassa.domain.product import Product
from kassa.domain.sale import Sale


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def _resolve_product(raw_line: Mapping[str, Any], catalog: Catalog | None) -> Product:
    if "product" in raw_line:
        return Product.from_mapping(raw_line["product"])
    product_id = raw_line.get("product_id")
    if product_id is None:
        raise ValueError("Cart line needs either 'product' or 'product_id'")
    if catalog is None:
        raise ValueError(f"Cannot resolve product {product_id!r} without a catalog")
    return catalog.get_product(str(product_id))


def cart_from_dict(
    raw: Mapping[str, Any],
    *,
    catalog: Catalog | None = None,
    promo_registry: PromoCodeRegistry | None = None,
) -> Cart:
    """Build a cart from a JSON document.

    Raises:
        SaleError: On invalid quantities, discounts, prices or promo codes.
        ValueError: On structurally invalid documents.
        KeyError: When the catalog does not know a referenced product.
    """
    cart = Cart(stacking=raw.get("stacking", "order_then_promo"))
    special_prices = {
        str(product_id): to_decimal(price) for product_id, price in (raw.get("special_prices") or {}).items()
    }

    for raw_line in raw.get("lines", []):
        product = _resolve_product(raw_line, catalog)
        cart.add_product(
            product,
            raw_line.get("quantity", 1),
            discount_from_mapping(raw_line.get("discount")),
            special_prices=special_prices,
        )
        if raw_line.get("unit_price") is not None:
            cart.override_price(len(cart.lines) - 1, raw_line["unit_price"])

    cart.set_order_discount(discount_from_mapping(raw.get("order_discount")))

    promo_code = raw.get("promo_code")
    promo_discount = discount_from_mapping(raw.get("promo_discount"))
    if promo_code and promo_discount is None:
        if promo_registry is None:
            raise ValueError("Promo codes cannot be resolved without a registry")
        promo_discount = promo_registry.lookup_promo_code(str(promo_code))
        if promo_discount is None:
            raise InvalidDiscount(f"Unknown or expired promo code: {promo_code!r}")
    if promo_discount is not None:
        cart.apply_promo_code(str(promo_code) if promo_code else None, promo_discount)
    return cart


def payments_from_list(raw: Iterable[Mapping[str, Any]] | None) -> tuple[PaymentSplit, ...]:
    """Parse ``[{"method": "card", "amount": "10.00"}, ...]`` into payment parts."""
    parts = []
    for raw_part in raw or ():
        if not isinstance(raw_part, Mapping) or "method" not in raw_part or "amount" not in raw_part:
            raise ValueError(f"Payment part needs 'method' and 'amount': {raw_part!r}")
        parts.append(PaymentSplit(str(raw_part["method"]), to_decimal(raw_part["amount"])))
    return tuple(parts)


def _breakdown_to_list(entries: tuple[VatBreakdownEntry, ...]) -> list[dict[str, str]]:
    return [
        {
            "rate": format(entry.rate.normalize(), "f"),
            "net": _money(entry.net),
            "vat": _money(entry.vat),
            "gross": _money(entry.gross),
        }
        for entry in entries
    ]


def totals_to_dict(totals: CartTotals) -> dict[str, Any]:
    return {
        "subtotal": _money(totals.subtotal),
        "total_vat": _money(totals.total_vat),
        "total_discount": _money(totals.total_discount),
        "total": _money(totals.total),
        "gross_total": _money(totals.gross_total),
        "lines_subtotal": _money(totals.lines_subtotal),
        "line_discount": _money(totals.line_discount),
        "order_discount": _money(totals.order_discount),
        "promo_discount": _money(totals.promo_discount),
        "loyalty_discount": _money(totals.loyalty_discount),
        "clamped": totals.clamped,
        "vat_breakdown": _breakdown_to_list(totals.vat_breakdown),
    }


def cash_settlement_to_dict(settlement: CashSettlement) -> dict[str, Any]:
    result: dict[str, Any] = {
        "original_amount": _money(settlement.original_amount),
        "rounded_amount": _money(settlement.rounded_amount),
        "difference": _money(settlement.difference),
        "difference_label": format_rounding_difference(settlement.difference),
    }
    if settlement.amount_tendered is not None:
        result["amount_tendered"] = _money(settlement.amount_tendered)
    if settlement.change is not None:
        result["change"] = _money(settlement.change)
    return result


def sale_to_dict(sale: Sale) -> dict[str, Any]:
    return {
        "sale_number": sale.sale_number,
        "created_at": sale.created_at.isoformat(),
        "status": sale.status,
        "payment_method": sale.payment_method,
        "payments": [{"method": part.method, "amount": _money(part.amount)} for part in sale.payments],
        "lines": [
            {
                "product_id": line.product_id,
                "product_name": line.product_name,
                "quantity": str(line.quantity),
                "unit_price": _money(line.unit_price),
                "vat_rate": format(line.vat_rate.normalize(), "f"),
                "discount": discount_to_mapping(line.discount) if line.discount is not None else None,
                "discount_amount": _money(line.discount_amount),
                "subtotal": _money(line.subtotal),
                "vat_amount": _money(line.vat_amount),
                "total": _money(line.total),
            }
            for line in sale.lines
        ],
        "subtotal": _money(sale.subtotal),
        "total_vat": _money(sale.total_vat),
        "total_discount": _money(sale.total_discount),
        "total": _money(sale.total),
        "amount_due": _money(sale.amount_due),
        "rounding_difference": _money(sale.rounding_difference),
        "amount_tendered": _money(sale.amount_tendered) if sale.amount_tendered is not None else None,
        "change": _money(sale.change) if sale.change is not None else None,
        "vat_breakdown": _breakdown_to_list(sale.vat_breakdown),
        "customer_id": sale.customer_id,
        "is_invoice": sale.is_invoice,
        "promo_code": sale.promo_code,
        "loyalty_points_redeemed": sale.loyalty_points_redeemed,
        "loyalty_discount": _money(sale.loyalty_discount),
        "loyalty_points_earned": sale.loyalty_points_earned,
        "idempotency_key": sale.idempotency_key,
    }
