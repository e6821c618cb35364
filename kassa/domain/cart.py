"""Cart aggregation and the in-progress cart builder."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Literal

from kassa.domain.discount import Discount, applied_discount_amount
from kassa.domain.errors import EmptyCart, InvalidSaleTransition
from kassa.domain.money import ZERO, Number, round_cents
from kassa.domain.pricing import CartLine, normalize_quantity, override_price_for_line, special_price_line
from kassa.domain.product import Product

logger = logging.getLogger(f"kassa_local.{__name__}")

DiscountStacking = Literal["order_then_promo", "promo_then_order"]
CartStatus = Literal["building", "abandoned", "checked_out"]

DEFAULT_STACKING: DiscountStacking = "order_then_promo"


@dataclass(frozen=True)
class VatBreakdownEntry:
    """Amounts collected at one VAT rate. ``gross == net + vat``."""

    rate: Decimal
    net: Decimal
    vat: Decimal
    gross: Decimal


@dataclass(frozen=True)
class CartTotals:
    """Aggregated money figures for a cart.

    ``subtotal + total_vat == total`` and
    ``total == gross_total - total_discount`` always hold.
    """

    subtotal: Decimal = ZERO
    total_vat: Decimal = ZERO
    total_discount: Decimal = ZERO
    total: Decimal = ZERO
    gross_total: Decimal = ZERO
    lines_subtotal: Decimal = ZERO
    line_discount: Decimal = ZERO
    order_discount: Decimal = ZERO
    promo_discount: Decimal = ZERO
    loyalty_discount: Decimal = ZERO
    clamped: bool = False
    vat_breakdown: tuple[VatBreakdownEntry, ...] = ()


def require_non_empty(lines: Sequence[CartLine]) -> None:
    if not lines:
        raise EmptyCart("Cannot check out an empty cart")


def _rescale(
    entries: Sequence[VatBreakdownEntry],
    base_total: Decimal,
    base_vat: Decimal,
    new_total: Decimal,
) -> tuple[Decimal, tuple[VatBreakdownEntry, ...]]:
    """Scale VAT and per-rate buckets from ``base_total`` down to ``new_total``.

    Rounding remainders go to the largest bucket so the breakdown sums to
    the returned VAT and to ``new_total`` exactly.
    """
    if base_total <= 0 or new_total <= 0:
        return ZERO, tuple(VatBreakdownEntry(e.rate, ZERO, ZERO, ZERO) for e in entries)
    if new_total == base_total:
        return base_vat, tuple(entries)

    total_vat = round_cents(base_vat * new_total / base_total)
    scaled = [
        [e.rate, round_cents(e.gross * new_total / base_total), round_cents(e.vat * new_total / base_total)]
        for e in entries
    ]
    if scaled:
        largest = max(range(len(scaled)), key=lambda i: entries[i].gross)
        scaled[largest][1] += new_total - sum(s[1] for s in scaled)
        scaled[largest][2] += total_vat - sum(s[2] for s in scaled)
    breakdown = tuple(VatBreakdownEntry(rate=r, net=g - v, vat=v, gross=g) for r, g, v in scaled)
    return total_vat, breakdown


def aggregate(
    lines: Sequence[CartLine],
    order_discount: Discount | None = None,
    promo_discount: Discount | None = None,
    *,
    stacking: DiscountStacking = DEFAULT_STACKING,
) -> CartTotals:
    """Fold priced lines and cart-level discounts into cart totals.

    Order-level and promo-code discounts are applied one after the other
    to the running total after line discounts, in the order named by
    ``stacking``. VAT is rescaled proportionally to the reduced total.
    An empty cart yields zeroed totals.
    """
    gross_total = ZERO
    lines_subtotal = ZERO
    lines_vat = ZERO
    lines_total = ZERO
    line_discount = ZERO
    clamped = False
    buckets: dict[Decimal, list[Decimal]] = {}

    for line in lines:
        pricing = line.pricing
        gross_total += pricing.gross
        lines_subtotal += pricing.subtotal
        lines_vat += pricing.vat_amount
        lines_total += pricing.total
        line_discount += pricing.discount_amount
        clamped = clamped or pricing.clamped
        bucket = buckets.setdefault(line.product.vat_rate, [ZERO, ZERO])
        bucket[0] += pricing.total
        bucket[1] += pricing.vat_amount

    if stacking == "order_then_promo":
        sequence = (("order", order_discount), ("promo", promo_discount))
    elif stacking == "promo_then_order":
        sequence = (("promo", promo_discount), ("order", order_discount))
    else:
        raise ValueError(f"Unknown discount stacking policy: {stacking!r}")

    running = lines_total
    reductions = {"order": ZERO, "promo": ZERO}
    for name, discount in sequence:
        amount, was_clamped = applied_discount_amount(discount, running)
        reductions[name] = amount
        running -= amount
        clamped = clamped or was_clamped

    if clamped:
        logger.info("Cart total clamped at zero (requested discounts exceed the amount due)")

    entries = [
        VatBreakdownEntry(rate=rate, net=gross - vat, vat=vat, gross=gross)
        for rate, (gross, vat) in sorted(buckets.items())
    ]
    total_vat, breakdown = _rescale(entries, lines_total, lines_vat, running)

    return CartTotals(
        subtotal=running - total_vat,
        total_vat=total_vat,
        total_discount=line_discount + reductions["order"] + reductions["promo"],
        total=running,
        gross_total=gross_total,
        lines_subtotal=lines_subtotal,
        line_discount=line_discount,
        order_discount=reductions["order"],
        promo_discount=reductions["promo"],
        clamped=clamped,
        vat_breakdown=breakdown,
    )


def reduce_totals(totals: CartTotals, amount: Decimal) -> CartTotals:
    """Apply a post-aggregation reduction (loyalty redemption) to ``totals``."""
    applied = min(round_cents(amount), totals.total)
    if applied <= 0:
        return totals
    new_total = totals.total - applied
    total_vat, breakdown = _rescale(totals.vat_breakdown, totals.total, totals.total_vat, new_total)
    return replace(
        totals,
        subtotal=new_total - total_vat,
        total_vat=total_vat,
        total_discount=totals.total_discount + applied,
        total=new_total,
        loyalty_discount=totals.loyalty_discount + applied,
        clamped=totals.clamped or round_cents(amount) > totals.total,
        vat_breakdown=breakdown,
    )


@dataclass
class Cart:
    """Cart being built at the till.

    Lines are immutable; editing a line replaces it. Once abandoned or
    checked out the cart rejects further changes. ``checkout_key`` stays the
    same for the life of the cart, so a checkout retried after a failed
    commit reuses it as its idempotency key.
    """

    lines: list[CartLine] = field(default_factory=list)
    order_discount: Discount | None = None
    promo_code: str | None = None
    promo_discount: Discount | None = None
    stacking: DiscountStacking = DEFAULT_STACKING
    status: CartStatus = "building"
    checkout_key: str = field(default_factory=lambda: uuid.uuid4().hex)

    def ensure_building(self) -> None:
        if self.status != "building":
            raise InvalidSaleTransition(f"Cart is {self.status}; it can no longer be changed")

    def add_product(
        self,
        product: Product,
        quantity: Number = 1,
        discount: Discount | None = None,
        special_prices: Mapping[str, Decimal] | None = None,
    ) -> CartLine:
        self.ensure_building()
        line = special_price_line(product, quantity, special_prices, discount)
        self.lines.append(line)
        logger.debug("Added %s x%s to cart", product.id, line.quantity)
        return line

    def remove_line(self, index: int) -> CartLine:
        self.ensure_building()
        return self.lines.pop(index)

    def update_quantity(self, index: int, quantity: Number) -> CartLine:
        self.ensure_building()
        line = self.lines[index]
        self.lines[index] = replace(line, quantity=normalize_quantity(line.product, quantity))
        return self.lines[index]

    def apply_line_discount(self, index: int, discount: Discount | None) -> CartLine:
        self.ensure_building()
        self.lines[index] = replace(self.lines[index], discount=discount)
        return self.lines[index]

    def clear_line_discount(self, index: int) -> CartLine:
        return self.apply_line_discount(index, None)

    def override_price(self, index: int, new_price: Number) -> CartLine:
        self.ensure_building()
        self.lines[index] = override_price_for_line(self.lines[index], new_price)
        return self.lines[index]

    def set_order_discount(self, discount: Discount | None) -> None:
        self.ensure_building()
        self.order_discount = discount

    def apply_promo_code(self, code: str | None, discount: Discount) -> None:
        self.ensure_building()
        self.promo_code = code
        self.promo_discount = discount

    def clear_promo_code(self) -> None:
        self.ensure_building()
        self.promo_code = None
        self.promo_discount = None

    def clear(self) -> None:
        self.ensure_building()
        self.lines.clear()
        self.order_discount = None
        self.promo_code = None
        self.promo_discount = None

    def abandon(self) -> None:
        self.ensure_building()
        self.status = "abandoned"

    def mark_checked_out(self) -> None:
        self.ensure_building()
        self.status = "checked_out"

    def totals(self) -> CartTotals:
        return aggregate(self.lines, self.order_discount, self.promo_discount, stacking=self.stacking)
