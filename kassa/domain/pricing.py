"""Line item pricing.

Listed prices include VAT. A line is priced as::

    gross    = round(price * quantity)
    net      = gross - discount            (never below zero)
    vat      = round(net - net / (1 + rate / 100))
    subtotal = net - vat                   (ex-VAT)
    total    = net

so ``subtotal + vat_amount == total`` holds exactly for every line.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Literal

from kassa.domain.discount import Discount, applied_discount_amount
from kassa.domain.errors import InvalidPrice, InvalidQuantity, PriceRequired
from kassa.domain.money import HUNDRED, Number, round_cents, to_decimal
from kassa.domain.product import Product

logger = logging.getLogger(f"kassa_local.{__name__}")

PriceSource = Literal["catalog", "override", "special"]

# Scales report weights in grams; anything finer is noise.
WEIGHT_DECIMAL_PLACES = 3


@dataclass(frozen=True)
class LinePricing:
    """Computed money figures for one cart line."""

    gross: Decimal
    discount_amount: Decimal
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    clamped: bool = False


def normalize_quantity(product: Product, quantity: Number) -> Decimal:
    """Validate ``quantity`` against the product's pricing mode.

    Raises:
        InvalidQuantity: If the quantity is not a positive number, is
            fractional for a unit-priced product, or has more than three
            decimal places for a weighed product.
    """
    try:
        qty = to_decimal(quantity)
    except ValueError as exc:
        raise InvalidQuantity(f"Quantity for {product.name!r} is not a number: {quantity!r}") from exc

    if qty <= 0:
        raise InvalidQuantity(f"Quantity for {product.name!r} must be positive, got {qty}")

    if product.pricing_mode == "unit":
        if qty != qty.to_integral_value():
            raise InvalidQuantity(f"{product.name!r} is sold per unit; quantity must be a whole number, got {qty}")
        return Decimal(int(qty))

    exponent = qty.normalize().as_tuple().exponent
    if not isinstance(exponent, int) or -exponent > WEIGHT_DECIMAL_PLACES:
        raise InvalidQuantity(
            f"Weight for {product.name!r} supports at most {WEIGHT_DECIMAL_PLACES} decimals, got {qty}"
        )
    return qty


def _effective_price(product: Product, unit_price: Decimal | None) -> Decimal:
    if unit_price is not None:
        if unit_price < 0:
            raise InvalidPrice(f"Price override for {product.name!r} must not be negative")
        return unit_price
    if product.price <= 0:
        raise PriceRequired(f"{product.name!r} has no price set; an explicit price override is required")
    return product.price


def price_line(
    product: Product,
    quantity: Number,
    discount: Discount | None = None,
    *,
    unit_price: Decimal | None = None,
) -> LinePricing:
    """Compute subtotal, VAT and total for a single line.

    Args:
        product: Catalog product being sold.
        quantity: Units, or kilograms for weighed products.
        discount: Optional line discount.
        unit_price: Explicit price replacing the catalog price (override
            or customer special price).

    Raises:
        InvalidQuantity, PriceRequired, InvalidPrice
    """
    qty = normalize_quantity(product, quantity)
    price = _effective_price(product, unit_price)

    gross = round_cents(price * qty)
    discount_amount, clamped = applied_discount_amount(discount, gross)
    if clamped:
        logger.debug("Line discount on %s clamped to gross %s", product.id, gross)
    net = gross - discount_amount

    vat_amount = round_cents(net - net / (1 + product.vat_rate / HUNDRED))
    subtotal = net - vat_amount
    return LinePricing(
        gross=gross,
        discount_amount=discount_amount,
        subtotal=subtotal,
        vat_amount=vat_amount,
        total=net,
        clamped=clamped,
    )


@dataclass(frozen=True)
class CartLine:
    """One product/quantity/discount entry in a cart."""

    product: Product
    quantity: Decimal
    discount: Discount | None = None
    unit_price: Decimal | None = None
    price_source: PriceSource = "catalog"

    @property
    def effective_price(self) -> Decimal:
        return self.unit_price if self.unit_price is not None else self.product.price

    @property
    def pricing(self) -> LinePricing:
        return price_line(self.product, self.quantity, self.discount, unit_price=self.unit_price)


def make_line(
    product: Product,
    quantity: Number = 1,
    discount: Discount | None = None,
) -> CartLine:
    """Create a validated catalog-priced line."""
    return CartLine(product=product, quantity=normalize_quantity(product, quantity), discount=discount)


def override_price_for_line(line: CartLine, new_price: Number) -> CartLine:
    """Return a copy of ``line`` priced at ``new_price``.

    This is the explicit path for products sold without a catalog price;
    the catalog itself is never modified.
    """
    try:
        price = to_decimal(new_price)
    except ValueError as exc:
        raise InvalidPrice(f"Price override is not a number: {new_price!r}") from exc
    if price < 0:
        raise InvalidPrice(f"Price override for {line.product.name!r} must not be negative")
    logger.info("Price override on %s: %s -> %s", line.product.id, line.product.price, price)
    return replace(line, unit_price=price, price_source="override")


def special_price_line(
    product: Product,
    quantity: Number,
    special_prices: Mapping[str, Decimal] | None,
    discount: Discount | None = None,
) -> CartLine:
    """Create a line using the customer's special price for ``product`` if one exists."""
    line = make_line(product, quantity, discount)
    if not special_prices or product.id not in special_prices:
        return line
    price = to_decimal(special_prices[product.id])
    if price < 0:
        raise InvalidPrice(f"Special price for {product.name!r} must not be negative")
    return replace(line, unit_price=price, price_source="special")
