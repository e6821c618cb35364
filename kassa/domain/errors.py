"""Caller-facing validation errors raised by the sale computation engine.

Every error is recoverable: the caller translates it into a message and
re-prompts. ``kind`` is a stable identifier used by the application layer
and the HTTP service.
"""

from __future__ import annotations


class SaleError(Exception):
    """Base class for all sale computation errors."""

    kind = "sale_error"


class InvalidQuantity(SaleError):
    """Quantity is non-positive, fractional for a unit product, or too precise."""

    kind = "invalid_quantity"


class InvalidDiscount(SaleError):
    """Discount magnitude is negative or its kind is unknown."""

    kind = "invalid_discount"


class InvalidPrice(SaleError):
    """An explicit price override is negative or not a number."""

    kind = "invalid_price"


class PriceRequired(SaleError):
    """The product has no price set and no override was supplied."""

    kind = "price_required"


class EmptyCart(SaleError):
    kind = "empty_cart"


class InvalidRedemption(SaleError):
    """Requested points are below the program minimum or above the allowed maximum."""

    kind = "invalid_redemption"


class LoyaltyDisabled(SaleError):
    kind = "loyalty_disabled"


class InsufficientPayment(SaleError):
    kind = "insufficient_payment"


class InvalidSaleTransition(SaleError):
    """A cart or sale was asked to move to a state it cannot reach."""

    kind = "invalid_sale_transition"


class InvalidPaymentSplit(SaleError):
    """A split payment has a non-positive part or pays more than the total."""

    kind = "invalid_payment_split"
