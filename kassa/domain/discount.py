"""Discount variants shared by line, order and promo-code reductions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from kassa.domain.errors import InvalidDiscount
from kassa.domain.money import HUNDRED, ZERO, round_cents, to_decimal


@dataclass(frozen=True)
class PercentageDiscount:
    """Reduce the base by ``value`` percent. Values above 100 clamp at zero."""

    value: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _validated_magnitude(self.value))


@dataclass(frozen=True)
class FixedAmountDiscount:
    """Reduce the base by a fixed euro amount, never below zero."""

    value: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _validated_magnitude(self.value))


Discount = PercentageDiscount | FixedAmountDiscount

# Accepted spellings of the ``type`` field in caller payloads.
_PERCENTAGE_KINDS = {"percentage", "percent"}
_FIXED_KINDS = {"fixed_amount", "amount", "fixed"}


def _validated_magnitude(value: object) -> Decimal:
    try:
        magnitude = to_decimal(value)  # type: ignore[arg-type]
    except ValueError as exc:
        raise InvalidDiscount(f"Discount value is not a number: {value!r}") from exc
    if magnitude < 0:
        raise InvalidDiscount(f"Discount value must be non-negative, got {magnitude}")
    return magnitude


def raw_discount_amount(discount: Discount, base: Decimal) -> Decimal:
    """Return the reduction a discount asks for on ``base``, before capping."""
    if isinstance(discount, PercentageDiscount):
        return round_cents(base * discount.value / HUNDRED)
    if isinstance(discount, FixedAmountDiscount):
        return round_cents(discount.value)
    raise TypeError(f"Unsupported discount type: {type(discount).__name__}")


def applied_discount_amount(discount: Discount | None, base: Decimal) -> tuple[Decimal, bool]:
    """Return ``(amount, clamped)`` for ``discount`` applied to ``base``.

    The amount never exceeds ``base``; ``clamped`` tells whether the request
    had to be cut down to keep the result at or above zero.
    """
    if discount is None or base <= 0:
        return ZERO, False
    requested = raw_discount_amount(discount, base)
    if requested > base:
        return base, True
    return requested, False


def discount_from_mapping(raw: Mapping[str, object] | None) -> Discount | None:
    """Parse ``{"type": ..., "value": ...}`` payloads into a discount variant."""
    if raw is None:
        return None
    kind = str(raw.get("type", raw.get("kind", ""))).strip().lower()
    value = raw.get("value", 0)
    if kind in _PERCENTAGE_KINDS:
        return PercentageDiscount(value)  # type: ignore[arg-type]
    if kind in _FIXED_KINDS:
        return FixedAmountDiscount(value)  # type: ignore[arg-type]
    raise InvalidDiscount(f"Unknown discount type: {kind!r}")


def discount_to_mapping(discount: Discount) -> dict[str, str]:
    if isinstance(discount, PercentageDiscount):
        return {"type": "percentage", "value": str(discount.value)}
    if isinstance(discount, FixedAmountDiscount):
        return {"type": "fixed_amount", "value": str(discount.value)}
    raise TypeError(f"Unsupported discount type: {type(discount).__name__}")
