"""Decimal helpers for money and quantities.

All amounts are ``Decimal`` values in euro. Floats are only accepted at the
boundary and are converted through their shortest string form so that
``12.43`` becomes ``Decimal("12.43")`` rather than its binary expansion.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Decimal | int | float | str


def to_decimal(value: Number) -> Decimal:
    """Convert a caller-supplied number into a Decimal.

    Raises:
        ValueError: If the value is a bool, is not numeric, or is not finite.
    """
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    else:
        raise ValueError(f"Expected a number, got {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Expected a finite number, got {value!r}")
    return result


def round_cents(amount: Decimal) -> Decimal:
    """Quantize to cents with conventional half-up rounding."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value: Number) -> Decimal:
    return round_cents(to_decimal(value))


def format_eur(amount: Decimal) -> str:
    """Format an amount for display, e.g. ``12.40€``."""
    return f"{round_cents(amount):.2f}€"
