"""Belgian cash rounding and payment settlement.

Cash totals are rounded to the nearest 5 cents (half-up), e.g.:

- 12.41€ → 12.40€
- 12.42€ → 12.40€
- 12.43€ → 12.45€
- 12.44€ → 12.45€
- 12.46€ → 12.45€
- 12.47€ → 12.45€
- 12.48€ → 12.50€

Card and other electronic payments settle at the exact total. The rounding
difference must be printed on the receipt. When a sale is split across
several methods only the part left for cash is rounded.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal

from kassa.domain.errors import InsufficientPayment, InvalidPaymentSplit
from kassa.domain.money import ZERO, Number, round_cents, to_decimal
from kassa.domain.product import PaymentMethod, SettlementMethod, validate_payment_method

CASH_ROUNDING_STEPS_PER_EURO = Decimal("20")


@dataclass(frozen=True)
class CashSettlement:
    original_amount: Decimal
    rounded_amount: Decimal
    difference: Decimal
    amount_tendered: Decimal | None = None
    change: Decimal | None = None


@dataclass(frozen=True)
class PaymentSplit:
    """Part of a sale paid with one method."""

    method: PaymentMethod
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", validate_payment_method(self.method))
        amount = round_cents(to_decimal(self.amount))
        if amount <= 0:
            raise InvalidPaymentSplit(f"Payment part for {self.method} must be positive, got {amount}")
        object.__setattr__(self, "amount", amount)


@dataclass(frozen=True)
class PaymentSettlement:
    """How a sale total is settled.

    ``rounding``, ``amount_tendered`` and ``change`` are only set when cash
    is involved. ``splits`` lists what each method pays and always sums to
    ``amount_due``.
    """

    payment_method: SettlementMethod
    amount_due: Decimal
    rounding: CashSettlement | None = None
    amount_tendered: Decimal | None = None
    change: Decimal | None = None
    splits: tuple[PaymentSplit, ...] = ()

    @property
    def rounding_difference(self) -> Decimal:
        return self.rounding.difference if self.rounding is not None else ZERO


def round_for_cash(total: Number) -> CashSettlement:
    """Round ``total`` to the nearest 0.05 for a cash payment."""
    original = to_decimal(total)
    steps = (original * CASH_ROUNDING_STEPS_PER_EURO).to_integral_value(rounding=ROUND_HALF_UP)
    rounded = round_cents(steps / CASH_ROUNDING_STEPS_PER_EURO)
    return CashSettlement(original_amount=original, rounded_amount=rounded, difference=rounded - original)


def compute_change(rounded_amount: Number, amount_tendered: Number) -> Decimal:
    """Return change due for a cash payment.

    Raises:
        InsufficientPayment: If less than the amount due was tendered.
    """
    due = to_decimal(rounded_amount)
    tendered = to_decimal(amount_tendered)
    if tendered < due:
        raise InsufficientPayment(f"Tendered {round_cents(tendered)} is less than the amount due {round_cents(due)}")
    return round_cents(tendered - due)


def _cash_settlement(rounding: CashSettlement, amount_tendered: Number | None) -> CashSettlement:
    if amount_tendered is None:
        return rounding
    tendered = round_cents(to_decimal(amount_tendered))
    return replace(rounding, amount_tendered=tendered, change=compute_change(rounding.rounded_amount, tendered))


def settle_payment(
    total: Number,
    payment_method: str,
    amount_tendered: Number | None = None,
) -> PaymentSettlement:
    """Settle ``total`` for ``payment_method``.

    For cash the amount due is the rounded total and, when a tendered
    amount is given, change is computed against it. Other methods pay the
    exact total and ignore ``amount_tendered``.
    """
    method = validate_payment_method(payment_method)
    exact = to_decimal(total)
    if method != "cash":
        splits = (PaymentSplit(method, exact),) if exact > 0 else ()
        return PaymentSettlement(payment_method=method, amount_due=exact, splits=splits)

    rounding = _cash_settlement(round_for_cash(exact), amount_tendered)
    due = rounding.rounded_amount
    return PaymentSettlement(
        payment_method=method,
        amount_due=due,
        rounding=rounding,
        amount_tendered=rounding.amount_tendered,
        change=rounding.change,
        splits=(PaymentSplit(method, due),) if due > 0 else (),
    )


def settle_split_payment(
    total: Number,
    splits: Iterable[PaymentSplit],
    amount_tendered: Number | None = None,
) -> PaymentSettlement:
    """Settle ``total`` across several payment methods.

    Non-cash parts pay exact amounts. What they leave open is rounded for
    cash, and the cash parts must cover exactly that rounded remainder.
    ``amount_tendered`` is the cash handed over, compared against the cash
    part to compute change.

    Raises:
        InvalidPaymentSplit: If there are no parts or they pay too much.
        InsufficientPayment: If the parts leave an amount unpaid, or the
            tendered cash does not cover the cash part.
    """
    parts = tuple(splits)
    if not parts:
        raise InvalidPaymentSplit("A split payment needs at least one part")
    exact = round_cents(to_decimal(total))

    non_cash = sum((part.amount for part in parts if part.method != "cash"), ZERO)
    cash_paid = sum((part.amount for part in parts if part.method == "cash"), ZERO)
    if non_cash > exact:
        raise InvalidPaymentSplit(f"Non-cash parts pay {non_cash}, more than the total {exact}")

    if not cash_paid:
        if non_cash < exact:
            raise InsufficientPayment(f"Payment parts cover {non_cash} of {exact}; {exact - non_cash} is unpaid")
        methods = {part.method for part in parts}
        method: SettlementMethod = parts[0].method if len(methods) == 1 else "mixed"
        return PaymentSettlement(payment_method=method, amount_due=exact, splits=parts)

    rounding = round_for_cash(exact - non_cash)
    if cash_paid < rounding.rounded_amount:
        raise InsufficientPayment(f"Cash part {cash_paid} is less than the {rounding.rounded_amount} left to pay")
    if cash_paid > rounding.rounded_amount:
        raise InvalidPaymentSplit(f"Cash part {cash_paid} is more than the {rounding.rounded_amount} left to pay")

    rounding = _cash_settlement(rounding, amount_tendered)
    return PaymentSettlement(
        payment_method="cash" if not non_cash else "mixed",
        amount_due=non_cash + rounding.rounded_amount,
        rounding=rounding,
        amount_tendered=rounding.amount_tendered,
        change=rounding.change,
        splits=parts,
    )


def format_rounding_difference(difference: Decimal) -> str:
    """Format the rounding adjustment for the receipt; empty when zero."""
    if difference == 0:
        return ""
    sign = "+" if difference > 0 else ""
    return f"{sign}{round_cents(difference):.2f}€"
