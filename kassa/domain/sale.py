"""Finalized sale records and their cancellation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Literal

from kassa.domain.cart import CartTotals, VatBreakdownEntry
from kassa.domain.cash import PaymentSettlement, PaymentSplit
from kassa.domain.discount import Discount
from kassa.domain.errors import InvalidSaleTransition
from kassa.domain.money import ZERO
from kassa.domain.pricing import CartLine
from kassa.domain.product import SettlementMethod

SaleStatus = Literal["finalized", "cancelled"]


@dataclass(frozen=True)
class SaleLine:
    """A cart line frozen at checkout, with its discount baked in."""

    product_id: str
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    vat_rate: Decimal
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    discount: Discount | None = None
    discount_amount: Decimal = ZERO
    product_barcode: str | None = None
    price_source: str = "catalog"

    @classmethod
    def from_cart_line(cls, line: CartLine) -> SaleLine:
        pricing = line.pricing
        return cls(
            product_id=line.product.id,
            product_name=line.product.name,
            quantity=line.quantity,
            unit_price=line.effective_price,
            vat_rate=line.product.vat_rate,
            subtotal=pricing.subtotal,
            vat_amount=pricing.vat_amount,
            total=pricing.total,
            discount=line.discount,
            discount_amount=pricing.discount_amount,
            product_barcode=line.product.barcode,
            price_source=line.price_source,
        )


@dataclass(frozen=True)
class SaleAuditEntry:
    at: datetime
    action: str
    reason: str = ""
    actor: str | None = None


@dataclass(frozen=True)
class Sale:
    """Immutable record of a completed checkout.

    ``total`` is the exact amount after all discounts; ``amount_due`` is
    what was actually settled (the rounded amount for cash).
    """

    sale_number: str
    created_at: datetime
    lines: tuple[SaleLine, ...]
    subtotal: Decimal
    total_vat: Decimal
    total_discount: Decimal
    total: Decimal
    payment_method: SettlementMethod
    amount_due: Decimal
    payments: tuple[PaymentSplit, ...] = ()
    vat_breakdown: tuple[VatBreakdownEntry, ...] = ()
    rounding_difference: Decimal = ZERO
    amount_tendered: Decimal | None = None
    change: Decimal | None = None
    customer_id: str | None = None
    is_invoice: bool = False
    promo_code: str | None = None
    loyalty_points_redeemed: int = 0
    loyalty_discount: Decimal = ZERO
    loyalty_points_earned: int = 0
    idempotency_key: str | None = None
    status: SaleStatus = "finalized"
    audit_trail: tuple[SaleAuditEntry, ...] = ()

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    @property
    def loyalty_points_delta(self) -> int:
        """Net change to the customer's balance caused by this sale."""
        return self.loyalty_points_earned - self.loyalty_points_redeemed


@dataclass(frozen=True)
class SaleCommit:
    """What a sale store did with a commit.

    ``created`` is False when the idempotency key was already known; ``sale``
    is then the record stored by the first commit.
    """

    sale_id: str
    sale: Sale
    created: bool = True


def build_sale(
    *,
    sale_number: str,
    created_at: datetime,
    lines: Sequence[CartLine],
    totals: CartTotals,
    settlement: PaymentSettlement,
    customer_id: str | None = None,
    is_invoice: bool = False,
    promo_code: str | None = None,
    loyalty_points_redeemed: int = 0,
    loyalty_points_earned: int = 0,
    idempotency_key: str | None = None,
    actor: str | None = None,
) -> Sale:
    return Sale(
        sale_number=sale_number,
        created_at=created_at,
        lines=tuple(SaleLine.from_cart_line(line) for line in lines),
        subtotal=totals.subtotal,
        total_vat=totals.total_vat,
        total_discount=totals.total_discount,
        total=totals.total,
        payment_method=settlement.payment_method,
        amount_due=settlement.amount_due,
        payments=settlement.splits,
        vat_breakdown=totals.vat_breakdown,
        rounding_difference=settlement.rounding_difference,
        amount_tendered=settlement.amount_tendered,
        change=settlement.change,
        customer_id=customer_id,
        is_invoice=is_invoice,
        promo_code=promo_code,
        loyalty_points_redeemed=loyalty_points_redeemed,
        loyalty_discount=totals.loyalty_discount,
        loyalty_points_earned=loyalty_points_earned,
        idempotency_key=idempotency_key,
        audit_trail=(SaleAuditEntry(at=created_at, action="finalized", actor=actor),),
    )


def cancel_sale(sale: Sale, reason: str, at: datetime, actor: str | None = None) -> Sale:
    """Return a cancelled copy of ``sale``; the original record is untouched.

    Raises:
        InvalidSaleTransition: If the sale is already cancelled.
    """
    if sale.status != "finalized":
        raise InvalidSaleTransition(f"Sale {sale.sale_number} is {sale.status}; only finalized sales can be cancelled")
    entry = SaleAuditEntry(at=at, action="cancelled", reason=reason, actor=actor)
    return replace(sale, status="cancelled", audit_trail=sale.audit_trail + (entry,))
