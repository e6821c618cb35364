"""Checkout workflow orchestration.

Runs the pricing stages in order (cart totals → loyalty redemption → cash
settlement) and turns every engine error into a typed result so nothing
crosses the workflow boundary as an exception.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Literal

from kassa.domain.cart import Cart, CartTotals, reduce_totals, require_non_empty
from kassa.domain.cash import PaymentSplit, settle_payment, settle_split_payment
from kassa.domain.errors import LoyaltyDisabled, SaleError
from kassa.domain.loyalty import LoyaltyConfig, LoyaltyTier, apply_redemption, points_earned
from kassa.domain.promotions import Promotion, PromotionMatch, select_best_promotion
from kassa.domain.sale import Sale, build_sale
from kassa.runtime import get_logger

logger = get_logger(__name__)

CheckoutStatus = Literal["ok", "error"]


@dataclass(frozen=True)
class CheckoutRequest:
    """Inputs for finalizing a cart into a sale.

    When ``payments`` is given the sale is split across those parts and
    ``payment_method`` is not used.
    """

    cart: Cart
    payment_method: str
    amount_tendered: Decimal | None = None
    payments: tuple[PaymentSplit, ...] = ()
    customer_id: str | None = None
    customer_points: int = 0
    points_to_redeem: int = 0
    loyalty_config: LoyaltyConfig | None = None
    points_multiplier: Decimal = Decimal("1")
    is_invoice: bool = False
    sale_number: str | None = None
    idempotency_key: str | None = None
    created_at: datetime | None = None
    actor: str | None = None


@dataclass(frozen=True)
class CheckoutResult:
    """Outcome of a checkout attempt."""

    status: CheckoutStatus
    sale: Sale | None = None
    error: str | None = None
    error_kind: str | None = None


def default_sale_number(at: datetime) -> str:
    """Timestamped sale number with a random suffix, unique within a second."""
    return f"{at:T%Y%m%d-%H%M%S}-{uuid.uuid4().hex[:6].upper()}"


def run_cart_totals(cart: Cart) -> CartTotals:
    """Preview totals while the cart is being built (empty carts are fine)."""
    return cart.totals()


def apply_automatic_promotion(
    cart: Cart,
    promotions: Iterable[Promotion],
    at: datetime | None = None,
) -> PromotionMatch | None:
    """Put the best running promotion on the cart when no promo code is set.

    Returns the applied match, or None when the cart already carries a promo
    discount or nothing applies.
    """
    if cart.promo_discount is not None:
        return None
    match = select_best_promotion(cart.lines, promotions, at or datetime.now())
    if match is not None:
        cart.apply_promo_code(None, match.discount)
        logger.info("Applied promotion %r: -%s", match.promotion.name, match.discount.value)
    return match


def apply_tier_discount(cart: Cart, tier: LoyaltyTier | None) -> bool:
    """Give the cart the tier's order discount unless it already has one."""
    if tier is None or tier.discount is None or cart.order_discount is not None:
        return False
    cart.set_order_discount(tier.discount)
    logger.debug("Applied %s tier discount of %s%%", tier.name, tier.discount_percentage)
    return True


def _finalize(request: CheckoutRequest) -> Sale:
    cart = request.cart
    cart.ensure_building()
    require_non_empty(cart.lines)
    totals = cart.totals()

    redeemed = 0
    if request.points_to_redeem > 0:
        config = request.loyalty_config
        if config is None:
            raise LoyaltyDisabled("No loyalty program is configured")
        redemption = apply_redemption(
            config,
            request.points_to_redeem,
            totals.total,
            customer_points=request.customer_points if request.customer_id else 0,
        )
        totals = reduce_totals(totals, redemption.discount)
        redeemed = redemption.points

    if request.payments:
        settlement = settle_split_payment(totals.total, request.payments, request.amount_tendered)
    else:
        settlement = settle_payment(totals.total, request.payment_method, request.amount_tendered)

    earned = 0
    if request.customer_id and request.loyalty_config is not None:
        earned = points_earned(request.loyalty_config, totals.total, request.points_multiplier)

    created_at = request.created_at or datetime.now()
    return build_sale(
        sale_number=request.sale_number or default_sale_number(created_at),
        created_at=created_at,
        lines=cart.lines,
        totals=totals,
        settlement=settlement,
        customer_id=request.customer_id,
        is_invoice=request.is_invoice,
        promo_code=cart.promo_code,
        loyalty_points_redeemed=redeemed,
        loyalty_points_earned=earned,
        idempotency_key=request.idempotency_key or cart.checkout_key,
        actor=request.actor,
    )


def finalize_checkout(request: CheckoutRequest) -> CheckoutResult:
    """Build the sale without touching the cart status.

    Used when the sale still has to be committed; the caller marks the cart
    checked out once the commit went through.
    """
    try:
        sale = _finalize(request)
    except SaleError as exc:
        logger.warning("Checkout rejected (%s): %s", exc.kind, exc)
        return CheckoutResult(status="error", error=str(exc), error_kind=exc.kind)
    except ValueError as exc:
        logger.warning("Checkout rejected: %s", exc)
        return CheckoutResult(status="error", error=str(exc), error_kind="invalid_request")
    return CheckoutResult(status="ok", sale=sale)


def run_checkout(request: CheckoutRequest) -> CheckoutResult:
    """Finalize the cart into an immutable sale.

    The cart is marked checked out only when every stage succeeds; on
    failure it stays editable so the cashier can correct and retry.
    """
    result = finalize_checkout(request)
    if result.sale is None:
        return result
    request.cart.mark_checked_out()
    logger.info("Sale %s finalized: %s %s", result.sale.sale_number, result.sale.payment_method, result.sale.amount_due)
    return result
