"""Commit finalized sales and cancellations through the store ports."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from kassa.application.ports import LoyaltyBalanceStore, SaleStore
from kassa.application.sales.checkout import CheckoutRequest, finalize_checkout
from kassa.domain.errors import SaleError
from kassa.domain.sale import Sale, cancel_sale
from kassa.runtime import BackendUnavailable, get_logger

logger = get_logger(__name__)

CompletionStatus = Literal["ok", "error"]

BACKEND_UNAVAILABLE = "backend_unavailable"


@dataclass(frozen=True)
class CompletedSale:
    """Outcome of checkout plus persistence.

    ``replayed`` is True when the store already held a sale for the
    idempotency key; ``sale`` is then the stored one and no points moved.
    """

    status: CompletionStatus
    sale: Sale | None = None
    sale_id: str | None = None
    points_delta: int = 0
    replayed: bool = False
    error: str | None = None
    error_kind: str | None = None


def complete_sale(
    request: CheckoutRequest,
    sale_store: SaleStore,
    loyalty_store: LoyaltyBalanceStore | None = None,
) -> CompletedSale:
    """Finalize, persist and settle loyalty points for one checkout.

    The cart is marked checked out only after the store accepted the sale,
    so a commit that fails on the backend can be retried with the same cart
    (and therefore the same idempotency key). The customer balance is
    adjusted once by ``earned - redeemed``, on the commit that created the
    sale.
    """
    result = finalize_checkout(request)
    if result.sale is None:
        return CompletedSale(status="error", error=result.error, error_kind=result.error_kind)
    sale = result.sale

    try:
        commit = sale_store.commit_sale(sale)
    except BackendUnavailable as exc:
        logger.error("Sale %s not committed: %s", sale.sale_number, exc)
        return CompletedSale(status="error", sale=sale, error=str(exc), error_kind=BACKEND_UNAVAILABLE)
    request.cart.mark_checked_out()

    if not commit.created:
        logger.info("Sale for key %s already committed as %s", sale.idempotency_key, commit.sale_id)
        return CompletedSale(
            status="ok",
            sale=commit.sale,
            sale_id=commit.sale_id,
            points_delta=commit.sale.loyalty_points_delta,
            replayed=True,
        )

    logger.info("Sale %s committed: %s %s", sale.sale_number, sale.payment_method, sale.amount_due)
    delta = sale.loyalty_points_delta
    if sale.customer_id and loyalty_store is not None and delta:
        try:
            loyalty_store.adjust_points(sale.customer_id, delta)
        except BackendUnavailable as exc:
            logger.error("Sale %s committed but balance of %s not updated: %s", sale.sale_number, sale.customer_id, exc)
            return CompletedSale(
                status="error",
                sale=sale,
                sale_id=commit.sale_id,
                error=f"Sale committed but loyalty balance not updated: {exc}",
                error_kind=BACKEND_UNAVAILABLE,
            )
        logger.debug("Adjusted loyalty balance of %s by %d", sale.customer_id, delta)
    return CompletedSale(status="ok", sale=sale, sale_id=commit.sale_id, points_delta=delta)


def cancel_completed_sale(
    sale: Sale,
    reason: str,
    sale_store: SaleStore,
    loyalty_store: LoyaltyBalanceStore | None = None,
    *,
    at: datetime | None = None,
    actor: str | None = None,
) -> CompletedSale:
    """Cancel a committed sale and reverse the loyalty points it moved."""
    try:
        cancelled = cancel_sale(sale, reason, at or datetime.now(), actor=actor)
    except SaleError as exc:
        logger.warning("Cancellation rejected (%s): %s", exc.kind, exc)
        return CompletedSale(status="error", sale=sale, error=str(exc), error_kind=exc.kind)

    try:
        sale_store.record_cancellation(cancelled)
    except BackendUnavailable as exc:
        logger.error("Cancellation of %s not recorded: %s", sale.sale_number, exc)
        return CompletedSale(status="error", sale=sale, error=str(exc), error_kind=BACKEND_UNAVAILABLE)
    delta = -sale.loyalty_points_delta
    if sale.customer_id and loyalty_store is not None and delta:
        loyalty_store.adjust_points(sale.customer_id, delta)
    logger.info("Sale %s cancelled: %s", sale.sale_number, reason)
    return CompletedSale(status="ok", sale=cancelled, points_delta=delta)
