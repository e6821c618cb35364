"""Sale workflows."""

from kassa.application.sales.cart_io import (
    cart_from_dict,
    cash_settlement_to_dict,
    payments_from_list,
    sale_to_dict,
    totals_to_dict,
)
from kassa.application.sales.checkout import (
    CheckoutRequest,
    CheckoutResult,
    apply_automatic_promotion,
    apply_tier_discount,
    finalize_checkout,
    run_cart_totals,
    run_checkout,
)
from kassa.application.sales.completion import (
    BACKEND_UNAVAILABLE,
    CompletedSale,
    cancel_completed_sale,
    complete_sale,
)

__all__ = [
    "CheckoutRequest",
    "CheckoutResult",
    "run_checkout",
    "run_cart_totals",
    "apply_automatic_promotion",
    "apply_tier_discount",
    "finalize_checkout",
    "CompletedSale",
    "BACKEND_UNAVAILABLE",
    "complete_sale",
    "cancel_completed_sale",
    "cart_from_dict",
    "payments_from_list",
    "totals_to_dict",
    "sale_to_dict",
    "cash_settlement_to_dict",
]
