"""Core domain models and pure computations for the kassa project.

This package provides the sale computation engine:
- Line pricing: price_line, CartLine, override_price_for_line
- Cart aggregation: aggregate, Cart, CartTotals
- Loyalty: LoyaltyConfig, compute_max_redeemable, apply_redemption
- Cash settlement: round_for_cash, compute_change, settle_payment
- Finalized sales: Sale, build_sale, cancel_sale

Usage:
    from kassa.domain import Cart, Product, settle_payment
"""

from kassa.domain.cart import Cart, CartTotals, VatBreakdownEntry, aggregate, reduce_totals, require_non_empty
from kassa.domain.cash import CashSettlement, PaymentSettlement, compute_change, round_for_cash, settle_payment
from kassa.domain.discount import Discount, FixedAmountDiscount, PercentageDiscount, discount_from_mapping
from kassa.domain.errors import (
    EmptyCart,
    InsufficientPayment,
    InvalidDiscount,
    InvalidPaymentSplit,
    InvalidPrice,
    InvalidQuantity,
    InvalidRedemption,
    InvalidSaleTransition,
    LoyaltyDisabled,
    PriceRequired,
    SaleError,
)
from kassa.domain.loyalty import (
    LoyaltyConfig,
    LoyaltyRedemption,
    LoyaltyTier,
    apply_redemption,
    compute_max_redeemable,
    points_earned,
    points_earned_for_sale,
    tier_for_spend,
)
from kassa.domain.pricing import CartLine, LinePricing, make_line, override_price_for_line, price_line
from kassa.domain.product import PaymentMethod, Product
from kassa.domain.sale import Sale, SaleLine, build_sale, cancel_sale

__all__ = [
    # Products and discounts
    "Product",
    "PaymentMethod",
    "Discount",
    "PercentageDiscount",
    "FixedAmountDiscount",
    "discount_from_mapping",
    # Pricing
    "CartLine",
    "LinePricing",
    "make_line",
    "price_line",
    "override_price_for_line",
    # Cart
    "Cart",
    "CartTotals",
    "VatBreakdownEntry",
    "aggregate",
    "reduce_totals",
    "require_non_empty",
    # Loyalty
    "LoyaltyConfig",
    "LoyaltyRedemption",
    "LoyaltyTier",
    "compute_max_redeemable",
    "apply_redemption",
    "points_earned",
    "points_earned_for_sale",
    "tier_for_spend",
    # Cash
    "CashSettlement",
    "PaymentSettlement",
    "round_for_cash",
    "compute_change",
    "settle_payment",
    # Sales
    "Sale",
    "SaleLine",
    "build_sale",
    "cancel_sale",
    # Errors
    "SaleError",
    "InvalidQuantity",
    "InvalidDiscount",
    "InvalidPrice",
    "PriceRequired",
    "EmptyCart",
    "InvalidRedemption",
    "LoyaltyDisabled",
    "InsufficientPayment",
    "InvalidPaymentSplit",
    "InvalidSaleTransition",
]
