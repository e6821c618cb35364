"""Tests for the checkout workflow."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from kassa.application.sales import (
    CheckoutRequest,
    apply_automatic_promotion,
    apply_tier_discount,
    finalize_checkout,
    run_cart_totals,
    run_checkout,
)
from kassa.domain.cart import Cart
from kassa.domain.cash import PaymentSplit
from kassa.domain.discount import FixedAmountDiscount, PercentageDiscount
from kassa.domain.loyalty import LoyaltyConfig, LoyaltyTier
from kassa.domain.product import Product
from kassa.domain.promotions import Promotion

_AT = datetime(2026, 3, 14, 10, 30)


def _cart(*items: tuple[Product, int]) -> Cart:
    cart = Cart()
    for product, quantity in items:
        cart.add_product(product, quantity)
    return cart


def test_cash_checkout_finalizes_and_closes_cart(bread: Product, wine: Product) -> None:
    cart = _cart((bread, 2), (wine, 1))
    result = run_checkout(
        CheckoutRequest(cart=cart, payment_method="cash", amount_tendered=Decimal("20"), created_at=_AT)
    )

    assert result.status == "ok"
    assert result.sale is not None
    assert result.sale.total == Decimal("17.00")
    assert result.sale.change == Decimal("3.00")
    assert result.sale.sale_number.startswith("T20260314-103000-")
    assert result.sale.idempotency_key == cart.checkout_key
    assert cart.status == "checked_out"


def test_cash_rounding_scenario() -> None:
    product = Product(id="p", name="Item", price=Decimal("12.43"))
    result = run_checkout(
        CheckoutRequest(cart=_cart((product, 1)), payment_method="cash", amount_tendered=Decimal("20.00"))
    )

    assert result.sale is not None
    assert result.sale.total == Decimal("12.43")
    assert result.sale.amount_due == Decimal("12.45")
    assert result.sale.rounding_difference == Decimal("0.02")
    assert result.sale.change == Decimal("7.55")


def test_card_checkout_has_no_rounding() -> None:
    product = Product(id="p", name="Item", price=Decimal("12.43"))
    result = run_checkout(CheckoutRequest(cart=_cart((product, 1)), payment_method="card"))

    assert result.sale is not None
    assert result.sale.amount_due == Decimal("12.43")
    assert result.sale.rounding_difference == Decimal("0")
    assert result.sale.change is None


def test_empty_cart_is_an_error_result() -> None:
    cart = Cart()
    result = run_checkout(CheckoutRequest(cart=cart, payment_method="cash"))

    assert result.status == "error"
    assert result.error_kind == "empty_cart"
    assert cart.status == "building"


def test_insufficient_payment_keeps_cart_open(bread: Product) -> None:
    cart = _cart((bread, 2))
    result = run_checkout(CheckoutRequest(cart=cart, payment_method="cash", amount_tendered=Decimal("4.00")))

    assert result.status == "error"
    assert result.error_kind == "insufficient_payment"
    assert cart.status == "building"


def test_unknown_payment_method_is_invalid_request(bread: Product) -> None:
    result = run_checkout(CheckoutRequest(cart=_cart((bread, 1)), payment_method="bitcoin"))

    assert result.status == "error"
    assert result.error_kind == "invalid_request"


def test_loyalty_redemption_and_earning(bread: Product, wine: Product, loyalty_config: LoyaltyConfig) -> None:
    result = run_checkout(
        CheckoutRequest(
            cart=_cart((bread, 2), (wine, 1)),
            payment_method="card",
            customer_id="c1",
            customer_points=1000,
            points_to_redeem=500,
            loyalty_config=loyalty_config,
        )
    )

    assert result.status == "ok"
    sale = result.sale
    assert sale is not None
    assert sale.loyalty_discount == Decimal("5.00")
    assert sale.total == Decimal("12.00")
    assert sale.total_discount == Decimal("5.00")
    assert sale.subtotal + sale.total_vat == sale.total
    assert sale.loyalty_points_redeemed == 500
    assert sale.loyalty_points_earned == 120
    assert sale.loyalty_points_delta == -380


def test_redemption_without_program_is_rejected(bread: Product) -> None:
    result = run_checkout(
        CheckoutRequest(cart=_cart((bread, 40)), payment_method="card", customer_id="c1", points_to_redeem=100)
    )

    assert result.error_kind == "loyalty_disabled"


def test_anonymous_redemption_is_rejected(bread: Product, loyalty_config: LoyaltyConfig) -> None:
    result = run_checkout(
        CheckoutRequest(
            cart=_cart((bread, 40)),
            payment_method="card",
            customer_points=1000,
            points_to_redeem=100,
            loyalty_config=loyalty_config,
        )
    )

    assert result.error_kind == "invalid_redemption"


def test_no_points_earned_without_customer(bread: Product, loyalty_config: LoyaltyConfig) -> None:
    result = run_checkout(
        CheckoutRequest(cart=_cart((bread, 2)), payment_method="card", loyalty_config=loyalty_config)
    )

    assert result.sale is not None
    assert result.sale.loyalty_points_earned == 0


def test_run_cart_totals_accepts_empty_cart() -> None:
    assert run_cart_totals(Cart()).total == Decimal("0.00")


def test_automatic_promotion_applies_when_no_code(bread: Product, wine: Product) -> None:
    cart = _cart((bread, 2), (wine, 1))
    promotions = [
        Promotion(name="Drinks week", type="percentage", value=Decimal("20"), categories=frozenset({"drinks"}))
    ]

    match = apply_automatic_promotion(cart, promotions, _AT)

    assert match is not None
    assert cart.totals().promo_discount == Decimal("2.40")
    assert cart.totals().total == Decimal("14.60")


def test_automatic_promotion_does_not_replace_promo_code(bread: Product) -> None:
    cart = _cart((bread, 4))
    cart.apply_promo_code("BIENVENUE10", PercentageDiscount(Decimal("10")))
    promotions = [Promotion(name="Big", type="fixed", value=Decimal("5"))]

    assert apply_automatic_promotion(cart, promotions, _AT) is None
    assert cart.promo_code == "BIENVENUE10"


def test_sale_numbers_differ_within_the_same_second(bread: Product) -> None:
    first = run_checkout(CheckoutRequest(cart=_cart((bread, 1)), payment_method="card", created_at=_AT))
    second = run_checkout(CheckoutRequest(cart=_cart((bread, 1)), payment_method="card", created_at=_AT))

    assert first.sale is not None and second.sale is not None
    assert first.sale.sale_number != second.sale.sale_number


def test_checked_out_cart_cannot_be_sold_twice(bread: Product) -> None:
    cart = _cart((bread, 1))
    assert run_checkout(CheckoutRequest(cart=cart, payment_method="card")).status == "ok"

    again = run_checkout(CheckoutRequest(cart=cart, payment_method="card"))

    assert again.status == "error"
    assert again.error_kind == "invalid_sale_transition"


def test_finalize_checkout_leaves_cart_open(bread: Product) -> None:
    cart = _cart((bread, 1))

    first = finalize_checkout(CheckoutRequest(cart=cart, payment_method="card"))
    second = finalize_checkout(CheckoutRequest(cart=cart, payment_method="card"))

    assert first.sale is not None and second.sale is not None
    assert cart.status == "building"
    assert first.sale.idempotency_key == second.sale.idempotency_key == cart.checkout_key


def test_split_payment_checkout() -> None:
    product = Product(id="p", name="Item", price=Decimal("12.43"))
    result = run_checkout(
        CheckoutRequest(
            cart=_cart((product, 1)),
            payment_method="cash",
            payments=(PaymentSplit("card", Decimal("10.00")), PaymentSplit("cash", Decimal("2.45"))),
            amount_tendered=Decimal("5.00"),
        )
    )

    assert result.status == "ok"
    sale = result.sale
    assert sale is not None
    assert sale.payment_method == "mixed"
    assert sale.amount_due == Decimal("12.45")
    assert sale.rounding_difference == Decimal("0.02")
    assert sale.change == Decimal("2.55")
    assert [(p.method, p.amount) for p in sale.payments] == [("card", Decimal("10.00")), ("cash", Decimal("2.45"))]


def test_split_payment_leaving_amount_unpaid_is_rejected(bread: Product) -> None:
    cart = _cart((bread, 2))
    result = run_checkout(
        CheckoutRequest(cart=cart, payment_method="card", payments=(PaymentSplit("card", Decimal("4.00")),))
    )

    assert result.error_kind == "insufficient_payment"
    assert cart.status == "building"


def test_tier_discount_fills_empty_order_discount(bread: Product) -> None:
    silver = LoyaltyTier("Silver", Decimal("500"), discount_percentage=Decimal("10"))
    cart = _cart((bread, 4))

    assert apply_tier_discount(cart, silver) is True
    assert cart.totals().order_discount == Decimal("1.00")

    manual = _cart((bread, 4))
    manual.set_order_discount(FixedAmountDiscount(Decimal("0.50")))
    assert apply_tier_discount(manual, silver) is False
    assert apply_tier_discount(_cart((bread, 1)), LoyaltyTier("Bronze", Decimal("0"))) is False
