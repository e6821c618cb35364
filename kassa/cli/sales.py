"""CLI handlers for till commands."""

from __future__ import annotations

import argparse
from dataclasses import replace
from decimal import Decimal
from pathlib import Path

from kassa.application.sales import (
    CheckoutRequest,
    apply_automatic_promotion,
    apply_tier_discount,
    cart_from_dict,
    cash_settlement_to_dict,
    complete_sale,
    run_cart_totals,
    sale_to_dict,
    totals_to_dict,
)
from kassa.cli.common import load_catalog, load_json_document, print_json
from kassa.domain.cart import Cart
from kassa.domain.cash import PaymentSplit, compute_change, format_rounding_difference, round_for_cash
from kassa.domain.discount import discount_to_mapping
from kassa.domain.errors import SaleError
from kassa.domain.loyalty import tier_for_spend
from kassa.domain.money import to_decimal
from kassa.runtime import (
    InMemorySaleStore,
    append_sale_entries,
    get_logger,
    get_paths,
    load_loyalty_config,
    load_loyalty_tiers,
    load_promo_code_registry,
    load_promotions,
)

logger = get_logger(__name__)

DEFAULT_JOURNAL = "default"


def _build_cart(args: argparse.Namespace) -> Cart:
    document = load_json_document(args.cart)
    if not isinstance(document, dict):
        raise ValueError("Cart document must be a JSON object")
    cart = cart_from_dict(
        document,
        catalog=load_catalog(args.catalog),
        promo_registry=load_promo_code_registry(),
    )
    if not args.no_promotions:
        apply_automatic_promotion(cart, load_promotions())
    return cart


def cmd_totals(args: argparse.Namespace) -> int:
    """Print the totals of a cart document as JSON."""
    try:
        cart = _build_cart(args)
    except (SaleError, ValueError, KeyError, FileNotFoundError) as exc:
        print(f"Error: {exc}")
        return 1
    print_json(totals_to_dict(run_cart_totals(cart)))
    return 0


def _parse_payments(raw: list[str] | None) -> tuple[PaymentSplit, ...]:
    parts = []
    for item in raw or ():
        method, sep, amount = item.partition("=")
        if not sep:
            raise ValueError(f"--pay expects METHOD=AMOUNT, got {item!r}")
        parts.append(PaymentSplit(method.strip().lower(), to_decimal(amount)))
    return tuple(parts)


def cmd_checkout(args: argparse.Namespace) -> int:
    """Finalize a cart document, print the ticket and optionally journal it."""
    from kassa.domain.journal import sale_to_transaction
    from kassa.receipt.formatter import format_receipt

    try:
        cart = _build_cart(args)
        tendered = to_decimal(args.tendered) if args.tendered is not None else None
        payments = _parse_payments(args.pay)
        multiplier = Decimal("1")
        if args.total_spent is not None:
            tier = tier_for_spend(load_loyalty_tiers(), to_decimal(args.total_spent))
            apply_tier_discount(cart, tier)
            if tier is not None:
                multiplier = tier.points_multiplier
    except (SaleError, ValueError, KeyError, FileNotFoundError) as exc:
        print(f"Error: {exc}")
        return 1

    customer_id = args.customer
    if customer_id is None and args.customer_points is not None:
        customer_id = "walk-in"
    request = CheckoutRequest(
        cart=cart,
        payment_method=args.method,
        amount_tendered=tendered,
        payments=payments,
        customer_id=customer_id,
        customer_points=args.customer_points or 0,
        points_to_redeem=args.points,
        loyalty_config=load_loyalty_config(),
        points_multiplier=multiplier,
        is_invoice=args.invoice,
    )
    completed = complete_sale(request, InMemorySaleStore())
    if completed.status != "ok" or completed.sale is None:
        print(f"Error ({completed.error_kind}): {completed.error}")
        return 1

    sale = completed.sale
    if args.json:
        print_json(sale_to_dict(sale))
    else:
        print(format_receipt(sale), end="")

    if args.journal is not None:
        journal_path = get_paths().sales_journal if args.journal == DEFAULT_JOURNAL else Path(args.journal)
        append_sale_entries(journal_path, [sale_to_transaction(sale)])
        logger.info("Sale %s written to %s", sale.sale_number, journal_path)
    return 0


def cmd_round(args: argparse.Namespace) -> int:
    """Show the cash rounding (and change) for an amount."""
    try:
        settlement = round_for_cash(to_decimal(args.amount))
        if args.tendered is not None:
            tendered = to_decimal(args.tendered)
            change = compute_change(settlement.rounded_amount, tendered)
            settlement = replace(settlement, amount_tendered=tendered, change=change)
    except (SaleError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1

    if args.json:
        print_json(cash_settlement_to_dict(settlement))
        return 0
    print(f"Total:   {settlement.original_amount:.2f}")
    difference = format_rounding_difference(settlement.difference)
    if difference:
        print(f"Rounding: {difference}")
    print(f"Due:     {settlement.rounded_amount:.2f}")
    if settlement.change is not None:
        print(f"Change:  {settlement.change:.2f}")
    return 0


def cmd_promo(args: argparse.Namespace) -> int:
    """Look up a promo code in the configured table."""
    discount = load_promo_code_registry().lookup_promo_code(args.code)
    if discount is None:
        print(f"Unknown promo code: {args.code}")
        return 1
    mapping = discount_to_mapping(discount)
    print(f"{args.code.strip().upper()}: {mapping['type']} {mapping['value']}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the FastAPI till service."""
    import uvicorn

    from kassa.api.server import create_app

    print(f"Starting till service on {args.host}:{args.port}")
    print("Press Ctrl+C to stop")

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0
