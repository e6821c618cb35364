#!/usr/bin/env python3

import argparse
from collections.abc import Sequence

from kassa.domain.product import PAYMENT_METHODS


def _add_cart_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("cart", help="Cart JSON document (use - for stdin)")
    parser.add_argument("--catalog", default=None, help="JSON list of products for lines given by product_id")
    parser.add_argument("--no-promotions", action="store_true", help="Do not apply automatic promotions")


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Till sale engine CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  totals <cart.json>         Show cart totals as JSON
  checkout <cart.json> --method cash --tendered 20
                             Finalize a sale and print the ticket
  checkout <cart.json> --pay card=10 --pay cash=2.45
                             Split the payment across methods
  round <amount> [--tendered]
                             Cash rounding to the nearest 0.05
  promo <code>               Look up a promo code
  serve [--host --port]      Start the till HTTP service

Notes:
  config/loyalty.toml, config/promo_codes.toml and config/promotions.toml
  are read from $KASSA_HOME (or the current directory).
""",
    )

    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR (overrides KASSA_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # totals command
    totals_parser = subparsers.add_parser("totals", help="Show cart totals")
    _add_cart_arguments(totals_parser)

    # checkout command
    checkout_parser = subparsers.add_parser("checkout", help="Finalize a cart into a sale")
    _add_cart_arguments(checkout_parser)
    checkout_parser.add_argument("--method", default="cash", choices=PAYMENT_METHODS, help="Payment method")
    checkout_parser.add_argument("--tendered", default=None, help="Cash handed over by the customer")
    checkout_parser.add_argument(
        "--pay",
        action="append",
        default=None,
        metavar="METHOD=AMOUNT",
        help="Split the payment; repeat per part, e.g. --pay card=10 --pay cash=2.45",
    )
    checkout_parser.add_argument("--customer", default=None, help="Customer id for loyalty points")
    checkout_parser.add_argument("--customer-points", type=int, default=None, help="Customer point balance")
    checkout_parser.add_argument("--points", type=int, default=0, help="Loyalty points to redeem")
    checkout_parser.add_argument("--total-spent", default=None, help="Customer lifetime spend, selects the loyalty tier")
    checkout_parser.add_argument("--invoice", action="store_true", help="Mark the sale as an invoice")
    checkout_parser.add_argument("--json", action="store_true", help="Print the sale as JSON instead of a ticket")
    checkout_parser.add_argument(
        "--journal",
        nargs="?",
        const="default",
        default=None,
        help="Append the sale to a beancount journal (default: journal/sales.beancount)",
    )

    # round command
    round_parser = subparsers.add_parser("round", help="Cash rounding for an amount")
    round_parser.add_argument("amount", help="Amount to round")
    round_parser.add_argument("--tendered", default=None, help="Cash handed over by the customer")
    round_parser.add_argument("--json", action="store_true", help="Print JSON")

    # promo command
    promo_parser = subparsers.add_parser("promo", help="Look up a promo code")
    promo_parser.add_argument("code", help="Promo code")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the till HTTP service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to bind to (default: 8080)")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.log_level:
        from kassa.runtime import set_log_level

        set_log_level(args.log_level)

    if args.command == "totals":
        from kassa.cli.sales import cmd_totals

        return cmd_totals(args)
    elif args.command == "checkout":
        from kassa.cli.sales import cmd_checkout

        return cmd_checkout(args)
    elif args.command == "round":
        from kassa.cli.sales import cmd_round

        return cmd_round(args)
    elif args.command == "promo":
        from kassa.cli.sales import cmd_promo

        return cmd_promo(args)
    elif args.command == "serve":
        from kassa.cli.sales import cmd_serve

        return cmd_serve(args)

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
