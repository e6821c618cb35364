"""Command-line interface for the till.

Usage:
    kassa totals <cart.json>
    kassa checkout <cart.json> --method cash --tendered 20
    kassa round <amount> [--tendered 20]
    kassa promo <code>
    kassa serve [--host --port]
"""
