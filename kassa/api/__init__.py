"""HTTP service surface for the till.

Usage:
    from kassa.api.server import create_app

    app = create_app()
"""
