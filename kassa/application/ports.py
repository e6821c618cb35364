"""Collaborator contracts the sale workflows depend on.

Implementations live in ``kassa.runtime`` (in-memory and HTTP backends).
"""

from __future__ import annotations

from typing import Protocol

from kassa.domain.discount import Discount
from kassa.domain.product import Product
from kassa.domain.sale import Sale, SaleCommit


class Catalog(Protocol):
    def get_product(self, product_id: str) -> Product:
        """Return the product, raising KeyError when it does not exist."""
        ...


class LoyaltyBalanceStore(Protocol):
    def get_points(self, customer_id: str) -> int: ...

    def adjust_points(self, customer_id: str, delta: int) -> None: ...


class SaleStore(Protocol):
    def commit_sale(self, sale: Sale) -> SaleCommit:
        """Persist a finalized sale once.

        Committing an ``idempotency_key`` that is already stored must not
        create a second record; it returns the first record with
        ``created=False``.

        Raises:
            BackendUnavailable: If the store cannot be reached.
        """
        ...

    def record_cancellation(self, sale: Sale) -> None: ...


class PromoCodeRegistry(Protocol):
    def lookup_promo_code(self, code: str) -> Discount | None: ...
