"""In-process implementations of the application ports.

Used by the CLI, the local service and tests. Nothing here survives a
restart.
"""

from __future__ import annotations

from collections.abc import Iterable

from kassa.domain.product import Product
from kassa.domain.sale import Sale, SaleCommit
from kassa.runtime.logging import get_logger

logger = get_logger(__name__)


class InMemoryCatalog:
    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._products = {product.id: product for product in products}

    def __len__(self) -> int:
        return len(self._products)

    def add(self, product: Product) -> None:
        self._products[product.id] = product

    def get_product(self, product_id: str) -> Product:
        try:
            return self._products[product_id]
        except KeyError:
            raise KeyError(f"Unknown product: {product_id}") from None


class InMemoryLoyaltyStore:
    """Customer point balances keyed by customer id.

    Balances never go below zero; a larger negative delta empties the
    balance and is logged.
    """

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self._balances = dict(balances or {})

    def get_points(self, customer_id: str) -> int:
        return self._balances.get(customer_id, 0)

    def adjust_points(self, customer_id: str, delta: int) -> None:
        current = self._balances.get(customer_id, 0)
        updated = current + delta
        if updated < 0:
            logger.warning("Loyalty balance of %s would go negative (%d); clamping to 0", customer_id, updated)
            updated = 0
        self._balances[customer_id] = updated


class InMemorySaleStore:
    """Sale journal with at-most-once creation per idempotency key."""

    def __init__(self) -> None:
        self.sales: dict[str, Sale] = {}
        self.cancellations: list[Sale] = []
        self._by_key: dict[str, str] = {}

    def commit_sale(self, sale: Sale) -> SaleCommit:
        if sale.idempotency_key and sale.idempotency_key in self._by_key:
            existing = self._by_key[sale.idempotency_key]
            logger.info("Duplicate commit for key %s; returning %s", sale.idempotency_key, existing)
            return SaleCommit(sale_id=existing, sale=self.sales[existing], created=False)
        sale_id = sale.sale_number
        if sale_id in self.sales:
            sale_id = f"{sale_id}-{len(self.sales) + 1}"
        self.sales[sale_id] = sale
        if sale.idempotency_key:
            self._by_key[sale.idempotency_key] = sale_id
        return SaleCommit(sale_id=sale_id, sale=sale)

    def record_cancellation(self, sale: Sale) -> None:
        self.cancellations.append(sale)
