"""HTTP adapter for the hosted shop backend (PostgREST-style REST API).

Implements the catalog, loyalty balance and sale store ports against
``products``, ``customers`` and ``sales`` tables.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx

from kassa.domain.product import Product
from kassa.domain.sale import Sale, SaleCommit
from kassa.runtime.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


class BackendUnavailable(RuntimeError):
    """Raised when the backend cannot be reached or returns an error."""


def _money(value: Decimal | None) -> str | None:
    return f"{value:.2f}" if value is not None else None


def sale_payload(sale: Sale) -> dict[str, Any]:
    """Row written to the ``sales`` table, with its items embedded."""
    return {
        "sale_number": sale.sale_number,
        "date": sale.created_at.isoformat(),
        "status": sale.status,
        "subtotal": _money(sale.subtotal),
        "total_vat": _money(sale.total_vat),
        "total_discount": _money(sale.total_discount),
        "total": _money(sale.total),
        "payment_method": sale.payment_method,
        "amount_paid": _money(sale.amount_tendered if sale.amount_tendered is not None else sale.amount_due),
        "change_amount": _money(sale.change),
        "rounding_difference": _money(sale.rounding_difference),
        "customer_id": sale.customer_id,
        "is_invoice": sale.is_invoice,
        "promo_code": sale.promo_code,
        "loyalty_points_redeemed": sale.loyalty_points_redeemed,
        "loyalty_points_earned": sale.loyalty_points_earned,
        "payments": [{"method": part.method, "amount": _money(part.amount)} for part in sale.payments],
        "sale_items": [
            {
                "product_id": line.product_id,
                "product_name": line.product_name,
                "quantity": str(line.quantity),
                "unit_price": _money(line.unit_price),
                "vat_rate": str(line.vat_rate),
                "discount_amount": _money(line.discount_amount),
                "subtotal": _money(line.subtotal),
                "vat_amount": _money(line.vat_amount),
                "total": _money(line.total),
            }
            for line in sale.lines
        ],
    }


class BackendClient:
    """Synchronous client for the shop backend.

    Pass ``client`` to reuse a configured ``httpx.Client`` (tests inject one
    built on ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.Client(timeout=timeout)
        self._base_url = base_url.rstrip("/")
        self._headers = headers

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> BackendClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers={**self._headers, **(headers or {})},
            )
        except httpx.RequestError as e:
            logger.error("Failed to reach backend at %s: %s", url, e)
            raise BackendUnavailable(f"Failed to reach backend: {e}") from e

        if not response.is_success:
            logger.error("Backend error on %s %s: %s", method, path, response.status_code)
            raise BackendUnavailable(f"Backend error: {response.status_code}")
        return response

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self._send(method, path, **kwargs)
        if not response.content:
            return None
        return response.json()

    def _single_row(self, table: str, column: str, value: str, select: str = "*") -> dict[str, Any] | None:
        rows = self._request("GET", table, params={column: f"eq.{value}", "select": select})
        if not rows:
            return None
        return rows[0]

    # --- Catalog ---
    def get_product(self, product_id: str) -> Product:
        row = self._single_row("products", "id", product_id)
        if row is None:
            raise KeyError(f"Unknown product: {product_id}")
        return Product.from_mapping(row)

    # --- Loyalty balances ---
    def get_points(self, customer_id: str) -> int:
        row = self._single_row("customers", "id", customer_id, select="loyalty_points")
        if row is None:
            return 0
        return int(row.get("loyalty_points") or 0)

    def adjust_points(self, customer_id: str, delta: int) -> None:
        """Read-modify-write of the customer balance, floored at zero."""
        balance = max(0, self.get_points(customer_id) + delta)
        self._request(
            "PATCH",
            "customers",
            params={"id": f"eq.{customer_id}"},
            json={"loyalty_points": balance},
        )
        logger.debug("Customer %s balance set to %d", customer_id, balance)

    # --- Sales ---
    def commit_sale(self, sale: Sale) -> SaleCommit:
        """Insert the sale; the backend deduplicates on ``Idempotency-Key``.

        A new row answers 201. Any other success status means the key was
        already stored, and the returned row describes the first commit.
        """
        headers = {"Prefer": "return=representation"}
        if sale.idempotency_key:
            headers["Idempotency-Key"] = sale.idempotency_key
        response = self._send("POST", "sales", json=sale_payload(sale), headers=headers)
        rows = response.json() if response.content else None
        row: dict[str, Any] = rows[0] if isinstance(rows, list) and rows else {}
        sale_id = str(row["id"]) if row.get("id") is not None else sale.sale_number

        if response.status_code == httpx.codes.CREATED:
            return SaleCommit(sale_id=sale_id, sale=sale)
        logger.info("Backend replayed sale for key %s as %s", sale.idempotency_key, sale_id)
        return SaleCommit(sale_id=sale_id, sale=_stored_sale(sale, row), created=False)

    def record_cancellation(self, sale: Sale) -> None:
        reason = sale.audit_trail[-1].reason if sale.audit_trail else ""
        self._request(
            "PATCH",
            "sales",
            params={"sale_number": f"eq.{sale.sale_number}"},
            json={"status": sale.status, "cancellation_reason": reason},
        )


def _stored_sale(sale: Sale, row: dict[str, Any]) -> Sale:
    """Take the number and date of the stored row over the retried sale's."""
    sale_number = row.get("sale_number") or sale.sale_number
    created_at = datetime.fromisoformat(row["date"]) if row.get("date") else sale.created_at
    return replace(sale, sale_number=sale_number, created_at=created_at)
