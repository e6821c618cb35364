"""Tests for the FastAPI till service."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient

from kassa.api.server import create_app
from kassa.domain.discount import FixedAmountDiscount, PercentageDiscount
from kassa.domain.loyalty import LoyaltyConfig, LoyaltyTier
from kassa.domain.product import Product
from kassa.domain.promotions import StaticPromoCodeRegistry
from kassa.domain.sale import Sale, SaleCommit
from kassa.runtime import BackendUnavailable, InMemoryCatalog, InMemoryLoyaltyStore, InMemorySaleStore

_BREAD = {"id": "bread", "name": "Bread", "price": "2.50", "vat": 6}
_WINE = {"id": "wine", "name": "Wine", "price": "12.00", "vat": 21}


@pytest.fixture
def stores() -> tuple[InMemorySaleStore, InMemoryLoyaltyStore]:
    return InMemorySaleStore(), InMemoryLoyaltyStore({"c1": 1000})


@pytest.fixture
def client(stores: tuple[InMemorySaleStore, InMemoryLoyaltyStore]) -> TestClient:
    sale_store, loyalty_store = stores
    app = create_app(
        catalog=InMemoryCatalog([Product(id="cheese", name="Cheese", price=Decimal("18.90"), pricing_mode="weight")]),
        promo_registry=StaticPromoCodeRegistry(
            {"BIENVENUE10": PercentageDiscount(Decimal("10")), "PROMO5": FixedAmountDiscount(Decimal("5"))}
        ),
        loyalty_config=LoyaltyConfig(),
        promotions=(),
        sale_store=sale_store,
        loyalty_store=loyalty_store,
        tiers=(LoyaltyTier(name="gold", min_spent=Decimal("500"), discount_percentage=Decimal("10")),),
    )
    return TestClient(app)


def _cart(**extra: Any) -> dict[str, Any]:
    return {
        "lines": [{"product": _BREAD, "quantity": 2}, {"product": _WINE, "quantity": 1}],
        **extra,
    }


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_cart_totals(client: TestClient) -> None:
    response = client.post("/cart/totals", json=_cart(promo_code="bienvenue10"))

    assert response.status_code == 200
    totals = response.json()["totals"]
    assert totals["total"] == "15.30"
    assert totals["promo_discount"] == "1.70"
    assert [entry["rate"] for entry in totals["vat_breakdown"]] == ["6", "21"]


def test_cart_totals_resolves_catalog_products(client: TestClient) -> None:
    response = client.post("/cart/totals", json={"lines": [{"product_id": "cheese", "quantity": "0.450"}]})

    assert response.status_code == 200
    assert response.json()["totals"]["total"] == "8.51"


@pytest.mark.parametrize(
    ("document", "kind"),
    [
        ({"lines": [{"product": _BREAD, "quantity": "1.5"}]}, "invalid_quantity"),
        (_cart(promo_code="NOPE"), "invalid_discount"),
        (_cart(order_discount={"type": "percentage", "value": -5}), "invalid_discount"),
        ({"lines": [{"product_id": "ghost"}]}, "unknown_product"),
        ({"lines": [{"quantity": 1}]}, "invalid_request"),
        ({"lines": [{"product": {**_BREAD, "price": ["2.50"]}}]}, "invalid_request"),
    ],
)
def test_cart_totals_validation_errors(client: TestClient, document: dict[str, Any], kind: str) -> None:
    response = client.post("/cart/totals", json=document)

    assert response.status_code == 422
    body = response.json()
    assert body["status"] == "error"
    assert body["kind"] == kind
    assert body["message"]


def test_checkout_cash(client: TestClient, stores: tuple[InMemorySaleStore, InMemoryLoyaltyStore]) -> None:
    response = client.post(
        "/checkout",
        json={"cart": _cart(), "payment_method": "cash", "amount_tendered": "20"},
        headers={"Idempotency-Key": "till-1-0001"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["sale"]["amount_due"] == "17.00"
    assert body["sale"]["change"] == "3.00"
    assert body["sale"]["idempotency_key"] == "till-1-0001"
    assert body["sale_id"] in stores[0].sales


def test_checkout_reads_balance_and_redeems(
    client: TestClient,
    stores: tuple[InMemorySaleStore, InMemoryLoyaltyStore],
) -> None:
    response = client.post(
        "/checkout",
        json={"cart": _cart(), "payment_method": "card", "customer_id": "c1", "points_to_redeem": 500},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["sale"]["total"] == "12.00"
    assert body["points_delta"] == -380
    assert stores[1].get_points("c1") == 620


@pytest.mark.parametrize(
    ("payload", "kind"),
    [
        ({"cart": {"lines": []}, "payment_method": "cash"}, "empty_cart"),
        ({"cart": _cart(), "payment_method": "cash", "amount_tendered": "10"}, "insufficient_payment"),
        ({"cart": _cart(), "payment_method": "bitcoin"}, "invalid_request"),
    ],
)
def test_checkout_errors(client: TestClient, payload: dict[str, Any], kind: str) -> None:
    response = client.post("/checkout", json=payload)

    assert response.status_code == 422
    assert response.json()["kind"] == kind


def test_cash_round(client: TestClient) -> None:
    response = client.post("/cash/round", json={"amount": "12.43", "amount_tendered": "20.00"})

    assert response.status_code == 200
    settlement = response.json()["settlement"]
    assert settlement["rounded_amount"] == "12.45"
    assert settlement["difference_label"] == "+0.02€"
    assert settlement["change"] == "7.55"


def test_cash_round_insufficient(client: TestClient) -> None:
    response = client.post("/cash/round", json={"amount": "12.43", "amount_tendered": "12.40"})

    assert response.status_code == 422
    assert response.json()["kind"] == "insufficient_payment"


def test_cash_round_requires_amount(client: TestClient) -> None:
    response = client.post("/cash/round", json={})

    assert response.status_code == 422
    assert response.json()["kind"] == "invalid_request"


def test_promo_lookup(client: TestClient) -> None:
    found = client.get("/promo/promo5")
    missing = client.get("/promo/NOPE")

    assert found.status_code == 200
    assert found.json()["discount"] == {"type": "fixed_amount", "value": "5"}
    assert missing.status_code == 404
    assert missing.json()["kind"] == "not_found"


class _UnreachableSaleStore:
    def commit_sale(self, sale: Sale) -> SaleCommit:
        raise BackendUnavailable("Failed to reach backend: connection refused")

    def record_cancellation(self, sale: Sale) -> None:
        raise BackendUnavailable("Failed to reach backend: connection refused")


def test_checkout_retry_with_same_key_adjusts_points_once() -> None:
    sale_store = InMemorySaleStore()
    loyalty_store = InMemoryLoyaltyStore({"c1": 0})
    client = TestClient(
        create_app(
            promo_registry=StaticPromoCodeRegistry({}),
            loyalty_config=LoyaltyConfig(),
            promotions=(),
            tiers=(),
            sale_store=sale_store,
            loyalty_store=loyalty_store,
        )
    )
    payload = {
        "cart": {"lines": [{"product": {"id": "p", "name": "Item", "price": "10.00", "vat": 21}}]},
        "payment_method": "card",
        "customer_id": "c1",
        "idempotency_key": "same-key",
    }

    first = client.post("/checkout", json=payload)
    second = client.post("/checkout", json=payload)

    assert first.status_code == second.status_code == 200
    assert first.json()["replayed"] is False
    assert second.json()["replayed"] is True
    assert second.json()["sale_id"] == first.json()["sale_id"]
    assert second.json()["sale"]["sale_number"] == first.json()["sale"]["sale_number"]
    assert len(sale_store.sales) == 1
    assert loyalty_store.get_points("c1") == 100


def test_checkout_backend_down_returns_503() -> None:
    loyalty_store = InMemoryLoyaltyStore({"c1": 0})
    client = TestClient(
        create_app(
            promo_registry=StaticPromoCodeRegistry({}),
            loyalty_config=LoyaltyConfig(),
            promotions=(),
            tiers=(),
            sale_store=_UnreachableSaleStore(),
            loyalty_store=loyalty_store,
        )
    )

    response = client.post("/checkout", json={"cart": _cart(), "payment_method": "card", "customer_id": "c1"})

    assert response.status_code == 503
    assert response.json()["kind"] == "backend_unavailable"
    assert loyalty_store.get_points("c1") == 0


def test_split_payment_checkout(client: TestClient) -> None:
    response = client.post(
        "/checkout",
        json={
            "cart": {"lines": [{"product": {"id": "p", "name": "Item", "price": "12.43", "vat": 21}}]},
            "payments": [{"method": "card", "amount": "10.00"}, {"method": "cash", "amount": "2.45"}],
            "amount_tendered": "5.00",
        },
    )

    assert response.status_code == 200
    sale = response.json()["sale"]
    assert sale["payment_method"] == "mixed"
    assert sale["amount_due"] == "12.45"
    assert sale["change"] == "2.55"
    assert sale["payments"] == [{"method": "card", "amount": "10.00"}, {"method": "cash", "amount": "2.45"}]


def test_split_payment_paying_too_much_is_rejected(client: TestClient) -> None:
    response = client.post(
        "/checkout",
        json={"cart": _cart(), "payments": [{"method": "card", "amount": "20.00"}]},
    )

    assert response.status_code == 422
    assert response.json()["kind"] == "invalid_payment_split"


def test_checkout_applies_tier_discount_from_total_spent(client: TestClient) -> None:
    response = client.post(
        "/checkout",
        json={"cart": _cart(), "payment_method": "card", "customer_total_spent": "750"},
    )

    assert response.status_code == 200
    sale = response.json()["sale"]
    assert sale["total"] == "15.30"
    assert sale["total_discount"] == "1.70"
