"""FastAPI service exposing the sale engine to till front-ends."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from dataclasses import replace
from decimal import Decimal
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kassa.application.ports import Catalog, LoyaltyBalanceStore, PromoCodeRegistry, SaleStore
from kassa.application.sales import (
    BACKEND_UNAVAILABLE,
    CheckoutRequest,
    apply_automatic_promotion,
    apply_tier_discount,
    cart_from_dict,
    cash_settlement_to_dict,
    complete_sale,
    payments_from_list,
    run_cart_totals,
    sale_to_dict,
    totals_to_dict,
)
from kassa.domain.cart import Cart
from kassa.domain.cash import compute_change, round_for_cash
from kassa.domain.discount import discount_to_mapping
from kassa.domain.errors import SaleError
from kassa.domain.loyalty import LoyaltyConfig, LoyaltyTier, tier_for_spend
from kassa.domain.money import to_decimal
from kassa.domain.promotions import Promotion
from kassa.runtime import (
    BackendUnavailable,
    InMemorySaleStore,
    get_logger,
    load_loyalty_config,
    load_loyalty_tiers,
    load_promo_code_registry,
    load_promotions,
)

logger = get_logger(__name__)


def _error(kind: str, message: str, status_code: int = 422) -> JSONResponse:
    return JSONResponse({"status": "error", "kind": kind, "message": message}, status_code=status_code)


async def _json_body(request: Request) -> dict[str, Any]:
    body = await request.json()
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


def _optional_decimal(raw: Any) -> Decimal | None:
    return to_decimal(raw) if raw is not None else None


def create_app(
    *,
    catalog: Catalog | None = None,
    promo_registry: PromoCodeRegistry | None = None,
    loyalty_config: LoyaltyConfig | None = None,
    promotions: Sequence[Promotion] | None = None,
    sale_store: SaleStore | None = None,
    loyalty_store: LoyaltyBalanceStore | None = None,
    tiers: Sequence[LoyaltyTier] | None = None,
) -> FastAPI:
    """Build the service app.

    Collaborators default to the TOML settings under the project root and
    an in-memory sale store.
    """
    registry = promo_registry if promo_registry is not None else load_promo_code_registry()
    program = loyalty_config if loyalty_config is not None else load_loyalty_config()
    running_promotions = tuple(promotions) if promotions is not None else load_promotions()
    tier_table = tuple(tiers) if tiers is not None else load_loyalty_tiers()
    store = sale_store if sale_store is not None else InMemorySaleStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Till service ready (%d automatic promotions)", len(running_promotions))
        yield

    app = FastAPI(title="Kassa", lifespan=lifespan)

    def build_cart(body: dict[str, Any]) -> Cart:
        cart = cart_from_dict(body, catalog=catalog, promo_registry=registry)
        if body.get("auto_promotions", True):
            apply_automatic_promotion(cart, running_promotions)
        return cart

    @app.post("/cart/totals")
    async def cart_totals(request: Request) -> JSONResponse:
        """Preview totals for a cart document."""
        try:
            body = await _json_body(request)
            totals = run_cart_totals(build_cart(body))
        except SaleError as exc:
            return _error(exc.kind, str(exc))
        except KeyError as exc:
            return _error("unknown_product", str(exc.args[0]) if exc.args else "Unknown product")
        except ValueError as exc:
            return _error("invalid_request", str(exc))
        except BackendUnavailable as exc:
            return _error(BACKEND_UNAVAILABLE, str(exc), status_code=503)
        return JSONResponse({"status": "ok", "totals": totals_to_dict(totals)})

    @app.post("/checkout")
    async def checkout(request: Request) -> JSONResponse:
        """Finalize a cart document into a sale and commit it.

        Retries must send the same ``idempotency_key`` (body or header); a
        replay answers with the stored sale and moves no loyalty points.
        """
        try:
            body = await _json_body(request)
            cart = build_cart(body.get("cart", {}))
            customer_id = body.get("customer_id")
            customer_points = int(body.get("customer_points", 0))
            if customer_id and loyalty_store is not None and "customer_points" not in body:
                customer_points = loyalty_store.get_points(str(customer_id))
            multiplier = to_decimal(body.get("points_multiplier", 1))
            if body.get("customer_total_spent") is not None:
                tier = tier_for_spend(tier_table, to_decimal(body["customer_total_spent"]))
                apply_tier_discount(cart, tier)
                if tier is not None and "points_multiplier" not in body:
                    multiplier = tier.points_multiplier
            checkout_request = CheckoutRequest(
                cart=cart,
                payment_method=str(body.get("payment_method", "cash")),
                amount_tendered=_optional_decimal(body.get("amount_tendered")),
                payments=payments_from_list(body.get("payments")),
                customer_id=str(customer_id) if customer_id else None,
                customer_points=customer_points,
                points_to_redeem=int(body.get("points_to_redeem", 0)),
                loyalty_config=program,
                points_multiplier=multiplier,
                is_invoice=bool(body.get("is_invoice", False)),
                idempotency_key=body.get("idempotency_key") or request.headers.get("idempotency-key"),
                actor=body.get("actor"),
            )
        except SaleError as exc:
            return _error(exc.kind, str(exc))
        except KeyError as exc:
            return _error("unknown_product", str(exc.args[0]) if exc.args else "Unknown product")
        except ValueError as exc:
            return _error("invalid_request", str(exc))
        except BackendUnavailable as exc:
            return _error(BACKEND_UNAVAILABLE, str(exc), status_code=503)

        completed = complete_sale(checkout_request, store, loyalty_store)
        if completed.status != "ok" or completed.sale is None:
            status_code = 503 if completed.error_kind == BACKEND_UNAVAILABLE else 422
            return _error(completed.error_kind or "sale_error", completed.error or "Checkout failed", status_code)
        return JSONResponse(
            {
                "status": "ok",
                "sale_id": completed.sale_id,
                "points_delta": completed.points_delta,
                "replayed": completed.replayed,
                "sale": sale_to_dict(completed.sale),
            }
        )

    @app.post("/cash/round")
    async def cash_round(request: Request) -> JSONResponse:
        """Round an amount for cash payment and optionally compute change."""
        try:
            body = await _json_body(request)
            if "amount" not in body:
                raise ValueError("Missing 'amount'")
            settlement = round_for_cash(to_decimal(body["amount"]))
            tendered = _optional_decimal(body.get("amount_tendered"))
            if tendered is not None:
                change = compute_change(settlement.rounded_amount, tendered)
                settlement = replace(settlement, amount_tendered=tendered, change=change)
        except SaleError as exc:
            return _error(exc.kind, str(exc))
        except ValueError as exc:
            return _error("invalid_request", str(exc))
        return JSONResponse({"status": "ok", "settlement": cash_settlement_to_dict(settlement)})

    @app.get("/promo/{code}")
    async def promo(code: str) -> JSONResponse:
        discount = registry.lookup_promo_code(code)
        if discount is None:
            return _error("not_found", f"Unknown promo code: {code}", status_code=404)
        return JSONResponse({"status": "ok", "code": code.strip().upper(), "discount": discount_to_mapping(discount)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    return app
