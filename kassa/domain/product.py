"""Catalog product model as seen by the sale engine."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal, get_args

from kassa.domain.money import HUNDRED, to_decimal

PricingMode = Literal["unit", "weight"]
PaymentMethod = Literal["cash", "card", "mobile", "check", "voucher"]
# A sale paid with more than one method records "mixed" plus its payment splits.
SettlementMethod = Literal[PaymentMethod, "mixed"]

PRICING_MODES: tuple[str, ...] = get_args(PricingMode)
PAYMENT_METHODS: tuple[str, ...] = get_args(PaymentMethod)


@dataclass(frozen=True)
class Product:
    """A sellable item. ``price`` is per unit (or per kg) and includes VAT."""

    id: str
    name: str
    price: Decimal
    pricing_mode: PricingMode = "unit"
    vat_rate: Decimal = Decimal("21")
    barcode: str | None = None
    category: str | None = None

    def __post_init__(self) -> None:
        price = to_decimal(self.price)
        vat_rate = to_decimal(self.vat_rate)
        if price < 0:
            raise ValueError(f"Product {self.id!r} has a negative price: {price}")
        if not 0 <= vat_rate <= HUNDRED:
            raise ValueError(f"Product {self.id!r} has a VAT rate outside 0-100: {vat_rate}")
        if self.pricing_mode not in PRICING_MODES:
            raise ValueError(f"Product {self.id!r} has an unknown pricing mode: {self.pricing_mode!r}")
        object.__setattr__(self, "price", price)
        object.__setattr__(self, "vat_rate", vat_rate)

    @classmethod
    def from_mapping(cls, raw: dict[str, object]) -> Product:
        """Build a product from a loosely shaped catalog row.

        Accepts both ``type``/``vat`` (catalog rows) and
        ``pricing_mode``/``vat_rate`` keys.
        """
        if "id" not in raw:
            raise ValueError("Product row has no 'id'")
        price = raw.get("price", 0)
        vat = raw.get("vat_rate", raw.get("vat", 21))
        if not isinstance(price, (Decimal, int, float, str)):
            raise ValueError(f"Product {raw['id']!r} has a non-numeric price: {price!r}")
        if not isinstance(vat, (Decimal, int, float, str)):
            raise ValueError(f"Product {raw['id']!r} has a non-numeric VAT rate: {vat!r}")
        barcode = raw.get("barcode")
        category = raw.get("category")
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name", "")),
            price=to_decimal(price),
            pricing_mode=str(raw.get("pricing_mode", raw.get("type", "unit"))),  # type: ignore[arg-type]
            vat_rate=to_decimal(vat),
            barcode=str(barcode) if barcode else None,
            category=str(category) if category else None,
        )


def validate_payment_method(method: str) -> PaymentMethod:
    if method not in PAYMENT_METHODS:
        raise ValueError(f"Unknown payment method: {method!r}")
    return method  # type: ignore[return-value]
