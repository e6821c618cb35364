"""Runtime loaders for shop settings stored as TOML.

Settings are read once here and handed to the engine as explicit values;
domain code never reads configuration on its own.
"""

from __future__ import annotations

from datetime import date, datetime, time
from functools import lru_cache
from pathlib import Path
from typing import Any

from kassa.domain.discount import discount_from_mapping
from kassa.domain.loyalty import LoyaltyConfig, LoyaltyTier
from kassa.domain.money import to_decimal
from kassa.domain.promotions import Promotion, StaticPromoCodeRegistry
from kassa.runtime.logging import get_logger
from kassa.runtime.paths import get_paths

logger = get_logger(__name__)


def _load_toml(path: Path) -> dict[str, Any]:
    """Load TOML file and return parsed dict; missing files map to empty dict."""
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]

    if not path.exists():
        logger.debug("Settings file not found, using defaults: %s", path)
        return {}

    with open(path, "rb") as f:
        data = tomllib.load(f)
    return data if isinstance(data, dict) else {}


def _as_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return datetime.fromisoformat(str(value))


@lru_cache(maxsize=4)
def load_loyalty_config(config_path: str | None = None) -> LoyaltyConfig:
    """
    Load the loyalty program parameters from the ``[loyalty]`` table.

    Args:
        config_path: Optional TOML path override. If None, uses default project path.

    Returns:
        The configured program, or the built-in defaults when the file or
        table is missing.
    """
    path = Path(config_path) if config_path is not None else get_paths().loyalty_config
    table = _load_toml(path).get("loyalty", {})
    return LoyaltyConfig.from_mapping(table)


@lru_cache(maxsize=4)
def load_loyalty_tiers(config_path: str | None = None) -> tuple[LoyaltyTier, ...]:
    """Load ``[[tiers]]`` from the loyalty file, sorted by ``min_spent``."""
    path = Path(config_path) if config_path is not None else get_paths().loyalty_config
    tiers = [
        LoyaltyTier(
            name=str(raw["name"]),
            min_spent=to_decimal(raw.get("min_spent", 0)),
            discount_percentage=to_decimal(raw.get("discount_percentage", 0)),
            points_multiplier=to_decimal(raw.get("points_multiplier", 1)),
        )
        for raw in _load_toml(path).get("tiers", [])
    ]
    return tuple(sorted(tiers, key=lambda tier: tier.min_spent))


@lru_cache(maxsize=4)
def load_promo_code_registry(config_path: str | None = None) -> StaticPromoCodeRegistry:
    """Load ``[[codes]]`` entries (``code``, ``type``, ``value``) into a registry.

    Raises:
        ValueError: If an entry has no code.
        InvalidDiscount: If an entry has an unknown type or negative value.
    """
    path = Path(config_path) if config_path is not None else get_paths().promo_codes
    codes = {}
    for raw in _load_toml(path).get("codes", []):
        code = str(raw.get("code", "")).strip()
        if not code:
            raise ValueError(f"Promo code entry without a code in {path}")
        discount = discount_from_mapping(raw)
        if discount is None:
            raise ValueError(f"Promo code {code!r} has no discount in {path}")
        codes[code] = discount
    logger.debug("Loaded %d promo codes from %s", len(codes), path)
    return StaticPromoCodeRegistry(codes)


@lru_cache(maxsize=4)
def load_promotions(config_path: str | None = None) -> tuple[Promotion, ...]:
    """Load automatic ``[[promotions]]``."""
    path = Path(config_path) if config_path is not None else get_paths().promotions
    promotions: list[Promotion] = []
    for raw in _load_toml(path).get("promotions", []):
        promo_type = str(raw.get("type", "percentage"))
        if promo_type not in ("percentage", "fixed"):
            raise ValueError(f"Unsupported promotion type {promo_type!r} in {path}")
        min_purchase = raw.get("min_purchase")
        promotions.append(
            Promotion(
                name=str(raw["name"]),
                type=promo_type,  # type: ignore[arg-type]
                value=to_decimal(raw.get("value", 0)),
                starts_at=_as_datetime(raw.get("starts_at")),
                ends_at=_as_datetime(raw.get("ends_at")),
                is_active=bool(raw.get("active", True)),
                min_purchase=to_decimal(min_purchase) if min_purchase is not None else None,
                product_ids=frozenset(str(p) for p in raw.get("products", [])),
                categories=frozenset(str(c) for c in raw.get("categories", [])),
            )
        )
    return tuple(promotions)


def clear_settings_cache() -> None:
    """Drop cached settings so edited files are picked up."""
    load_loyalty_config.cache_clear()
    load_loyalty_tiers.cache_clear()
    load_promo_code_registry.cache_clear()
    load_promotions.cache_clear()
