"""Shared pytest fixtures for kassa tests."""

from __future__ import annotations

from collections.abc import Iterator
from decimal import Decimal
from pathlib import Path

import pytest

from kassa.domain.loyalty import LoyaltyConfig
from kassa.domain.product import Product
from kassa.runtime import clear_settings_cache, reset_paths


@pytest.fixture
def bread() -> Product:
    return Product(id="bread", name="Bread", price=Decimal("2.50"), vat_rate=Decimal("6"), category="bakery")


@pytest.fixture
def wine() -> Product:
    return Product(id="wine", name="Wine", price=Decimal("12.00"), vat_rate=Decimal("21"), category="drinks")


@pytest.fixture
def cheese() -> Product:
    return Product(
        id="cheese",
        name="Cheese",
        price=Decimal("18.90"),
        pricing_mode="weight",
        vat_rate=Decimal("6"),
        category="dairy",
    )


@pytest.fixture
def loyalty_config() -> LoyaltyConfig:
    return LoyaltyConfig()


@pytest.fixture
def kassa_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point the project root at an empty temp dir and reset cached settings."""
    monkeypatch.setenv("KASSA_HOME", str(tmp_path))
    reset_paths()
    clear_settings_cache()
    (tmp_path / "config").mkdir()
    yield tmp_path
    reset_paths()
    clear_settings_cache()
