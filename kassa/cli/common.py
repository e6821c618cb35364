"""Shared helpers for CLI orchestrator commands."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from kassa.domain.product import Product
from kassa.runtime import InMemoryCatalog, get_logger

logger = get_logger(__name__)


def load_json_document(source: str) -> Any:
    """Read JSON from a file path, or from stdin when ``source`` is ``-``."""
    if source == "-":
        return json.load(sys.stdin)
    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return json.loads(path.read_text())


def load_catalog(source: str | None) -> InMemoryCatalog | None:
    """Load a JSON list of product rows into a catalog; None without a source."""
    if source is None:
        return None
    rows = load_json_document(source)
    if not isinstance(rows, list):
        raise ValueError(f"Catalog {source} must contain a JSON list of products")
    catalog = InMemoryCatalog(Product.from_mapping(row) for row in rows)
    logger.debug("Loaded %d products from %s", len(catalog), source)
    return catalog


def print_json(document: Any) -> None:
    print(json.dumps(document, indent=2, ensure_ascii=False))
