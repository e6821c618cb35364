"""Runtime infrastructure for the till.

This package provides process/runtime services including:
- Logging setup via get_logger()
- Path resolution via get_paths(), ProjectPaths
- TOML settings via load_loyalty_config(), load_promo_code_registry(), ...
- Port adapters: in-memory stores and the HTTP BackendClient
- Journal output via append_sale_entries()

Usage:
    from kassa.runtime import get_logger, get_paths

    logger = get_logger(__name__)
    paths = get_paths()
    print(paths.root, paths.sales_journal)
"""

from kassa.runtime.backend_client import BackendClient, BackendUnavailable
from kassa.runtime.journal_writer import append_sale_entries
from kassa.runtime.logging import (
    DEFAULT_LOG_LEVEL,
    LOG_FORMAT,
    LOG_FORMAT_DEBUG,
    configure_logging,
    get_logger,
    parse_log_level,
    set_log_level,
)
from kassa.runtime.memory_store import InMemoryCatalog, InMemoryLoyaltyStore, InMemorySaleStore
from kassa.runtime.paths import ProjectPaths, get_paths, reset_paths
from kassa.runtime.settings import (
    clear_settings_cache,
    load_loyalty_config,
    load_loyalty_tiers,
    load_promo_code_registry,
    load_promotions,
)

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "set_log_level",
    "parse_log_level",
    "DEFAULT_LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FORMAT_DEBUG",
    # Paths
    "get_paths",
    "reset_paths",
    "ProjectPaths",
    # Settings
    "load_loyalty_config",
    "load_loyalty_tiers",
    "load_promo_code_registry",
    "load_promotions",
    "clear_settings_cache",
    # Adapters
    "InMemoryCatalog",
    "InMemoryLoyaltyStore",
    "InMemorySaleStore",
    "BackendClient",
    "BackendUnavailable",
    "append_sale_entries",
]
