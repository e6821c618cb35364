"""Centralized path management for the kassa project.

This module provides a single source of truth for configuration and
journal locations, independent of where a command is started from once
the root has been resolved.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _get_project_root() -> Path:
    """Determine the shop data root: ``$KASSA_HOME`` or the working directory."""
    env_root = os.environ.get("KASSA_HOME")
    if env_root:
        return Path(env_root).expanduser()
    return Path.cwd()


@dataclass
class ProjectPaths:
    """Container for all project-related paths.

    All paths are computed relative to the root, which holds ``config/``
    and ``journal/``.
    """

    root: Path = field(default_factory=_get_project_root)

    def __post_init__(self) -> None:
        self.root = self.root.resolve()

    # --- Configuration paths ---
    @property
    def config(self) -> Path:
        """Configuration directory (config/)."""
        return self.root / "config"

    @property
    def loyalty_config(self) -> Path:
        """Loyalty program and tiers TOML file."""
        return self.config / "loyalty.toml"

    @property
    def promo_codes(self) -> Path:
        """Promo code table TOML file."""
        return self.config / "promo_codes.toml"

    @property
    def promotions(self) -> Path:
        """Automatic promotions TOML file."""
        return self.config / "promotions.toml"

    # --- Journal paths ---
    @property
    def journal_dir(self) -> Path:
        return self.root / "journal"

    @property
    def sales_journal(self) -> Path:
        """Beancount journal receiving sale and cancellation entries."""
        return self.journal_dir / "sales.beancount"


_paths: ProjectPaths | None = None


def get_paths() -> ProjectPaths:
    """Get the singleton ProjectPaths instance.

    Returns:
        The global ProjectPaths instance.
    """
    global _paths
    if _paths is None:
        _paths = ProjectPaths()
    return _paths


def reset_paths() -> None:
    """Forget the cached paths so the next call re-reads ``KASSA_HOME``."""
    global _paths
    _paths = None
