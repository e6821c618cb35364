"""Logging setup for the till.

Every logger lives under the ``kassa_local`` namespace. Domain modules call
``logging.getLogger(f"kassa_local.{__name__}")`` themselves so they never
import runtime code; everything else goes through get_logger().

Usage:
    from kassa.runtime import get_logger
    logger = get_logger(__name__)

    logger.info("Sale finalized")

Environment variables:
    KASSA_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR. Default: INFO
"""

import logging
import os
import sys
from typing import TextIO

DEFAULT_LOG_LEVEL = logging.INFO

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
LOG_FORMAT_DEBUG = "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"

LOGGER_NAMESPACE = "kassa_local"

_handler: logging.Handler | None = None


def parse_log_level(value: str | int | None) -> int:
    """Map a level name or number to a logging level.

    Unknown or empty names fall back to DEFAULT_LOG_LEVEL.
    """
    if value is None:
        return DEFAULT_LOG_LEVEL
    if isinstance(value, int):
        return value
    name = value.strip().upper()
    if name == "WARN":
        name = "WARNING"
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else DEFAULT_LOG_LEVEL


def _formatter(level: int) -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT_DEBUG if level <= logging.DEBUG else LOG_FORMAT)


def configure_logging(level: int | str | None = None, stream: TextIO | None = None) -> logging.Logger:
    """Attach the stderr handler to the namespace logger (once) and return it.

    Args:
        level: Level name or number. If None, reads KASSA_LOG_LEVEL.
        stream: Output stream, stderr by default.
    """
    global _handler

    namespace = logging.getLogger(LOGGER_NAMESPACE)
    if _handler is not None:
        return namespace

    resolved = parse_log_level(level if level is not None else os.environ.get("KASSA_LOG_LEVEL"))
    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(_formatter(resolved))
    namespace.addHandler(_handler)
    namespace.setLevel(resolved)
    namespace.propagate = False
    return namespace


def get_logger(name: str) -> logging.Logger:
    """Get a namespaced logger for a module, typically ``get_logger(__name__)``."""
    configure_logging()
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def set_log_level(level: int | str) -> int:
    """Change the namespace level at runtime and return the resolved level."""
    resolved = parse_log_level(level)
    namespace = configure_logging()
    namespace.setLevel(resolved)
    for handler in namespace.handlers:
        handler.setFormatter(_formatter(resolved))
    return resolved
