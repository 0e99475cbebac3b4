"""Logging setup for schema_cache.

Modules create their own logger with ``logging.getLogger(__name__)``; the
application calls :func:`configure_logging` once at startup.

Usage:
    from schema_cache.log import configure_logging

    configure_logging("DEBUG")
"""

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

PACKAGE_LOGGER = "schema_cache"


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """Attach a stream handler to the package logger.

    Calling it again only updates the level.

    Args:
        level: Log level name or number. Defaults to settings.log_level.

    Returns:
        The package logger
    """
    if level is None:
        from schema_cache.config import get_settings

        level = get_settings().log_level

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    if not any(getattr(h, "_schema_cache", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT))
        handler._schema_cache = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
        logger.propagate = False

    return logger
