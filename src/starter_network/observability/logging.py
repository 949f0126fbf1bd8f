"""Loggers for the request pipeline.

Each pipeline component logs under its own name below `starter_network.network`
so debug output can be switched on for the whole pipeline at once.

Usage example:
    from starter_network.observability.logging import get_logger, set_debug

    logger = get_logger("starter_network.network.retry")
    set_debug(True)
    logger.debug("Retrying %s", url)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable

PIPELINE_LOGGERS: tuple[str, ...] = (
    "starter_network.network.auth",
    "starter_network.network.retry",
    "starter_network.network.http",
)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def _utc_formatter() -> logging.Formatter:
    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)
    formatter.converter = time.gmtime
    return formatter


def get_logger(name: str) -> logging.Logger:
    """Return a stderr logger with UTC timestamps, at INFO until debug is enabled.

    Repeated calls with the same name return the same logger without adding
    handlers; records do not propagate to the root logger.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    handler = logging.StreamHandler()
    handler.setFormatter(_utc_formatter())
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger


def set_debug(enabled: bool, names: Iterable[str] = PIPELINE_LOGGERS) -> None:
    """Switch the named loggers between DEBUG and INFO."""
    level = logging.DEBUG if enabled else logging.INFO
    for name in names:
        get_logger(name).setLevel(level)
