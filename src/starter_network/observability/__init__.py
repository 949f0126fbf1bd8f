"""Observability helpers."""

from .logging import PIPELINE_LOGGERS, get_logger, set_debug

__all__ = ["PIPELINE_LOGGERS", "get_logger", "set_debug"]
