"""Structured logging configuration.

This module initializes structlog with a stable JSON event format.
Modules log snake_case event names with keyword context fields.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

_LOG_LEVEL_ENV = "ZAPLYTICS_LOG_LEVEL"
_CONFIGURED = False


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog bound logger with structured output.
    """
    _configure_once()
    return structlog.get_logger(name)


def _configure_once() -> None:
    """Apply the shared processor chain on first use."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_log_level()),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def _resolve_log_level() -> int:
    """Read the minimum log level name, INFO when unset or unknown."""
    level_name = os.getenv(_LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO
