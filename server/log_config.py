"""Logging configuration for ArtPulse.

Structured logging via structlog, written to stderr and filtered by
``AP_LOG_LEVEL`` (default: WARNING).
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from settings import Settings

__all__ = ["configure_logging", "get_logger"]


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog once at process startup."""
    if settings is None:
        from settings import get_settings

        settings = get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.WARNING)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)
