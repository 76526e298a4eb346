"""Structured logging configuration for the health-data access layer."""

import logging
import sys
from typing import Any, Optional

import structlog

from vitals.config import Settings, get_settings


def setup_logging(
    debug: Optional[bool] = None,
    log_level: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> None:
    """Configure structured logging.

    Args:
        debug: If True, use colored console output. Otherwise, use JSON format.
            Defaults to ``settings.debug``.
        log_level: Minimum level when not in debug mode. Defaults to
            ``settings.log_level``.
        settings: Settings to read defaults from. Defaults to ``get_settings()``.
    """
    if debug is None or log_level is None:
        settings = settings or get_settings()
        if debug is None:
            debug = settings.debug
        if log_level is None:
            log_level = settings.log_level

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if debug:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    level = logging.DEBUG if debug else logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Standard library logging for third-party libraries
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)
