"""Logging configuration: structlog on top of the standard library."""

from __future__ import annotations

import logging
import sys

import structlog


def setup_stdlib_logging(level: str) -> None:
    """Send everything to stderr so command output on stdout stays clean."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    root_logger.handlers = []

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level.upper())
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def setup_structlog(environment: str) -> None:
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.contextvars.merge_contextvars,
    ]

    if environment.lower() in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(level: str = "INFO", environment: str = "development") -> None:
    """Configure all logging for the application."""
    setup_stdlib_logging(level)
    setup_structlog(environment)
