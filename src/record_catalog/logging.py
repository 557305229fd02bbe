"""Structured logging for ``rcq`` and library callers.

:func:`setup_logging` configures ``structlog`` and the standard-library
``logging`` module once, at startup. Without an explicit level it uses
``settings.log_level``, so ``RECORD_CATALOG_LOG_LEVEL`` applies to every
entry point, not only the CLI.
"""

from __future__ import annotations

import logging
import sys

import structlog

from record_catalog.config import settings


def resolve_level(log_level: str | None = None) -> int:
    """Map a level name to its numeric value, falling back to the configured level."""
    name = (log_level or settings.log_level).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(log_level: str | None = None) -> None:
    """Configure structured logging for the application.

    Events go to stderr so that command output on stdout stays parseable.

    Args:
        log_level: Minimum severity level (e.g. ``"DEBUG"``). Defaults to
            ``settings.log_level``.
    """
    numeric_level = resolve_level(log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
