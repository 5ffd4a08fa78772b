"""structlog setup, done once by the entry point."""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(debug: bool = False) -> None:
    """Route structlog to stderr; per-message trace lines only show with debug on."""
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(stream=sys.stderr, level=level, format="%(message)s")
    # slack_sdk logs through the stdlib; keep it quiet unless debugging
    logging.getLogger("slack_sdk").setLevel(logging.DEBUG if debug else logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
