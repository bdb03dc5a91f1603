"""Logging configuration for callhome.

Everything goes to stderr. Package scripts and cron jobs call ``callhome``
and may capture its stdout, which therefore stays empty.
"""

import logging
import sys
from typing import Any

import structlog

from callhome import __version__
from callhome.config import get_settings

APP_NAME = "callhome"


def add_app_context(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Tag every event with the tool name and version."""
    event_dict.setdefault("app", APP_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def _renderers(development: bool) -> list[structlog.types.Processor]:
    if development:
        return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def setup_logging(level: str | None = None) -> None:
    """Configure structured logging on stderr.

    ``level`` overrides the configured ``PERCONA_LOG_LEVEL``; ``--verbose``
    passes ``DEBUG``.
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_app_context,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            *_renderers(settings.is_development),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    # httpx logs through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)
