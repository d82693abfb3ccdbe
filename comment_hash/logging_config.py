"""
Structured logging configuration using structlog.

JSON lines when LOG_FORMAT=json, colored console output otherwise.
Everything goes to stdout; the process manager owns persistence.
"""

import logging
import sys

import structlog

from comment_hash.config import settings

# Event keys that must never reach a log sink
REDACTED_KEYS = frozenset({"secret_key", "digest", "authorization", "admin_token"})


def redact_sensitive(logger, method_name, event_dict):
    """Replace values of sensitive keys before rendering."""
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "[redacted]"
    return event_dict


def setup_logging() -> None:
    """
    Configure structlog and stdlib logging integration.

    Call this once at application startup.
    """
    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    level = getattr(logging, settings.log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_sensitive,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # stdlib loggers (SQLAlchemy, Alembic, uvicorn) share stdout
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
