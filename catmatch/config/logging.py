"""
Structured logging with structlog.

Events are snake_case names with keyword fields. Request handlers bind
request_id/user_id and background upload tasks bind upload_id through
structlog's contextvars, so those fields ride along on every event.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from catmatch.config.settings import get_settings

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("aiosqlite", "uvicorn.access", "multipart")


def add_app_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    settings = get_settings()
    event_dict.setdefault("app", settings.app_name)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def drop_empty_fields(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Remove fields bound to None, e.g. user_id on anonymous requests."""
    return {k: v for k, v in event_dict.items() if v is not None}


def _renderer(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging() -> None:
    """Configure structlog and route stdlib logging through it."""
    settings = get_settings()
    log_format = settings.log_format or (
        "console" if settings.environment == "development" else "json"
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
        drop_empty_fields,
        *_renderer(log_format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_task_context(**values: Any) -> None:
    """
    Start a fresh log context for a background task.

    Tasks inherit a copy of the scheduling request's context; this drops
    request fields so task events don't carry a stale request_id.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
