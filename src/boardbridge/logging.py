"""
Structured logging for the session pipeline.

Every event logged while a session request is in flight carries the request id
and, once each is known, the host user id and the directory user id it concerns.
"""

import logging
import secrets
import sys
from contextvars import ContextVar
from typing import Any

import structlog

SESSION_CONTEXT_KEYS = ("request_id", "host_user_id", "directory_user_id")

# The Supabase client talks to Auth through httpx, which logs each call at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "hpack")

_session_context: ContextVar[dict[str, str] | None] = ContextVar("session_context", default=None)


def add_session_context(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor merging the bound session identifiers into each event.

    Values passed explicitly to the log call win over the bound ones.
    """
    _ = logger, method_name
    for key, value in (_session_context.get() or {}).items():
        event_dict.setdefault(key, value)
    return event_dict


def configure_logging(debug: bool = False) -> None:
    """Configure structlog over stdlib logging.

    Args:
        debug: If True, use human-readable console output. If False, use JSON.
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        stream=sys.stdout,
        format="%(message)s",
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_session_context,
        structlog.processors.TimeStamper(fmt="ISO", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def begin_request(request_id: str | None = None) -> str:
    """Start a fresh session context for a request and return its id."""
    request_id = request_id or secrets.token_hex(8)
    _session_context.set({"request_id": request_id})
    return request_id


def bind_session_context(**ids: str | None) -> None:
    """Bind identifiers as the pipeline learns them. None values are skipped."""
    unknown = set(ids) - set(SESSION_CONTEXT_KEYS)
    if unknown:
        raise ValueError(f"Unknown session context keys: {sorted(unknown)}")

    context = dict(_session_context.get() or {})
    context.update({key: value for key, value in ids.items() if value is not None})
    _session_context.set(context)


def session_context() -> dict[str, str]:
    return dict(_session_context.get() or {})


def end_request() -> None:
    _session_context.set(None)
