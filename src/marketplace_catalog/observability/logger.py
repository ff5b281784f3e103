"""Structured logging bound to the catalog's command context.

Uses structlog with JSON or console output. Each CLI command opens a fresh
context through :func:`bind_command`, so every entry emitted while serving
it (audit mirror lines included) carries the same ``trace_id`` and the
command name. Once a login succeeds, :func:`bind_actor` adds the acting
user's id and username until the session ends.
"""

from __future__ import annotations

import logging
import sys
import uuid
from typing import Any

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    get_contextvars,
    unbind_contextvars,
)

_ACTOR_KEYS = ("actor_id", "actor")


def new_trace_id() -> str:
    """Generate a trace ID and bind it to the current context."""
    tid = str(uuid.uuid4())
    bind_contextvars(trace_id=tid)
    return tid


def bind_command(command: str) -> str:
    """Start a clean log context for one command and return its trace ID."""
    clear_contextvars()
    bind_contextvars(command=command)
    return new_trace_id()


def bind_actor(actor_id: int | None, username: str | None = None) -> None:
    bind_contextvars(actor_id=actor_id, actor=username)


def unbind_actor() -> None:
    unbind_contextvars(*_ACTOR_KEYS)


def _ensure_trace_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor: entries logged outside a command get their own trace."""
    if "trace_id" not in event_dict:
        event_dict["trace_id"] = get_contextvars().get("trace_id") or new_trace_id()
    return event_dict


def setup_logging(
    level: str = "INFO",
    format: str = "console",
) -> None:
    """Configure structured logging for the catalog.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: "json" for machine consumption, "console" for humans.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        _ensure_trace_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)
