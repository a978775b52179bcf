"""structlog setup shared by the ingestion service and its libraries.

Every log line carries the ``service`` name plus whatever request fields
the current task has bound (``image_id`` during an upload). Loggers come
from ``structlog.get_logger(name)`` or ``get_logger``.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory, add_logger_name


LOG_FORMATS = ("json", "console")


def _resolve_level(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")
    return level


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    log_format: str = "json",
) -> None:
    """Route structlog through stdlib logging on stdout.

    ``log_format`` selects the renderer: ``json`` emits one object per line
    with exceptions flattened into an ``exception`` field; ``console`` prints
    coloured key/value lines when stdout is a terminal. Calling it again
    replaces the previous setup and resets the bound context to
    ``service=service_name``.
    """
    if log_format not in LOG_FORMATS:
        raise ValueError(f"Unsupported log format {log_format!r}; expected one of {LOG_FORMATS}")

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=_resolve_level(log_level),
        force=True,
    )

    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if log_format == "json":
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    structlog.configure(
        processors=shared + renderers,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def bind_request_context(**context: Any) -> None:
    """Bind fields to every log line emitted by the current task.

    Context variables are task-local under asyncio, so concurrent ingestion
    requests never see each other's identifiers.
    """
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context(*keys: str) -> None:
    """Remove request-scoped fields bound by ``bind_request_context``."""
    structlog.contextvars.unbind_contextvars(*keys)
