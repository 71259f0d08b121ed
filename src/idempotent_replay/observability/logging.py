"""Structured logging for the idempotent replay engine.

Every failure on the caching path is recovered locally, so these logs are the
main way an operator learns that replay protection was skipped for a request.
Engine events are dotted names (``idempotency.replayed``,
``idempotency.store_failed``, ``cleanup.swept``...) carrying the fingerprint,
session id and, for recovered failures, ``error`` and ``error_type``.

Examples:
    At startup::

        configure_logging(level="INFO", json_output=True)

    Per request, in an adapter::

        with request_context(trace_id="abc-123"):
            result = await orchestrator.process(request, handler, resolve_session)

    A recovered write failure then renders as::

        {"trace_id": "abc-123", "fingerprint": "3f2a...",
         "error": "connection refused", "error_type": "StorageError",
         "event": "idempotency.store_failed", "level": "error",
         "timestamp": "2024-01-01T00:00:00.000000Z"}
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
) -> None:
    """Configure structlog (and the stdlib root logger) once at startup.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit JSON lines; otherwise a coloured console format

    Raises:
        ValueError: If ``level`` is not a known level name
    """
    numeric_level = _resolve_level(level)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def request_context(trace_id: str | None = None, **fields: Any) -> Iterator[None]:
    """Bind per-request fields to every engine log line emitted inside the block.

    ``None`` values are not bound.
    """
    fields["trace_id"] = trace_id
    bound = {key: value for key, value in fields.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def get_logger(name: str) -> Any:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
