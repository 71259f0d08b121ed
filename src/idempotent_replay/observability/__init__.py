"""Observability utilities for the idempotent replay engine.

This package provides monitoring and debugging capabilities:
- Prometheus metrics for replay behavior and recovered failures
- Structured logging with contextual information
"""

from idempotent_replay.observability.logging import configure_logging, get_logger, request_context
from idempotent_replay.observability.metrics import (
    record_cache_error,
    record_cleanup,
    record_execution_time,
    record_inflight_wait,
    record_request,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "request_context",
    "record_request",
    "record_execution_time",
    "record_cache_error",
    "record_inflight_wait",
    "record_cleanup",
]
