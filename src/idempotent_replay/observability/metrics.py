"""Prometheus metrics for the idempotent replay engine.

Metrics include:

- Request counter by outcome (replayed, cached, not_cached, bypassed)
- Execution time histogram for fresh handler executions
- Counter of recovered cache-path failures by kind
- Counter of requests that waited on an in-flight duplicate
- Cleanup operation tracking for in-memory stores

Examples:
    Recording a replayed request::

        from idempotent_replay.observability.metrics import record_request

        record_request(outcome="replayed", status_code=200)

    Recording a recovered store failure::

        from idempotent_replay.observability.metrics import record_cache_error

        record_cache_error("write")
"""

from prometheus_client import Counter, Histogram

# Labels: outcome (replayed, cached, not_cached, bypassed), status_code
requests_total = Counter(
    "idempotency_requests_total",
    "Total number of requests processed by the idempotent replay engine",
    ["outcome", "status_code"],
)

# Only tracks fresh executions, not replays
execution_time_ms = Histogram(
    "idempotency_execution_time_ms",
    "Handler execution time in milliseconds (fresh executions only)",
    buckets=[
        10,
        25,
        50,
        100,
        250,
        500,
        1000,
        2500,
        5000,
        10000,
    ],  # 10ms to 10s
)

# Labels: kind (identity, read, decode, encode, write)
cache_errors_total = Counter(
    "idempotency_cache_errors_total",
    "Cache-path failures recovered by serving the request uncached",
    ["kind"],
)

inflight_waits_total = Counter(
    "idempotency_inflight_waits_total",
    "Requests that waited for an identical in-flight request",
)

cleanup_operations = Counter(
    "idempotency_cleanup_operations_total",
    "Total number of cleanup operations performed",
)

cleanup_records_removed = Counter(
    "idempotency_cleanup_records_removed_total",
    "Total number of expired entries removed by cleanup",
)


def record_request(outcome: str, status_code: int) -> None:
    """Record a processed request.

    Examples:
        >>> record_request("replayed", 200)
        >>> record_request("not_cached", 500)
    """
    requests_total.labels(outcome=outcome, status_code=str(status_code)).inc()


def record_execution_time(exec_time_ms: int) -> None:
    """Record handler execution time. Only called for fresh executions."""
    execution_time_ms.observe(exec_time_ms)


def record_cache_error(kind: str) -> None:
    """Record a recovered cache-path failure.

    Args:
        kind: One of "identity", "read", "decode", "encode", "write"
    """
    cache_errors_total.labels(kind=kind).inc()


def record_inflight_wait() -> None:
    inflight_waits_total.inc()


def record_cleanup(records_removed: int) -> None:
    """Record a cleanup operation.

    Args:
        records_removed: Number of expired entries removed
    """
    cleanup_operations.inc()
    cleanup_records_removed.inc(records_removed)
