"""Periodic sweeping of expired response snapshots.

Expired entries in a MemorySessionStore are invisible to lookups, but their
memory is only reclaimed when the same (session, fingerprint) pair is read
again. Hashing mode produces mostly one-off fingerprints, so without a sweep
the store grows with every distinct request.

Stores with native expiry (RedisSessionStore) do not implement
``cleanup_expired`` and need no sweeper.

Examples:
    In a Starlette/FastAPI lifespan::

        store = MemorySessionStore()

        @asynccontextmanager
        async def lifespan(app):
            sweeper = await start_cleanup_task(store, interval_seconds=60)
            yield
            await stop_cleanup_task(sweeper)
"""

import asyncio

from idempotent_replay.observability.logging import get_logger
from idempotent_replay.observability.metrics import record_cleanup
from idempotent_replay.storage.base import ExpiringStore

logger = get_logger(__name__)

STOP_TIMEOUT_SECONDS = 5.0


async def sweep_once(store: ExpiringStore) -> int:
    """Run a single sweep and record it. Returns the number of entries removed."""
    removed = await store.cleanup_expired()
    record_cleanup(removed)
    if removed:
        logger.info("cleanup.swept", store=type(store).__name__, removed=removed)
    return removed


async def cleanup_loop(
    store: ExpiringStore,
    interval_seconds: float = 300,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Sweep ``store`` every ``interval_seconds`` until ``stop_event`` is set.

    A failed sweep is logged and the loop carries on; the next interval
    tries again.
    """
    stop_event = stop_event or asyncio.Event()
    logger.info("cleanup.started", store=type(store).__name__, interval_seconds=interval_seconds)

    while not stop_event.is_set():
        try:
            await sweep_once(store)
        except Exception as e:
            logger.error("cleanup.failed", error=str(e), error_type=type(e).__name__)

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass

    logger.info("cleanup.stopped")


async def start_cleanup_task(
    store: ExpiringStore,
    interval_seconds: float = 300,
) -> asyncio.Task[None]:
    """Run ``cleanup_loop`` in the background.

    The returned task carries its stop event; hand it to stop_cleanup_task().
    """
    stop_event = asyncio.Event()
    task = asyncio.create_task(cleanup_loop(store, interval_seconds, stop_event))
    task._stop_event = stop_event  # type: ignore[attr-defined]
    return task


async def stop_cleanup_task(task: asyncio.Task[None]) -> None:
    """Signal the sweeper to stop and wait for it, cancelling it if it hangs."""
    stop_event: asyncio.Event | None = getattr(task, "_stop_event", None)
    if stop_event is not None:
        stop_event.set()

    try:
        await asyncio.wait_for(task, timeout=STOP_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning("cleanup.stop_timeout", timeout_seconds=STOP_TIMEOUT_SECONDS)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("cleanup.cancelled")
