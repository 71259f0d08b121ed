"""Tests for the background cleanup task."""

import asyncio

import pytest

from idempotent_replay.core.cleanup import (
    cleanup_loop,
    start_cleanup_task,
    stop_cleanup_task,
    sweep_once,
)


class BrokenStore:
    def __init__(self) -> None:
        self.calls = 0

    async def cleanup_expired(self) -> int:
        self.calls += 1
        raise RuntimeError("sweep failed")


@pytest.mark.asyncio
async def test_cleanup_task_removes_expired_entries(store, clock):
    await store.set("s", "fp", b"value", ttl_seconds=1)
    clock.advance(2)

    task = await start_cleanup_task(store, interval_seconds=0.01)
    await asyncio.sleep(0.05)
    await stop_cleanup_task(task)

    assert len(store) == 0
    assert task.done()


@pytest.mark.asyncio
async def test_cleanup_keeps_live_entries(store):
    await store.set("s", "fp", b"value", ttl_seconds=60)

    task = await start_cleanup_task(store, interval_seconds=0.01)
    await asyncio.sleep(0.03)
    await stop_cleanup_task(task)

    assert await store.get("s", "fp") == b"value"


@pytest.mark.asyncio
async def test_cleanup_loop_survives_failures():
    broken = BrokenStore()
    stop_event = asyncio.Event()

    loop_task = asyncio.create_task(
        cleanup_loop(broken, interval_seconds=0.01, stop_event=stop_event)
    )
    await asyncio.sleep(0.05)
    stop_event.set()
    await loop_task

    assert broken.calls >= 2


@pytest.mark.asyncio
async def test_cleanup_loop_exits_when_already_stopped(store):
    stop_event = asyncio.Event()
    stop_event.set()

    await asyncio.wait_for(cleanup_loop(store, stop_event=stop_event), timeout=1)


@pytest.mark.asyncio
async def test_sweep_once_reports_removed_count(store, clock):
    await store.set("s", "old", b"1", ttl_seconds=1)
    await store.set("s", "new", b"2", ttl_seconds=60)
    clock.advance(5)

    assert await sweep_once(store) == 1
    assert await sweep_once(store) == 0
    assert len(store) == 1


@pytest.mark.asyncio
async def test_sweep_once_propagates_store_errors():
    with pytest.raises(RuntimeError, match="sweep failed"):
        await sweep_once(BrokenStore())
