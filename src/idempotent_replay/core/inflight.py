"""In-flight registry for coalescing concurrent identical requests.

Without coordination, two identical requests that arrive before either has
written its cache entry both miss and both run the handler. The registry
closes that window inside one process: the first request for a
``(session_id, fingerprint)`` pair becomes the leader, and later arrivals
await the leader's captured snapshot instead of executing again.

Followers receive ``None`` when the leader produced nothing replayable (a
status excluded from caching, or an exception). They then run the handler
themselves, exactly as they would without the registry.

Examples:
    Leader and follower::

        registry = InFlightRegistry()

        is_leader, waiter = await registry.claim(("s-1", fingerprint))
        if is_leader:
            try:
                snapshot = await run_and_capture()
            finally:
                await registry.release(("s-1", fingerprint), snapshot)
        else:
            snapshot = await registry.wait(waiter)
"""

import asyncio

InFlightKey = tuple[str, str]


class InFlightRegistry:
    """Maps in-flight request identities to a pending completion signal.

    Attributes:
        _pending: Futures resolved with the leader's snapshot bytes or None.
        _lock: Protects _pending.
    """

    def __init__(self) -> None:
        self._pending: dict[InFlightKey, asyncio.Future[bytes | None]] = {}
        self._lock = asyncio.Lock()

    async def claim(self, key: InFlightKey) -> tuple[bool, asyncio.Future[bytes | None]]:
        """Register interest in ``key``.

        Returns:
            (True, future) if the caller is the leader and must call
            release(), or (False, future) to wait on the existing leader.
        """
        async with self._lock:
            existing = self._pending.get(key)
            if existing is not None:
                return False, existing

            future: asyncio.Future[bytes | None] = asyncio.get_running_loop().create_future()
            self._pending[key] = future
            return True, future

    async def release(self, key: InFlightKey, snapshot: bytes | None) -> None:
        """Resolve the waiters of ``key`` and forget it.

        Args:
            key: The key claimed by the leader.
            snapshot: Encoded response for followers, or None if they must
                execute themselves.
        """
        async with self._lock:
            future = self._pending.pop(key, None)

        if future is not None and not future.done():
            future.set_result(snapshot)

    async def wait(self, future: asyncio.Future[bytes | None]) -> bytes | None:
        """Await a leader's outcome without letting a cancelled follower cancel it."""
        return await asyncio.shield(future)

    def __len__(self) -> int:
        return len(self._pending)
