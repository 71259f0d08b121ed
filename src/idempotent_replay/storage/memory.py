"""In-memory session store.

This module provides an in-process implementation of the SessionStore
protocol. Entries are kept in a dictionary keyed by ``(session_id, key)``
together with their expiry time.

The MemorySessionStore is suitable for:
    - Single-process applications
    - Development and testing

For multiple workers or hosts, use RedisSessionStore instead.

Expiry:
    - Expired entries are invisible to get() immediately
    - Their memory is reclaimed lazily on access or by cleanup_expired(),
      which the cleanup task in core.cleanup calls periodically

Examples:
    Basic usage::

        from idempotent_replay.storage.memory import MemorySessionStore

        store = MemorySessionStore()
        await store.set("session-1", "fingerprint", b"snapshot", ttl_seconds=300)
        data = await store.get("session-1", "fingerprint")
"""

import asyncio
import time
from collections.abc import Callable


class MemorySessionStore:
    """In-memory session store with TTL expiry.

    Attributes:
        _store: Maps (session_id, key) to (value, expires_at).
        _clock: Monotonic time source in seconds.
        _lock: Protects _store during sweeps.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize an empty store.

        Args:
            clock: Time source in seconds. Tests inject a fake clock to
                control expiry.
        """
        self._store: dict[tuple[str, str], tuple[bytes, float]] = {}
        self._clock = clock
        self._lock = asyncio.Lock()

    async def get(self, session_id: str, key: str) -> bytes | None:
        entry = self._store.get((session_id, key))
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at <= self._clock():
            # Only drop the entry we looked at; a concurrent set may have replaced it
            if self._store.get((session_id, key)) is entry:
                del self._store[(session_id, key)]
            return None

        return value

    async def set(self, session_id: str, key: str, value: bytes, ttl_seconds: int) -> None:
        self._store[(session_id, key)] = (bytes(value), self._clock() + ttl_seconds)

    async def cleanup_expired(self) -> int:
        """Remove expired entries from the store.

        Returns:
            The number of entries removed.
        """
        async with self._lock:
            now = self._clock()
            expired_keys = [
                store_key
                for store_key, (_, expires_at) in self._store.items()
                if expires_at <= now
            ]
            for store_key in expired_keys:
                del self._store[store_key]

        return len(expired_keys)

    def __len__(self) -> int:
        return len(self._store)
