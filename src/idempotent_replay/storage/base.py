"""Session store protocol for the idempotent replay engine.

This module defines the narrow capability interface that storage backends
implement: read a value and write a value with a TTL, both scoped to a
session identity so that different callers' identical fingerprints never
collide. In-memory, Redis or database-backed stores satisfy it
interchangeably; no base class is required.

Examples:
    Implementing a custom store::

        class MyStore:
            async def get(self, session_id: str, key: str) -> bytes | None:
                return await self.backend.get(f"{session_id}:{key}")

            async def set(
                self,
                session_id: str,
                key: str,
                value: bytes,
                ttl_seconds: int,
            ) -> None:
                await self.backend.put(f"{session_id}:{key}", value, ttl=ttl_seconds)

Requirements:
    All SessionStore implementations MUST guarantee:

    1. **Whole-value writes**: set() stores the complete value or nothing.
       A reader never observes a partially written value.

    2. **Expiration handling**: entries whose TTL has elapsed are treated as
       non-existent by get().

    3. **Concurrent safety**: concurrent calls from many asyncio tasks must not
       corrupt data.

    4. **Error wrapping**: backend failures are raised as StorageError, not as
       backend-specific exceptions.

    Store operations should carry the same timeout and retry policy as other
    calls to the backend; the engine itself adds none.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class SessionStore(Protocol):
    """Protocol defining the interface for session-scoped storage backends."""

    async def get(self, session_id: str, key: str) -> bytes | None:
        """Retrieve a value stored for a session.

        Args:
            session_id: Opaque identity of the caller.
            key: Key within the session (the request fingerprint).

        Returns:
            The stored bytes, or None if absent or expired.

        Raises:
            StorageError: If the backend cannot be read.
        """
        ...

    async def set(self, session_id: str, key: str, value: bytes, ttl_seconds: int) -> None:
        """Store a value for a session with a time-to-live.

        Args:
            session_id: Opaque identity of the caller.
            key: Key within the session (the request fingerprint).
            value: Bytes to store.
            ttl_seconds: Lifetime of the entry in seconds.

        Raises:
            StorageError: If the backend cannot be written.
        """
        ...


@runtime_checkable
class ExpiringStore(Protocol):
    """Stores that need an explicit sweep to reclaim expired entries."""

    async def cleanup_expired(self) -> int:
        """Remove expired entries and return how many were removed."""
        ...
