"""Session-scoped view of a store.

A ``Session`` binds a ``SessionStore`` to one caller identity, so the
orchestrator only ever deals with ``get(key)`` and ``set(key, value, ttl)``.
How the identity is obtained (cookie, API token, tenant id) is up to the
framework adapter.
"""

from idempotent_replay.storage.base import SessionStore


class Session:
    """A store namespace belonging to a single caller.

    Attributes:
        session_id: Opaque identity of the caller.
        store: The backing session store.
    """

    def __init__(self, session_id: str, store: SessionStore) -> None:
        self.session_id = session_id
        self.store = store

    async def get(self, key: str) -> bytes | None:
        return await self.store.get(self.session_id, key)

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        await self.store.set(self.session_id, key, value, ttl_seconds)

    def __repr__(self) -> str:
        return f"Session(session_id={self.session_id!r})"
