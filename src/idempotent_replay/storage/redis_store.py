"""Redis-backed session store.

Each entry is a plain Redis string written with ``SET ... EX``, so expiry is
handled by Redis itself and no cleanup task is needed. Keys are laid out as
``{prefix}:{session_id}:{key}``.

Examples:
    Usage with redis-py's asyncio client::

        import redis.asyncio as redis

        from idempotent_replay.storage.redis_store import RedisSessionStore

        client = redis.Redis.from_url("redis://localhost:6379/0")
        store = RedisSessionStore(client)
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

from idempotent_replay.exceptions import StorageError


class RedisSessionStore:
    """Session store on top of a ``redis.asyncio.Redis`` client."""

    KEY_PREFIX = "idempotent"

    def __init__(self, redis_client: redis.Redis, prefix: str | None = None) -> None:
        self._redis = redis_client
        self._prefix = prefix or self.KEY_PREFIX

    def _full_key(self, session_id: str, key: str) -> str:
        return f"{self._prefix}:{session_id}:{key}"

    async def get(self, session_id: str, key: str) -> bytes | None:
        try:
            value = await self._redis.get(self._full_key(session_id, key))
        except RedisError as e:
            raise StorageError(f"Failed to read key from Redis: {e}", operation="get", cause=e) from e

        if value is None:
            return None
        if isinstance(value, str):
            # Client created with decode_responses=True
            return value.encode("utf-8")
        return bytes(value)

    async def set(self, session_id: str, key: str, value: bytes, ttl_seconds: int) -> None:
        try:
            await self._redis.set(self._full_key(session_id, key), value, ex=ttl_seconds)
        except RedisError as e:
            raise StorageError(f"Failed to write key to Redis: {e}", operation="set", cause=e) from e
