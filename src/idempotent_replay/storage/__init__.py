"""Session stores for the idempotent replay engine.

This package provides storage backend implementations for cached response
snapshots. All stores implement the SessionStore protocol defined in base.py.

Available Stores:
    - MemorySessionStore: In-process storage with lazy TTL expiry
    - RedisSessionStore: Redis-based distributed storage
"""

from idempotent_replay.storage.base import ExpiringStore, SessionStore
from idempotent_replay.storage.memory import MemorySessionStore

__all__ = [
    "ExpiringStore",
    "SessionStore",
    "MemorySessionStore",
]
