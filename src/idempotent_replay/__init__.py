"""Request deduplication for Python web applications.

This package replays the original response for a logically identical request
retried within a configured window, instead of re-executing side-effecting
handler logic. Request identity comes either from a client-supplied key
header or from a hash of the method, path, headers and body.
"""

from idempotent_replay.codec import decode_response, encode_response
from idempotent_replay.config import IdempotencyConfig
from idempotent_replay.core.orchestrator import ReplayOrchestrator, ReplayResult
from idempotent_replay.fingerprint import compute_fingerprint
from idempotent_replay.models import Outcome, Request, Response
from idempotent_replay.session import Session
from idempotent_replay.storage import MemorySessionStore, SessionStore

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "IdempotencyConfig",
    "MemorySessionStore",
    "Outcome",
    "ReplayOrchestrator",
    "ReplayResult",
    "Request",
    "Response",
    "Session",
    "SessionStore",
    "compute_fingerprint",
    "decode_response",
    "encode_response",
]
