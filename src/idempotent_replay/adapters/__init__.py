"""Framework adapters for the idempotent replay engine.

This package provides adapters that integrate the framework-agnostic
orchestrator with specific web frameworks:

- asgi.py: ASGI middleware for FastAPI, Starlette, etc.

The adapters handle the conversion between framework-specific request and
response objects and the engine's internal representation, and decide how a
caller's session id is obtained.
"""

from idempotent_replay.adapters.asgi import ASGIIdempotencyMiddleware

__all__ = ["ASGIIdempotencyMiddleware"]
