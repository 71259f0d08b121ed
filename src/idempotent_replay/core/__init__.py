"""Core control flow of the idempotent replay engine.

This package contains the framework-agnostic logic:
- Orchestrator: replay-or-execute decision and conditional caching
- In-flight registry: optional coalescing of concurrent identical requests
- Cleanup: periodic sweep of expired in-memory entries

Framework adapters wrap the orchestrator for specific web frameworks.
"""

from idempotent_replay.core.orchestrator import ReplayOrchestrator, ReplayResult

__all__ = ["ReplayOrchestrator", "ReplayResult"]
