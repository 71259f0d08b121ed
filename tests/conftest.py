"""
Pytest configuration and shared fixtures for idempotent_replay tests.
"""

import pytest

from idempotent_replay.models import Request
from idempotent_replay.storage.memory import MemorySessionStore


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock starting at an arbitrary time."""
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemorySessionStore:
    """Provide a fresh in-memory store driven by the fake clock."""
    return MemorySessionStore(clock=clock)


@pytest.fixture
def sample_request() -> Request:
    """Provide a sample POST request for tests."""
    return Request(
        method="POST",
        path="/test",
        query_string="",
        headers=[("content-type", "text/plain"), ("x-tenant", "acme")],
        body=b"test",
    )
