"""Scenario 1: Hashing Mode Replay

This module tests the core replay flow with fingerprints derived by hashing:
- First request executes the handler and its response is cached
- An identical request in the same session returns the cached response
  with the replay marker set
- After the TTL elapses the handler runs again, without the marker
- Requests differing in body, path or relevant headers are not replayed
- The request body still reaches the handler after being hashed
"""

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.testclient import TestClient

from idempotent_replay.adapters.asgi import ASGIIdempotencyMiddleware
from idempotent_replay.config import IdempotencyConfig
from idempotent_replay.storage.memory import MemorySessionStore


class Counter:
    def __init__(self) -> None:
        self.value = 0

    def next(self) -> int:
        current = self.value
        self.value += 1
        return current


@pytest.fixture
def counter() -> Counter:
    return Counter()


@pytest.fixture
def config() -> IdempotencyConfig:
    return IdempotencyConfig().expire_after(3)


@pytest.fixture
def app(store: MemorySessionStore, config: IdempotencyConfig, counter: Counter) -> FastAPI:
    """Create a FastAPI app with the replay middleware."""
    test_app = FastAPI()

    test_app.add_middleware(
        ASGIIdempotencyMiddleware,
        store=store,
        config=config,
    )

    @test_app.post("/test")
    async def increment():
        return PlainTextResponse(f"Response #{counter.next()}")

    @test_app.post("/other")
    async def other():
        return PlainTextResponse(f"Other #{counter.next()}")

    @test_app.post("/echo")
    async def echo(request: Request):
        body = await request.body()
        return JSONResponse(
            {"received": body.decode(), "call": counter.next()},
            status_code=201,
            headers={"x-charge-id": f"ch_{counter.value}"},
        )

    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def test_basic_idempotency_with_hashing(client, clock, counter):
    """Replay within the TTL, fresh execution after it."""
    response1 = client.post("/test", content=b"test")
    assert response1.text == "Response #0"
    assert "idempotency-replayed" not in response1.headers
    assert "session" in response1.cookies

    response2 = client.post("/test", content=b"test")
    assert response2.text == "Response #0"
    assert response2.headers["idempotency-replayed"] == "true"
    assert counter.value == 1

    clock.advance(3)

    response3 = client.post("/test", content=b"test")
    assert response3.text == "Response #1"
    assert "idempotency-replayed" not in response3.headers
    assert counter.value == 2


def test_replay_preserves_status_headers_and_body(client, counter):
    first = client.post("/echo", content=b"charge 100")
    second = client.post("/echo", content=b"charge 100")

    assert first.status_code == second.status_code == 201
    assert first.json() == second.json() == {"received": "charge 100", "call": 0}
    assert first.headers["x-charge-id"] == second.headers["x-charge-id"]
    assert second.headers["content-type"] == "application/json"
    assert second.headers["content-length"] == str(len(second.content))
    assert counter.value == 1


def test_body_reaches_handler_after_hashing(client):
    response = client.post("/echo", content=b'{"amount": 42}')
    assert response.json()["received"] == '{"amount": 42}'


def test_different_body_is_a_different_request(client, counter):
    first = client.post("/test", content=b"one")
    second = client.post("/test", content=b"two")

    assert first.text == "Response #0"
    assert second.text == "Response #1"
    assert "idempotency-replayed" not in second.headers


def test_different_path_is_a_different_request(client, counter):
    client.post("/test", content=b"test")
    response = client.post("/other", content=b"test")

    assert response.text == "Other #1"


def test_query_string_is_part_of_identity(client):
    first = client.post("/test?page=1", content=b"test")
    second = client.post("/test?page=2", content=b"test")
    third = client.post("/test?page=1", content=b"test")

    assert first.text == "Response #0"
    assert second.text == "Response #1"
    assert third.text == "Response #0"


def test_relevant_header_changes_identity(client):
    first = client.post("/test", content=b"test", headers={"x-tenant": "acme"})
    second = client.post("/test", content=b"test", headers={"x-tenant": "globex"})

    assert first.text == "Response #0"
    assert second.text == "Response #1"


def test_default_ignored_headers_do_not_change_identity(client):
    first = client.post("/test", content=b"test", headers={"user-agent": "client/1"})
    second = client.post("/test", content=b"test", headers={"user-agent": "client/2"})

    assert second.text == first.text == "Response #0"
    assert second.headers["idempotency-replayed"] == "true"


def test_new_session_does_not_see_other_sessions_entries(app, client):
    client.post("/test", content=b"test")

    fresh_client = TestClient(app)
    response = fresh_client.post("/test", content=b"test")

    assert response.text == "Response #1"
    assert "idempotency-replayed" not in response.headers


def test_session_cookie_issued_only_once(client):
    first = client.post("/test", content=b"test")
    second = client.post("/test", content=b"test")

    assert "set-cookie" in first.headers
    assert "set-cookie" not in second.headers


class TestValueSpecificHeaderExclusion:
    """A header is ignored only when it carries the configured value."""

    @pytest.fixture
    def config(self) -> IdempotencyConfig:
        return IdempotencyConfig().ignore_header_with_value("x-debug", "1")

    def test_matching_value_is_ignored(self, client):
        first = client.post("/test", content=b"test")
        second = client.post("/test", content=b"test", headers={"x-debug": "1"})

        assert second.text == first.text == "Response #0"

    def test_other_value_is_hashed(self, client):
        first = client.post("/test", content=b"test", headers={"x-debug": "1"})
        second = client.post("/test", content=b"test", headers={"x-debug": "2"})

        assert first.text == "Response #0"
        assert second.text == "Response #1"


class TestIgnoreBody:
    """With the body ignored, differing bodies are the same operation."""

    @pytest.fixture
    def config(self) -> IdempotencyConfig:
        return IdempotencyConfig().with_ignore_body(True)

    def test_different_bodies_replay(self, client, counter):
        first = client.post("/test", content=b"first body")
        second = client.post("/test", content=b"second body")

        assert first.text == second.text == "Response #0"
        assert second.headers["idempotency-replayed"] == "true"
        assert counter.value == 1

    def test_handler_still_receives_body(self, client):
        response = client.post("/echo", content=b"payload")
        assert response.json()["received"] == "payload"
