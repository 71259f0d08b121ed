"""Scenario 3: Fail Open

Infrastructure failures on the caching path must never prevent the client
from receiving the handler's correct response:
- Store read failures are treated as misses
- Store write failures still return the live response
- Corrupted stored snapshots are treated as misses
- Session identity failures disable caching for the request
- Handler errors pass through untouched
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from idempotent_replay.adapters.asgi import ASGIIdempotencyMiddleware
from idempotent_replay.config import IdempotencyConfig
from idempotent_replay.exceptions import IdentityError, StorageError
from idempotent_replay.fingerprint import compute_fingerprint
from idempotent_replay.models import Request


class FlakyStore:
    """Store that can be told to fail reads, writes, or return corrupt data."""

    def __init__(self) -> None:
        self.data: dict[tuple[str, str], bytes] = {}
        self.fail_get = False
        self.fail_set = False

    async def get(self, session_id: str, key: str) -> bytes | None:
        if self.fail_get:
            raise StorageError("read timed out", operation="get")
        return self.data.get((session_id, key))

    async def set(self, session_id: str, key: str, value: bytes, ttl_seconds: int) -> None:
        if self.fail_set:
            raise StorageError("write refused", operation="set")
        self.data[(session_id, key)] = value


class Counter:
    def __init__(self) -> None:
        self.value = 0


@pytest.fixture
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def counter() -> Counter:
    return Counter()


def build_app(store, counter, **middleware_options) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        ASGIIdempotencyMiddleware,
        store=store,
        config=IdempotencyConfig().use_idempotency_key_header(),
        **middleware_options,
    )

    @app.post("/charge")
    async def charge():
        counter.value += 1
        return PlainTextResponse(f"charge #{counter.value}", status_code=201)

    @app.post("/invalid")
    async def invalid():
        counter.value += 1
        raise HTTPException(status_code=422, detail="amount missing")

    return app


@pytest.fixture
def client(flaky_store, counter) -> TestClient:
    return TestClient(build_app(flaky_store, counter))


def test_read_failure_serves_live_response(client, flaky_store, counter):
    flaky_store.fail_get = True

    first = client.post("/charge", headers={"idempotency-key": "k"})
    second = client.post("/charge", headers={"idempotency-key": "k"})

    assert first.status_code == second.status_code == 201
    assert first.text == "charge #1"
    assert second.text == "charge #2"
    assert "idempotency-replayed" not in second.headers


def test_write_failure_serves_live_response(client, flaky_store, counter):
    flaky_store.fail_set = True

    response = client.post("/charge", headers={"idempotency-key": "k"})

    assert response.status_code == 201
    assert response.text == "charge #1"
    assert flaky_store.data == {}


def test_recovers_once_store_is_healthy(client, flaky_store, counter):
    flaky_store.fail_set = True
    client.post("/charge", headers={"idempotency-key": "k"})

    flaky_store.fail_set = False
    second = client.post("/charge", headers={"idempotency-key": "k"})
    third = client.post("/charge", headers={"idempotency-key": "k"})

    assert second.text == "charge #2"
    assert third.text == "charge #2"
    assert third.headers["idempotency-replayed"] == "true"


def test_corrupted_snapshot_is_treated_as_miss(client, flaky_store, counter):
    client.post("/charge", headers={"idempotency-key": "k"})
    ((session_id, key),) = flaky_store.data.keys()
    flaky_store.data[(session_id, key)] = b'{"v": 99, "truncated'

    response = client.post("/charge", headers={"idempotency-key": "k"})

    assert response.text == "charge #2"
    assert "idempotency-replayed" not in response.headers


def test_handler_errors_pass_through(client, counter):
    response = client.post("/invalid", headers={"idempotency-key": "k"})

    assert response.status_code == 422
    assert response.json() == {"detail": "amount missing"}


def test_malformed_session_cookie_disables_caching(client, counter):
    client.cookies.set("session", "not valid!")

    first = client.post("/charge", headers={"idempotency-key": "k"})
    second = client.post("/charge", headers={"idempotency-key": "k"})

    assert first.text == "charge #1"
    assert second.text == "charge #2"


def test_custom_session_resolver(flaky_store, counter):
    def session_from_api_key(request):
        api_key = request.headers.get("x-api-key")
        if not api_key:
            raise IdentityError("missing x-api-key")
        return api_key

    client = TestClient(build_app(flaky_store, counter, session_resolver=session_from_api_key))

    first = client.post("/charge", headers={"idempotency-key": "k", "x-api-key": "alice"})
    second = client.post("/charge", headers={"idempotency-key": "k", "x-api-key": "alice"})
    other = client.post("/charge", headers={"idempotency-key": "k", "x-api-key": "bob"})
    anonymous = client.post("/charge", headers={"idempotency-key": "k"})

    assert first.text == second.text == "charge #1"
    assert "set-cookie" not in first.headers
    assert other.text == "charge #2"
    assert anonymous.text == "charge #3"
    assert ("alice", "k") in flaky_store.data


def test_stored_key_matches_fingerprint(flaky_store, counter):
    config = IdempotencyConfig().use_idempotency_key_header()
    client = TestClient(build_app(flaky_store, counter, session_resolver=lambda request: "s"))

    client.post("/charge", headers={"idempotency-key": "order-77"})
    expected = compute_fingerprint(
        Request("POST", "/charge", headers=[("idempotency-key", "order-77")]), config
    )

    assert ("s", expected) in flaky_store.data
