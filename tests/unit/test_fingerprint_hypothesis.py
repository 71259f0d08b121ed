"""Property-based tests for fingerprinting using Hypothesis.

Verifies determinism, header order independence and the effect of the
ignore options across diverse inputs.
"""

from hypothesis import assume, given
from hypothesis import strategies as st

from idempotent_replay.config import IdempotencyConfig
from idempotent_replay.fingerprint import compute_fingerprint
from idempotent_replay.models import Request

http_method_strategy = st.sampled_from(["POST", "PUT", "PATCH", "DELETE"])

path_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("Ll", "Lu", "Nd"), whitelist_characters="/-_"),
    min_size=0,
    max_size=60,
).map(lambda s: "/" + s.strip("/"))

query_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("Ll", "Nd"), whitelist_characters="=&"),
    max_size=40,
)

header_name_strategy = st.sampled_from(
    ["Content-Type", "X-Tenant", "Authorization", "X-Request-ID", "User-Agent", "Accept"]
)
header_value_strategy = st.text(
    alphabet=st.characters(min_codepoint=0x20, max_codepoint=0x7E), max_size=40
)
headers_strategy = st.lists(st.tuples(header_name_strategy, header_value_strategy), max_size=8)

body_strategy = st.binary(max_size=2048)


@given(
    method=http_method_strategy,
    path=path_strategy,
    query=query_strategy,
    headers=headers_strategy,
    body=body_strategy,
)
def test_fingerprint_is_deterministic(
    method: str,
    path: str,
    query: str,
    headers: list[tuple[str, str]],
    body: bytes,
) -> None:
    config = IdempotencyConfig()

    first = compute_fingerprint(Request(method, path, query, headers, body), config)
    second = compute_fingerprint(Request(method, path, query, list(headers), bytes(body)), config)

    assert first == second
    assert first is not None
    assert len(first) == 64


@given(headers=headers_strategy, data=st.data())
def test_header_order_independence(headers: list[tuple[str, str]], data: st.DataObject) -> None:
    config = IdempotencyConfig()
    shuffled = data.draw(st.permutations(headers))

    assert compute_fingerprint(Request("POST", "/", headers=headers), config) == (
        compute_fingerprint(Request("POST", "/", headers=list(shuffled)), config)
    )


@given(first=body_strategy, second=body_strategy)
def test_body_sensitivity(first: bytes, second: bytes) -> None:
    assume(first != second)
    config = IdempotencyConfig()

    assert compute_fingerprint(Request("POST", "/", body=first), config) != (
        compute_fingerprint(Request("POST", "/", body=second), config)
    )


@given(first=body_strategy, second=body_strategy)
def test_ignored_body_never_affects_fingerprint(first: bytes, second: bytes) -> None:
    config = IdempotencyConfig().with_ignore_body()

    assert compute_fingerprint(Request("POST", "/", body=first), config) == (
        compute_fingerprint(Request("POST", "/", body=second), config)
    )


@given(first=headers_strategy, second=headers_strategy)
def test_ignored_headers_never_affect_fingerprint(
    first: list[tuple[str, str]], second: list[tuple[str, str]]
) -> None:
    config = IdempotencyConfig().with_ignore_all_headers()

    assert compute_fingerprint(Request("POST", "/", headers=first), config) == (
        compute_fingerprint(Request("POST", "/", headers=second), config)
    )


@given(key=st.text(min_size=1, max_size=100), body=body_strategy)
def test_direct_key_is_verbatim(key: str, body: bytes) -> None:
    config = IdempotencyConfig().use_idempotency_key_header()
    request = Request("POST", "/", headers=[("Idempotency-Key", key)], body=body)

    assert compute_fingerprint(request, config) == key
