"""Request fingerprinting for idempotency.

A fingerprint is the opaque identity of a request: two requests with the same
fingerprint (within the same session) are treated as the same logical
operation. It is derived in one of two modes:

1. Direct key mode: the value of a client-supplied header is used verbatim.
   No hashing takes place and nothing else of the request is read, so the key
   an operator sees in logs is the cache key.
2. Hashing mode: a SHA-256 digest over canonical representations of the
   method, path (with query string), filtered headers and, unless ignored,
   the body.

Hashing the body requires the whole body to be buffered before the request is
forwarded. Streaming semantics are not preserved in that mode.
"""

import hashlib
import json

from idempotent_replay.config import IdempotencyConfig
from idempotent_replay.models import Request
from idempotent_replay.utils.headers import (
    BODY_FRAMING_HEADERS,
    get_header_value,
    select_fingerprint_headers,
)


def compute_fingerprint(request: Request, config: IdempotencyConfig) -> str | None:
    """Compute the fingerprint of a request.

    Args:
        request: The incoming request
        config: Engine configuration

    Returns:
        The client-supplied key in direct key mode, a 64 character hex
        SHA-256 digest in hashing mode, or None when direct key mode is on
        and the request carries no key (caching is skipped for it).

    Examples:
        >>> request = Request("POST", "/payments", headers=[("Idempotency-Key", "k-1")])
        >>> compute_fingerprint(request, IdempotencyConfig().use_idempotency_key_header())
        'k-1'
    """
    if config.direct_key_mode:
        return extract_direct_key(request, config.direct_key_header_name)

    return hash_request(request, config)


def extract_direct_key(request: Request, header_name: str) -> str | None:
    """Return the raw value of the key header, or None if absent or empty."""
    value = get_header_value(request.headers, header_name)
    if not value:
        return None
    return value


def hash_request(request: Request, config: IdempotencyConfig) -> str:
    """Compute the hashing-mode fingerprint of a request.

    The canonical input is, in order and newline separated:
    1. Method, uppercased
    2. Path including the query string, unchanged
    3. Surviving headers as a JSON array of [name, value] pairs, sorted
    4. Body SHA-256 digest (omitted when ``config.ignore_body`` is set)

    Returns:
        Hexadecimal SHA-256 hash string (64 characters)
    """
    components = [
        request.method.upper(),
        request.path_with_query,
        _canonicalize_headers(request, config),
    ]

    if not config.ignore_body:
        components.append(hashlib.sha256(request.body).hexdigest())

    fingerprint_input = "\n".join(components)
    return hashlib.sha256(fingerprint_input.encode("utf-8")).hexdigest()


def _canonicalize_headers(request: Request, config: IdempotencyConfig) -> str:
    """Filter and sort request headers and encode them as compact JSON."""
    if config.ignore_all_headers:
        return "[]"

    ignored_names = config.ignored_request_headers
    if config.ignore_body:
        ignored_names = ignored_names | BODY_FRAMING_HEADERS

    selected = select_fingerprint_headers(
        request.headers,
        ignored_names=ignored_names,
        ignored_values=config.ignored_header_values,
    )
    return json.dumps(selected, separators=(",", ":"))
