"""Header filtering and manipulation utilities.

This module provides functions for:
- Case-insensitive lookup on ordered header lists
- Filtering hop-by-hop headers out of captured responses
- Setting and removing the replay marker
- Selecting the request headers that take part in fingerprinting
"""

# Headers describing a single connection; they are not part of the response
# that is captured for replay
HOP_BY_HOP_HEADERS = {
    "connection",
    "transfer-encoding",
    "keep-alive",
    "trailer",
    "upgrade",
    "proxy-connection",
    "proxy-authenticate",
    "proxy-authorization",
}

# Request headers that only describe the body framing; they follow the body
# out of the fingerprint when the body is ignored
BODY_FRAMING_HEADERS = frozenset({"content-length", "transfer-encoding"})


def get_header_value(
    headers: list[tuple[str, str]],
    header_name: str,
    default: str | None = None,
) -> str | None:
    """Get the first value of a header with case-insensitive lookup.

    Args:
        headers: Ordered (name, value) pairs
        header_name: Name of header to find (case-insensitive)
        default: Default value if header not found

    Returns:
        Header value or default

    Example:
        >>> headers = [("Content-Type", "application/json")]
        >>> get_header_value(headers, "content-type")
        'application/json'
        >>> get_header_value(headers, "missing", "default")
        'default'
    """
    header_name_lower = header_name.lower()

    for key, value in headers:
        if key.lower() == header_name_lower:
            return value

    return default


def remove_header(headers: list[tuple[str, str]], header_name: str) -> list[tuple[str, str]]:
    """Return a copy of ``headers`` without any occurrence of ``header_name``."""
    header_name_lower = header_name.lower()
    return [(key, value) for key, value in headers if key.lower() != header_name_lower]


def set_header(
    headers: list[tuple[str, str]],
    header_name: str,
    value: str,
) -> list[tuple[str, str]]:
    """Return a copy of ``headers`` with ``header_name`` set to a single value.

    Any existing occurrences, in any letter case, are replaced.

    Example:
        >>> set_header([("Idempotency-Replayed", "false")], "idempotency-replayed", "true")
        [('idempotency-replayed', 'true')]
    """
    result = remove_header(headers, header_name)
    result.append((header_name, value))
    return result


def filter_response_headers(
    headers: list[tuple[str, str]],
    additional_excluded: list[str] | None = None,
) -> list[tuple[str, str]]:
    """Drop hop-by-hop headers from captured response headers.

    Args:
        headers: Original response headers
        additional_excluded: Additional header names to remove (case-insensitive)

    Returns:
        Filtered headers in their original order

    Example:
        >>> headers = [
        ...     ("Content-Type", "application/json"),
        ...     ("Transfer-Encoding", "chunked"),
        ... ]
        >>> filter_response_headers(headers)
        [('Content-Type', 'application/json')]
    """
    headers_to_remove = HOP_BY_HOP_HEADERS.copy()

    if additional_excluded:
        headers_to_remove.update(h.lower() for h in additional_excluded)

    return [(key, value) for key, value in headers if key.lower() not in headers_to_remove]


def select_fingerprint_headers(
    headers: list[tuple[str, str]],
    ignored_names: frozenset[str] | set[str],
    ignored_values: dict[str, str],
) -> list[tuple[str, str]]:
    """Select and canonicalize the request headers that take part in hashing.

    A header is dropped when its name is in ``ignored_names``, or when
    ``ignored_values`` maps its name to exactly its value. Survivors are
    lowercased and sorted by name, then value, since wire order is not stable
    between logically identical requests.

    Args:
        headers: Request headers as (name, value) pairs
        ignored_names: Lowercase header names to drop
        ignored_values: Lowercase header name to the exact value to drop

    Returns:
        Sorted (lowercase name, value) pairs

    Example:
        >>> select_fingerprint_headers(
        ...     [("X-Tenant", "a"), ("X-Debug", "1"), ("User-Agent", "curl")],
        ...     ignored_names={"user-agent"},
        ...     ignored_values={"x-debug": "1"},
        ... )
        [('x-tenant', 'a')]
    """
    selected: list[tuple[str, str]] = []
    for key, value in headers:
        key_lower = key.lower()
        if key_lower in ignored_names:
            continue
        if key_lower in ignored_values and ignored_values[key_lower] == value:
            continue
        selected.append((key_lower, value))

    return sorted(selected)
