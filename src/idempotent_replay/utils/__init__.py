"""Utility modules for the idempotent replay engine."""

from .headers import (
    BODY_FRAMING_HEADERS,
    HOP_BY_HOP_HEADERS,
    filter_response_headers,
    get_header_value,
    remove_header,
    select_fingerprint_headers,
    set_header,
)

__all__ = [
    "filter_response_headers",
    "get_header_value",
    "remove_header",
    "select_fingerprint_headers",
    "set_header",
    "BODY_FRAMING_HEADERS",
    "HOP_BY_HOP_HEADERS",
]
