"""Caching policy decisions.

Pure functions of the configuration and a request's state. Transient and
client-error outcomes are excluded from caching by default so that a retry
after the condition clears reaches the handler again.
"""

from idempotent_replay.config import IdempotencyConfig


def is_cacheable(status_code: int, config: IdempotencyConfig) -> bool:
    """Whether a response with ``status_code`` may be written to the cache.

    Examples:
        >>> is_cacheable(201, IdempotencyConfig())
        True
        >>> is_cacheable(503, IdempotencyConfig())
        False
    """
    return status_code not in config.ignored_response_status_codes


def should_use_cache(fingerprint: str | None) -> bool:
    """Whether lookups and writes happen at all for a request."""
    return fingerprint is not None


def requires_body(config: IdempotencyConfig) -> bool:
    """Whether the request body must be buffered to compute the fingerprint.

    Adapters use this to avoid reading the body in direct key mode or when the
    body is ignored.
    """
    return not (config.direct_key_mode or config.ignore_body)
