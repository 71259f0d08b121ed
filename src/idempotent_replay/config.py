"""Configuration module for the idempotent replay engine.

This module provides the IdempotencyConfig class, which controls how request
identity is derived (direct key header or request hashing), which parts of a
request take part in hashing, which response statuses are cached and for how
long.

Example:
    Basic usage with defaults (hashing mode, 5 minute TTL):

        >>> config = IdempotencyConfig()
        >>> config.cache_ttl_seconds
        300

    Builder-style configuration:

        >>> config = (
        ...     IdempotencyConfig()
        ...     .expire_after(60)
        ...     .ignore_header("x-request-id")
        ...     .ignore_header_with_value("x-debug", "1")
        ... )

    Direct key mode:

        >>> config = IdempotencyConfig().use_idempotency_key_header("Idempotency-Key")
        >>> config.ignore_body, config.ignore_all_headers
        (True, True)

    Loading from environment:

        >>> import os
        >>> os.environ['IDEMPOTENCY_CACHE_TTL_SECONDS'] = '3600'
        >>> os.environ['IDEMPOTENCY_IGNORED_RESPONSE_STATUS_CODES'] = '500,503'
        >>> config = IdempotencyConfig.from_env()
"""

import os
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

# Request headers that vary between clients sending the same logical request
DEFAULT_IGNORED_REQUEST_HEADERS = frozenset(
    {
        "user-agent",
        "accept",
        "accept-encoding",
        "accept-language",
        "cache-control",
        "connection",
        "cookie",
        "host",
        "pragma",
        "referer",
        "sec-fetch-dest",
        "sec-fetch-mode",
        "sec-fetch-site",
        "sec-ch-ua",
        "sec-ch-ua-mobile",
        "sec-ch-ua-platform",
    }
)

# Transient and client-error outcomes that must reach the handler again on retry
DEFAULT_IGNORED_RESPONSE_STATUS_CODES = frozenset({400, 401, 403, 408, 429, 500, 502, 503, 504})

_TRUTHY = {"1", "true", "yes", "on"}


class IdempotencyConfig(BaseModel):
    """Configuration for the idempotent replay engine.

    This immutable configuration is built once at startup and shared by
    reference across all concurrent requests.

    Attributes:
        direct_key_mode: Use the value of ``direct_key_header_name`` verbatim
            as the request fingerprint instead of hashing the request.
            Enabling it forces ``ignore_body`` and ``ignore_all_headers``.
        direct_key_header_name: Header carrying the client-supplied key.
            Default is "idempotency-key".
        ignore_body: Leave the request body out of the hash. Avoids buffering
            the body, at the cost of treating requests that differ only in
            body as the same operation.
        ignore_all_headers: Leave every header out of the hash.
        ignored_request_headers: Header names never hashed. Defaults to
            browser and transport headers such as user-agent and cookie.
        ignored_header_values: Header name to value pairs; a header is left
            out of the hash only when present with exactly this value.
        ignored_response_status_codes: Response statuses that are never
            cached. Defaults to 400, 401, 403, 408, 429, 500, 502, 503, 504.
        replay_header_name: Header set to "true" on replayed responses.
            Default is "idempotency-replayed".
        cache_ttl_seconds: Lifetime of a cached response in seconds.
            Must be between 1 and 604800 (7 days). Default is 300.
        single_flight: Make concurrent identical requests wait for the one
            already executing instead of running the handler again.

    Note:
        This class is immutable (frozen=True). The builder methods return a
        new validated instance and leave the original untouched.
    """

    direct_key_mode: bool = Field(
        default=False,
        description="Use a client-supplied header value as the fingerprint",
    )
    direct_key_header_name: str = Field(
        default="idempotency-key",
        description="Header carrying the client-supplied idempotency key",
    )
    ignore_body: bool = Field(
        default=False,
        description="Exclude the request body from the fingerprint",
    )
    ignore_all_headers: bool = Field(
        default=False,
        description="Exclude all request headers from the fingerprint",
    )
    ignored_request_headers: frozenset[str] = Field(
        default=DEFAULT_IGNORED_REQUEST_HEADERS,
        description="Request header names excluded from the fingerprint",
    )
    ignored_header_values: dict[str, str] = Field(
        default_factory=dict,
        description="Request headers excluded only when carrying exactly this value",
    )
    ignored_response_status_codes: frozenset[int] = Field(
        default=DEFAULT_IGNORED_RESPONSE_STATUS_CODES,
        description="Response status codes that are never cached",
    )
    replay_header_name: str = Field(
        default="idempotency-replayed",
        description="Header marking a replayed response",
    )
    cache_ttl_seconds: int = Field(
        default=300,
        description="Time-to-live in seconds for cached responses (1-604800)",
    )
    single_flight: bool = Field(
        default=False,
        description="Coalesce concurrent identical requests onto one execution",
    )

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def apply_direct_key_mode(cls, data: Any) -> Any:
        """Force header and body ignoring when direct key mode is enabled.

        The client-supplied key fully determines request identity, so no other
        part of the request may take part in it.
        """
        if isinstance(data, dict) and data.get("direct_key_mode"):
            data = {**data, "ignore_body": True, "ignore_all_headers": True}
        return data

    @field_validator("direct_key_header_name", "replay_header_name")
    @classmethod
    def validate_header_name(cls, v: str) -> str:
        """Normalize a header name to lowercase and reject empty names.

        Example:
            >>> IdempotencyConfig(replay_header_name="X-Replayed").replay_header_name
            'x-replayed'
        """
        v = v.strip().lower()
        if not v:
            raise ValueError("header name must not be empty")
        return v

    @field_validator("ignored_request_headers", mode="before")
    @classmethod
    def validate_ignored_request_headers(cls, v: Any) -> frozenset[str]:
        """Validate and normalize ignored header names.

        Accepts any iterable of names or a comma-separated string (from
        environment variables) and lowercases every name.
        """
        if isinstance(v, str):
            v = [name for name in v.split(",")]

        names = {str(name).strip().lower() for name in v}
        names.discard("")
        return frozenset(names)

    @field_validator("ignored_header_values", mode="before")
    @classmethod
    def validate_ignored_header_values(cls, v: Any) -> dict[str, str]:
        """Normalize header names of value-specific exclusions.

        Accepts a mapping or a comma-separated string of ``name=value`` pairs.
        Values are kept exactly as given since matching is exact.

        Example:
            >>> IdempotencyConfig(ignored_header_values="X-Debug=1").ignored_header_values
            {'x-debug': '1'}
        """
        if isinstance(v, str):
            pairs: dict[str, str] = {}
            for item in v.split(","):
                if not item.strip():
                    continue
                if "=" not in item:
                    raise ValueError(f"ignored_header_values entry {item!r} is not name=value")
                name, value = item.split("=", 1)
                pairs[name] = value
            v = pairs

        if not isinstance(v, dict):
            raise ValueError("ignored_header_values must be a mapping or name=value list")

        normalized: dict[str, str] = {}
        for name, value in v.items():
            name = str(name).strip().lower()
            if not name:
                raise ValueError("ignored_header_values contains an empty header name")
            normalized[name] = str(value)
        return normalized

    @field_validator("ignored_response_status_codes", mode="before")
    @classmethod
    def validate_ignored_response_status_codes(cls, v: Any) -> frozenset[int]:
        """Validate status codes are real HTTP status codes.

        Raises:
            ValueError: If any code is outside 100-599.
        """
        if isinstance(v, str):
            v = [code for code in v.split(",") if code.strip()]

        codes = {int(code) for code in v}
        invalid = sorted(code for code in codes if not (100 <= code <= 599))
        if invalid:
            raise ValueError(f"Invalid HTTP status codes: {', '.join(map(str, invalid))}")
        return frozenset(codes)

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_cache_ttl_seconds(cls, v: int) -> int:
        """Validate TTL is within acceptable range.

        Raises:
            ValueError: If TTL is not between 1 and 604800 (7 days).
        """
        if not (1 <= v <= 604800):
            raise ValueError(f"cache_ttl_seconds must be between 1 and 604800 (7 days), got {v}")
        return v

    def _evolve(self, **changes: Any) -> "IdempotencyConfig":
        """Return a new validated config with the given fields replaced."""
        return type(self)(**{**self.model_dump(), **changes})

    def expire_after(self, seconds: int) -> "IdempotencyConfig":
        """Set how long cached responses live, in seconds."""
        return self._evolve(cache_ttl_seconds=seconds)

    def with_ignore_body(self, ignore: bool = True) -> "IdempotencyConfig":
        """Include or exclude the request body from the fingerprint."""
        return self._evolve(ignore_body=ignore)

    def with_ignore_all_headers(self) -> "IdempotencyConfig":
        """Exclude every request header from the fingerprint.

        Only the method, path and body then determine request identity.
        """
        return self._evolve(ignore_all_headers=True)

    def ignore_header(self, name: str) -> "IdempotencyConfig":
        """Exclude a request header from the fingerprint."""
        return self._evolve(ignored_request_headers=self.ignored_request_headers | {name})

    def ignore_header_with_value(self, name: str, value: str) -> "IdempotencyConfig":
        """Exclude a request header only when it carries exactly ``value``.

        The same header with any other value still takes part in hashing.
        """
        return self._evolve(ignored_header_values={**self.ignored_header_values, name: value})

    def ignore_response_status_code(self, code: int) -> "IdempotencyConfig":
        """Never cache responses with this status code."""
        return self._evolve(
            ignored_response_status_codes=self.ignored_response_status_codes | {code}
        )

    def use_idempotency_key_header(self, name: str | None = None) -> "IdempotencyConfig":
        """Use a request header's value verbatim as the fingerprint.

        No part of the request is hashed: other headers and the body are
        ignored for identity purposes. Requests without the header are
        processed uncached.

        Args:
            name: Header name. Keeps the current name (default
                "idempotency-key") when omitted.
        """
        changes: dict[str, Any] = {"direct_key_mode": True}
        if name is not None:
            changes["direct_key_header_name"] = name
        return self._evolve(**changes)

    def with_replay_header_name(self, name: str) -> "IdempotencyConfig":
        """Set the header used to mark replayed responses."""
        return self._evolve(replay_header_name=name)

    def with_single_flight(self, enabled: bool = True) -> "IdempotencyConfig":
        """Coalesce concurrent identical requests onto a single execution."""
        return self._evolve(single_flight=enabled)

    @classmethod
    def from_env(cls, prefix: str = "IDEMPOTENCY_") -> "IdempotencyConfig":
        """Create configuration from environment variables.

        Variable names are uppercase field names with the prefix. Sets are
        comma-separated, ``IGNORED_HEADER_VALUES`` takes ``name=value`` pairs
        and booleans accept 1/true/yes/on.

        Example:
            >>> import os
            >>> os.environ['IDEMPOTENCY_DIRECT_KEY_MODE'] = 'true'
            >>> os.environ['IDEMPOTENCY_CACHE_TTL_SECONDS'] = '60'
            >>> config = IdempotencyConfig.from_env()
            >>> config.direct_key_mode, config.cache_ttl_seconds
            (True, 60)

        Note:
            Missing variables fall back to the defaults defined on the model.
        """
        config_dict: dict[str, Any] = {}

        # Map of field names to their types for proper conversion
        field_types = {
            "direct_key_mode": bool,
            "direct_key_header_name": str,
            "ignore_body": bool,
            "ignore_all_headers": bool,
            "ignored_request_headers": list,
            "ignored_header_values": dict,
            "ignored_response_status_codes": list,
            "replay_header_name": str,
            "cache_ttl_seconds": int,
            "single_flight": bool,
        }

        for field_name, field_type in field_types.items():
            env_var = f"{prefix}{field_name.upper()}"
            env_value = os.environ.get(env_var)

            if env_value is not None:
                if field_type is int:
                    config_dict[field_name] = int(env_value)
                elif field_type is bool:
                    config_dict[field_name] = env_value.strip().lower() in _TRUTHY
                else:
                    # Lists and mappings are parsed by the field validators
                    config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "IdempotencyConfig":
        """Create configuration from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)
