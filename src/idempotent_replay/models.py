"""Core type definitions and models for the idempotent replay engine.

This module provides the data structures shared across the package: the
framework-neutral request and response containers the orchestrator works on,
the outcome of processing a request, and the snapshot model that is
serialized into the session store.

Examples:
    Building a request for the orchestrator::

        from idempotent_replay.models import Request

        request = Request(
            method="POST",
            path="/payments",
            query_string="",
            headers=[("content-type", "application/json")],
            body=b'{"amount": 100}',
        )

    Capturing a response as a snapshot::

        import base64

        snapshot = ResponseSnapshot(
            status=201,
            headers=[("content-type", "application/json")],
            body_b64=base64.b64encode(b'{"id": "pay_1"}').decode("ascii"),
        )
"""

import base64
from enum import Enum

from pydantic import BaseModel, Field, field_validator

SNAPSHOT_VERSION = 1


class Outcome(str, Enum):
    """Terminal state reached while processing a request.

    Attributes:
        REPLAYED: A cached snapshot was returned; the handler did not run.
        CACHED: The handler ran and its response was written to the store.
        NOT_CACHED: The handler ran; the response was not eligible for caching
            or the store write failed.
        BYPASSED: No session or fingerprint was available; the handler ran
            with caching disabled.
    """

    REPLAYED = "replayed"
    CACHED = "cached"
    NOT_CACHED = "not_cached"
    BYPASSED = "bypassed"


class Request:
    """Framework-neutral request representation.

    Framework adapters convert their own request objects into this format.
    Headers are kept as an ordered list of pairs so repeated header names
    survive.

    Attributes:
        method: HTTP method (GET, POST, etc.)
        path: URL path
        query_string: Query string without leading '?'
        headers: Request headers as (name, value) pairs
        body: Fully buffered request body
    """

    def __init__(
        self,
        method: str,
        path: str,
        query_string: str = "",
        headers: list[tuple[str, str]] | None = None,
        body: bytes = b"",
    ) -> None:
        self.method = method
        self.path = path
        self.query_string = query_string
        self.headers = list(headers or [])
        self.body = body

    @property
    def path_with_query(self) -> str:
        """Path including the query string, as sent on the request line."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path


class Response:
    """Framework-neutral response representation.

    Used both for responses produced by the downstream handler and for
    responses reconstructed from a stored snapshot.

    Attributes:
        status: HTTP status code (e.g., 200, 404, 500)
        headers: Response headers as (name, value) pairs
        body: Response body as bytes
    """

    def __init__(
        self,
        status: int,
        headers: list[tuple[str, str]] | None = None,
        body: bytes = b"",
    ) -> None:
        self.status = status
        self.headers = list(headers or [])
        self.body = body

    def __repr__(self) -> str:
        return f"Response(status={self.status}, headers={self.headers!r}, body={len(self.body)} bytes)"


class ResponseSnapshot(BaseModel):
    """A captured HTTP response that can be replayed for duplicate requests.

    The body is base64-encoded to safely carry binary content through any
    storage backend. The ``v`` field versions the layout so that entries
    written by a different deployment are rejected instead of misread.

    Attributes:
        v: Snapshot layout version.
        status: HTTP status code.
        headers: Ordered response headers as (name, value) pairs.
        body_b64: Base64-encoded response body.
    """

    model_config = {"frozen": True}

    v: int = Field(
        default=SNAPSHOT_VERSION,
        description="Snapshot layout version",
    )
    status: int = Field(
        ...,
        description="HTTP status code",
        ge=100,
        le=599,
        examples=[200, 201, 404],
    )
    headers: list[tuple[str, str]] = Field(
        default_factory=list,
        description="Ordered HTTP response headers",
        examples=[[("content-type", "application/json")]],
    )
    body_b64: str = Field(
        ...,
        description="Base64-encoded response body",
        examples=["eyJyZXN1bHQiOiAic3VjY2VzcyJ9"],
    )

    @field_validator("v")
    @classmethod
    def validate_version(cls, v: int) -> int:
        """Reject snapshots written with an unknown layout version."""
        if v != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version {v}, expected {SNAPSHOT_VERSION}")
        return v

    @field_validator("body_b64")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        """Validate that the body is properly base64-encoded.

        Args:
            v: The base64-encoded string to validate.

        Returns:
            The validated base64 string.

        Raises:
            ValueError: If the string is not valid base64.
        """
        try:
            base64.b64decode(v, validate=True)
        except Exception as e:
            raise ValueError(f"Invalid base64 encoding: {e}") from e
        return v

    def get_body_bytes(self) -> bytes:
        """Decode and return the response body as bytes.

        Examples:
            >>> snapshot = ResponseSnapshot(status=200, headers=[], body_b64="SGVsbG8=")
            >>> snapshot.get_body_bytes()
            b'Hello'
        """
        return base64.b64decode(self.body_b64)
