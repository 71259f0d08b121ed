"""ASGI middleware adapter for FastAPI and Starlette applications.

The middleware:
1. Converts the Starlette request to the internal Request format, reading
   the body only when the fingerprint needs it
2. Resolves the caller's session id, by default from a cookie
3. Processes the request through the ReplayOrchestrator
4. Converts the internal response back to a Starlette response

Examples:
    FastAPI integration::

        from fastapi import FastAPI
        from idempotent_replay.adapters.asgi import ASGIIdempotencyMiddleware
        from idempotent_replay.config import IdempotencyConfig
        from idempotent_replay.storage.memory import MemorySessionStore

        app = FastAPI()

        app.add_middleware(
            ASGIIdempotencyMiddleware,
            store=MemorySessionStore(),
            config=IdempotencyConfig().use_idempotency_key_header("Idempotency-Key"),
        )

        @app.post("/api/payments")
        async def create_payment(data: PaymentData):
            # Retries carrying the same Idempotency-Key are replayed
            return {"status": "success"}

    Resolving the session from an API token instead of a cookie::

        def session_from_token(request):
            token = request.headers.get("authorization")
            if not token:
                raise IdentityError("missing authorization header")
            return hashlib.sha256(token.encode()).hexdigest()

        app.add_middleware(
            ASGIIdempotencyMiddleware,
            store=store,
            session_resolver=session_from_token,
        )
"""

import re
import secrets
from collections.abc import Awaitable, Callable
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from idempotent_replay.config import IdempotencyConfig
from idempotent_replay.core.orchestrator import ReplayOrchestrator
from idempotent_replay.exceptions import IdentityError
from idempotent_replay.models import Request, Response
from idempotent_replay.observability.logging import request_context
from idempotent_replay.policy import requires_body
from idempotent_replay.session import Session
from idempotent_replay.storage.base import SessionStore

_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,128}$")

SessionIdResolver = Callable[[StarletteRequest], str]


class ASGIIdempotencyMiddleware(BaseHTTPMiddleware):
    """ASGI middleware replaying responses of repeated requests.

    Attributes:
        store: Session store holding response snapshots
        config: Engine configuration
        orchestrator: Core orchestrator instance
        cookie_name: Cookie carrying the session id
        cookie_max_age: Lifetime of a newly issued session cookie in seconds
    """

    def __init__(
        self,
        app: Any,
        store: SessionStore,
        config: IdempotencyConfig | None = None,
        session_resolver: SessionIdResolver | None = None,
        cookie_name: str = "session",
        cookie_max_age: int | None = None,
    ) -> None:
        """Initialize the ASGI middleware.

        Args:
            app: The ASGI application
            store: Session store for response snapshots
            config: Configuration object (uses defaults if not provided)
            session_resolver: Returns the session id for a request; raising
                disables caching for that request. Defaults to a cookie
                based resolver that issues new sessions as needed.
            cookie_name: Session cookie name for the default resolver
            cookie_max_age: Session cookie lifetime for the default resolver
        """
        super().__init__(app)
        self.store = store
        self.config = config or IdempotencyConfig()
        self.orchestrator = ReplayOrchestrator(self.config)
        self.session_resolver = session_resolver
        self.cookie_name = cookie_name
        self.cookie_max_age = cookie_max_age

    async def dispatch(
        self,
        request: StarletteRequest,
        call_next: Callable[[StarletteRequest], Awaitable[StarletteResponse]],
    ) -> StarletteResponse:
        """Process an ASGI request with replay protection."""
        internal_request = await self._convert_request(request)
        issued_session_id: str | None = None

        async def resolve_session() -> Session:
            nonlocal issued_session_id
            if self.session_resolver is not None:
                return Session(self.session_resolver(request), self.store)

            session_id = request.cookies.get(self.cookie_name)
            if session_id is None:
                issued_session_id = session_id = secrets.token_urlsafe(32)
            elif not _SESSION_ID_PATTERN.match(session_id):
                raise IdentityError(f"Malformed {self.cookie_name} cookie")
            return Session(session_id, self.store)

        async def handler(_req: Request) -> Response:
            response = await call_next(request)

            body = b""
            if hasattr(response, "body_iterator"):
                async for chunk in response.body_iterator:
                    body += chunk if isinstance(chunk, bytes) else bytes(chunk)
            else:
                body = bytes(getattr(response, "body", b""))

            return Response(
                status=response.status_code,
                headers=[
                    (key.decode("latin-1"), value.decode("latin-1"))
                    for key, value in response.raw_headers
                ],
                body=body,
            )

        trace_id = self._extract_trace_id(request)
        with request_context(trace_id=trace_id):
            result = await self.orchestrator.process(internal_request, handler, resolve_session)

        response = self._convert_response(result.response)
        if issued_session_id is not None:
            response.set_cookie(
                self.cookie_name,
                issued_session_id,
                max_age=self.cookie_max_age,
                path="/",
                httponly=True,
                samesite="lax",
            )
        return response

    async def _convert_request(self, request: StarletteRequest) -> Request:
        """Convert a Starlette request to the internal Request format.

        The body is only buffered when hashing needs it. Starlette keeps a
        buffered body available to the downstream application.
        """
        body = await request.body() if requires_body(self.config) else b""

        return Request(
            method=request.method,
            path=request.url.path,
            query_string=request.url.query or "",
            headers=[
                (key.decode("latin-1"), value.decode("latin-1"))
                for key, value in request.headers.raw
            ],
            body=body,
        )

    def _convert_response(self, response: Response) -> StarletteResponse:
        """Convert an internal Response to a Starlette Response.

        Content-Length is recomputed from the buffered body; every other
        header is carried over in order, repeated names included.
        """
        converted = StarletteResponse(content=response.body, status_code=response.status)
        converted.raw_headers.extend(
            (key.lower().encode("latin-1"), value.encode("latin-1"))
            for key, value in response.headers
            if key.lower() != "content-length"
        )
        return converted

    def _extract_trace_id(self, request: StarletteRequest) -> str | None:
        """Extract a distributed tracing ID from common request headers."""
        trace_headers = [
            "x-trace-id",
            "x-request-id",
            "x-correlation-id",
            "traceparent",
        ]

        for header in trace_headers:
            value = request.headers.get(header)
            if value:
                return value

        return None
