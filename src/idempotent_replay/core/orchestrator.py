"""Replay orchestration for idempotent requests.

This module owns the control flow of the engine. For every request it moves
through these states::

    Start -> IdentityResolved{fingerprint | none}
          -> CacheHit -> Replayed
          -> CacheMiss or Disabled -> Executed -> Cached | NotCached

Every infrastructure failure on the caching path (session resolution, store
read, snapshot decode, store write) is logged and converted into "proceed as
if no cache were configured" for that request. The only error a client can
see is one raised by the downstream handler itself.

Examples:
    Processing a request::

        from idempotent_replay.config import IdempotencyConfig
        from idempotent_replay.core.orchestrator import ReplayOrchestrator
        from idempotent_replay.session import Session
        from idempotent_replay.storage.memory import MemorySessionStore

        store = MemorySessionStore()
        orchestrator = ReplayOrchestrator(IdempotencyConfig().expire_after(60))

        async def resolve_session() -> Session:
            return Session("session-1", store)

        async def handler(request):
            return Response(status=201, body=b"charged")

        result = await orchestrator.process(request, handler, resolve_session)
        # result.outcome is Outcome.CACHED the first time,
        # Outcome.REPLAYED for an identical retry within 60 seconds
"""

import time
from collections.abc import Awaitable, Callable

from idempotent_replay.codec import decode_response, encode_response
from idempotent_replay.config import IdempotencyConfig
from idempotent_replay.core.inflight import InFlightRegistry
from idempotent_replay.exceptions import CodecError
from idempotent_replay.fingerprint import compute_fingerprint
from idempotent_replay.models import Outcome, Request, Response
from idempotent_replay.observability.logging import get_logger
from idempotent_replay.observability.metrics import (
    record_cache_error,
    record_execution_time,
    record_inflight_wait,
    record_request,
)
from idempotent_replay.policy import is_cacheable, should_use_cache
from idempotent_replay.session import Session
from idempotent_replay.utils.headers import remove_header, set_header

logger = get_logger(__name__)

Handler = Callable[[Request], Awaitable[Response]]
SessionResolver = Callable[[], Awaitable[Session]]


class ReplayResult:
    """Result of processing a request.

    Attributes:
        response: The response to send (fresh or replayed)
        outcome: Terminal state reached
        fingerprint: Request fingerprint, None if none was computed
        execution_time_ms: Handler execution time (None for replays)
    """

    def __init__(
        self,
        response: Response,
        outcome: Outcome,
        fingerprint: str | None = None,
        execution_time_ms: int | None = None,
    ) -> None:
        self.response = response
        self.outcome = outcome
        self.fingerprint = fingerprint
        self.execution_time_ms = execution_time_ms

    @property
    def was_replayed(self) -> bool:
        return self.outcome is Outcome.REPLAYED


class ReplayOrchestrator:
    """Decides between replaying a cached response and executing the handler.

    The orchestrator holds no per-request state. It can be shared by all
    concurrent requests; the only mutable structure is the optional in-flight
    registry used when ``config.single_flight`` is enabled.

    Attributes:
        config: Engine configuration
        inflight: Registry of executing requests, None unless single flight
    """

    def __init__(
        self,
        config: IdempotencyConfig,
        inflight: InFlightRegistry | None = None,
    ) -> None:
        self.config = config
        if inflight is None and config.single_flight:
            inflight = InFlightRegistry()
        self.inflight = inflight

    async def process(
        self,
        request: Request,
        handler: Handler,
        resolve_session: SessionResolver | None,
    ) -> ReplayResult:
        """Process a request with replay protection.

        Args:
            request: The incoming request, with its body buffered when the
                fingerprint needs it
            handler: Downstream handler, called at most once
            resolve_session: Returns the caller's session; failures disable
                caching for this request. None disables caching outright.

        Returns:
            ReplayResult describing the response and how it was produced

        Raises:
            Exception: Whatever the handler raises, unchanged.
        """
        session = await self._resolve_session(resolve_session)
        if session is None:
            return await self._execute_uncached(request, handler, fingerprint=None)

        fingerprint = compute_fingerprint(request, self.config)
        if fingerprint is None or not should_use_cache(fingerprint):
            logger.debug("idempotency.no_fingerprint", session_id=session.session_id)
            return await self._execute_uncached(request, handler, fingerprint=None)

        replayed = await self._lookup(session, fingerprint)
        if replayed is not None:
            return self._replay(replayed, fingerprint)

        if self.inflight is not None:
            return await self._execute_single_flight(
                self.inflight, request, handler, session, fingerprint
            )

        result, _ = await self._execute_and_store(request, handler, session, fingerprint)
        return result

    async def _resolve_session(self, resolve_session: SessionResolver | None) -> Session | None:
        if resolve_session is None:
            return None

        try:
            return await resolve_session()
        except Exception as e:
            record_cache_error("identity")
            logger.error(
                "idempotency.session_unavailable",
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def _lookup(self, session: Session, fingerprint: str) -> Response | None:
        """Fetch and decode a cached response. Every failure is a miss."""
        data = await self._fetch(session, fingerprint)
        if data is None:
            return None
        return self._decode(data, session, fingerprint)

    async def _fetch(self, session: Session, fingerprint: str) -> bytes | None:
        try:
            return await session.get(fingerprint)
        except Exception as e:
            record_cache_error("read")
            logger.error(
                "idempotency.lookup_failed",
                fingerprint=fingerprint,
                session_id=session.session_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    def _decode(self, data: bytes, session: Session, fingerprint: str) -> Response | None:
        try:
            return decode_response(data)
        except CodecError as e:
            # The corrupted entry is left to expire; see DESIGN.md
            record_cache_error("decode")
            logger.error(
                "idempotency.decode_failed",
                fingerprint=fingerprint,
                session_id=session.session_id,
                error=e.message,
            )
            return None

    def _replay(self, response: Response, fingerprint: str) -> ReplayResult:
        response.headers = set_header(response.headers, self.config.replay_header_name, "true")
        record_request(Outcome.REPLAYED.value, response.status)
        logger.info("idempotency.replayed", fingerprint=fingerprint, status=response.status)
        return ReplayResult(response, Outcome.REPLAYED, fingerprint=fingerprint)

    async def _execute(self, request: Request, handler: Handler) -> tuple[Response, int]:
        start = time.perf_counter()
        response = await handler(request)
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        record_execution_time(elapsed_ms)

        # Only replays carry the marker
        response.headers = remove_header(response.headers, self.config.replay_header_name)
        return response, elapsed_ms

    async def _execute_uncached(
        self,
        request: Request,
        handler: Handler,
        fingerprint: str | None,
    ) -> ReplayResult:
        response, elapsed_ms = await self._execute(request, handler)
        record_request(Outcome.BYPASSED.value, response.status)
        return ReplayResult(response, Outcome.BYPASSED, fingerprint, elapsed_ms)

    async def _execute_and_store(
        self,
        request: Request,
        handler: Handler,
        session: Session,
        fingerprint: str,
    ) -> tuple[ReplayResult, bytes | None]:
        """Run the handler and persist its response when eligible.

        Returns:
            The result, plus the snapshot bytes when the response was
            cacheable (used to answer in-flight followers).
        """
        response, elapsed_ms = await self._execute(request, handler)

        if not is_cacheable(response.status, self.config):
            logger.debug(
                "idempotency.not_cacheable",
                fingerprint=fingerprint,
                status=response.status,
            )
            record_request(Outcome.NOT_CACHED.value, response.status)
            return ReplayResult(response, Outcome.NOT_CACHED, fingerprint, elapsed_ms), None

        try:
            snapshot = encode_response(response, [self.config.replay_header_name])
        except CodecError as e:
            record_cache_error("encode")
            logger.error(
                "idempotency.encode_failed",
                fingerprint=fingerprint,
                status=response.status,
                error=e.message,
            )
            record_request(Outcome.NOT_CACHED.value, response.status)
            return ReplayResult(response, Outcome.NOT_CACHED, fingerprint, elapsed_ms), None

        try:
            await session.set(fingerprint, snapshot, self.config.cache_ttl_seconds)
        except Exception as e:
            # No retry: the client still gets the live response
            record_cache_error("write")
            logger.error(
                "idempotency.store_failed",
                fingerprint=fingerprint,
                session_id=session.session_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            record_request(Outcome.NOT_CACHED.value, response.status)
            return ReplayResult(response, Outcome.NOT_CACHED, fingerprint, elapsed_ms), snapshot

        logger.info(
            "idempotency.stored",
            fingerprint=fingerprint,
            status=response.status,
            ttl_seconds=self.config.cache_ttl_seconds,
            execution_time_ms=elapsed_ms,
        )
        record_request(Outcome.CACHED.value, response.status)
        return ReplayResult(response, Outcome.CACHED, fingerprint, elapsed_ms), snapshot

    async def _execute_single_flight(
        self,
        inflight: InFlightRegistry,
        request: Request,
        handler: Handler,
        session: Session,
        fingerprint: str,
    ) -> ReplayResult:
        """Execute once per (session, fingerprint) among concurrent arrivals."""
        key = (session.session_id, fingerprint)
        is_leader, waiter = await inflight.claim(key)

        if not is_leader:
            record_inflight_wait()
            logger.debug("idempotency.inflight_wait", fingerprint=fingerprint)
            snapshot = await inflight.wait(waiter)
            if snapshot is not None:
                replayed = self._decode(snapshot, session, fingerprint)
                if replayed is not None:
                    return self._replay(replayed, fingerprint)
            # Leader produced nothing replayable
            result, _ = await self._execute_and_store(request, handler, session, fingerprint)
            return result

        snapshot = None
        try:
            # A previous leader may have finished between our lookup and claim
            stored = await self._fetch(session, fingerprint)
            if stored is not None:
                replayed = self._decode(stored, session, fingerprint)
                if replayed is not None:
                    snapshot = stored
                    return self._replay(replayed, fingerprint)

            result, snapshot = await self._execute_and_store(request, handler, session, fingerprint)
            return result
        finally:
            await inflight.release(key, snapshot)
