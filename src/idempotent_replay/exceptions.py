"""Custom exceptions for the idempotent replay engine.

This module defines the exception hierarchy used throughout the package to
signal failures on the caching path: the caller's session could not be
established, the session store failed, or a stored snapshot could not be
decoded.

None of these errors ever reaches the client. The orchestrator recovers from
all of them locally, logs them and serves the request as if no cache were
configured.

Examples:
    Handling a storage error::

        from idempotent_replay.exceptions import StorageError

        try:
            data = await session.get(fingerprint)
        except StorageError as e:
            logger.error("idempotency.lookup_failed", error=str(e))
            # Proceed as a cache miss
            data = None

    Handling a codec error::

        from idempotent_replay.exceptions import CodecError

        try:
            response = decode_response(data)
        except CodecError as e:
            logger.error("idempotency.decode_failed", error=str(e))
            response = None
"""


class IdempotencyError(Exception):
    """Base exception for all idempotency-related errors.

    All exceptions raised by this package inherit from this base class,
    allowing callers to catch all engine-specific errors with a single
    except clause.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class IdentityError(IdempotencyError):
    """The caller's session identity could not be established.

    Raised by session resolvers when a request carries no usable identity
    (for example a malformed session cookie). The orchestrator treats this
    as "caching disabled" for the request.
    """


class StorageError(IdempotencyError):
    """Session store operation failed.

    This exception is raised when the underlying storage backend encounters
    an error that prevents it from completing a read or a write. This could
    be due to:

    1. Network failures (connection timeouts, DNS resolution)
    2. Backend service unavailability (Redis down)
    3. Permission or authentication errors

    Attributes:
        message: Human-readable error description.
        operation: The store operation that failed ("get" or "set").
        cause: The underlying exception that caused the storage error.

    Examples:
        Raising a storage error::

            try:
                await redis.get(key)
            except RedisError as e:
                raise StorageError(
                    message=f"Failed to read key from Redis: {e}",
                    operation="get",
                    cause=e,
                ) from e
    """

    def __init__(
        self,
        message: str,
        operation: str = "get",
        cause: Exception | None = None,
    ) -> None:
        """Initialize the storage error with details.

        Args:
            message: Human-readable error description.
            operation: The store operation that failed.
            cause: The underlying exception that caused the storage error.
        """
        super().__init__(message)
        self.operation = operation
        self.cause = cause


class CodecError(IdempotencyError):
    """A stored response snapshot could not be decoded.

    Raised for malformed bytes, unsupported snapshot versions or invalid
    field values. Store corruption and version skew between deployments are
    both possible, so decoding must fail with this error rather than crash.

    Attributes:
        message: Human-readable error description.
        cause: The underlying parsing or validation exception, if any.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause
