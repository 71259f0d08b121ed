"""Tests for the exception hierarchy."""

import pytest

from idempotent_replay.exceptions import (
    CodecError,
    IdempotencyError,
    IdentityError,
    StorageError,
)


@pytest.mark.parametrize("exc_type", [IdentityError, StorageError, CodecError])
def test_all_errors_derive_from_base(exc_type: type[IdempotencyError]) -> None:
    error = exc_type("boom")

    assert isinstance(error, IdempotencyError)
    assert error.message == "boom"
    assert str(error) == "boom"


def test_storage_error_details() -> None:
    cause = ConnectionError("refused")
    error = StorageError("write failed", operation="set", cause=cause)

    assert error.operation == "set"
    assert error.cause is cause


def test_storage_error_defaults() -> None:
    error = StorageError("read failed")

    assert error.operation == "get"
    assert error.cause is None


def test_codec_error_cause() -> None:
    cause = ValueError("bad json")
    assert CodecError("invalid", cause=cause).cause is cause


def test_catch_all_with_base_class() -> None:
    with pytest.raises(IdempotencyError):
        raise StorageError("down")
