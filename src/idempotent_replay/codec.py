"""Response snapshot codec.

Serializes a captured response to bytes for the session store and rebuilds it
on replay. The wire format is the UTF-8 JSON form of a versioned
``ResponseSnapshot``::

    {"v": 1, "status": 201, "headers": [["content-type", "application/json"]],
     "body_b64": "eyJpZCI6ICJwYXlfMSJ9"}

Decoding is closed over everything ``encode_response`` produces. Any other
input, including truncated data, other JSON documents or snapshots from an
unknown version, raises ``CodecError``.

Examples:
    Round trip::

        data = encode_response(Response(201, [("content-type", "text/plain")], b"ok"))
        response = decode_response(data)
        # response.status == 201
        # response.body == b"ok"
"""

import base64

from pydantic import ValidationError

from idempotent_replay.exceptions import CodecError
from idempotent_replay.models import Response, ResponseSnapshot
from idempotent_replay.utils.headers import filter_response_headers


def encode_response(
    response: Response,
    excluded_headers: list[str] | None = None,
) -> bytes:
    """Capture a response as snapshot bytes.

    Hop-by-hop headers are dropped since they describe the original
    connection, not the response. The body must already be fully buffered.

    Args:
        response: The response to capture
        excluded_headers: Additional header names to leave out (e.g. the
            replay marker)

    Returns:
        UTF-8 encoded JSON snapshot

    Raises:
        CodecError: If the response cannot be represented as a snapshot,
            such as a status outside 100-599.
    """
    try:
        snapshot = ResponseSnapshot(
            status=response.status,
            headers=filter_response_headers(response.headers, excluded_headers),
            body_b64=base64.b64encode(response.body).decode("ascii"),
        )
    except ValidationError as e:
        raise CodecError(f"Unencodable response: {e.error_count()} error(s)", cause=e) from e
    return snapshot.model_dump_json().encode("utf-8")


def decode_response(data: bytes) -> Response:
    """Rebuild a response from snapshot bytes.

    Raises:
        CodecError: If ``data`` is not a valid snapshot.
    """
    try:
        snapshot = ResponseSnapshot.model_validate_json(data)
    except ValidationError as e:
        raise CodecError(f"Invalid response snapshot: {e.error_count()} error(s)", cause=e) from e

    return Response(
        status=snapshot.status,
        headers=list(snapshot.headers),
        body=snapshot.get_body_bytes(),
    )
