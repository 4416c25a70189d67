"""JSON-RPC 2.0 protocol parsing and serialization.

Everything written to the wire is compact single-line JSON, because the
bridge frames messages by newline.
"""

import json
from typing import Any

from reqmcp.rpc.errors import JsonRpcError, internal_error
from reqmcp.rpc.types import JSONRPC_VERSION, Request, RequestId, Response
from reqmcp.rpc.validator import Validator, decode_message

_validator = Validator()


def parse_request(data: bytes | str) -> Request:
    """Parse raw bytes into a JSON-RPC 2.0 Request.

    Args:
        data: A single JSON payload.

    Returns:
        A parsed Request. id is None for notifications.

    Raises:
        JsonRpcError: Parse error if the JSON is malformed, invalid request
            if required fields are missing or wrong.
    """
    return _validator.validate_request(data)


def parse_notification(data: bytes | str) -> Request:
    """Parse raw bytes into a notification (a Request without id).

    Raises:
        JsonRpcError: Parse error or invalid request.
    """
    return _validator.validate_notification(data)


def _encode(data: Any) -> bytes:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode("utf-8")


def response_to_dict(response: Response) -> dict[str, Any]:
    """Build the wire object for a Response.

    id is always present, including null. Exactly one of result and error
    is emitted.
    """
    data: dict[str, Any] = {
        "jsonrpc": response.jsonrpc,
        "id": response.id,
    }

    if response.error is not None:
        data["error"] = response.error
    else:
        data["result"] = response.result

    return data


def serialize_response(response: Response) -> bytes:
    """Serialize a Response to a compact JSON payload.

    Args:
        response: The Response object to serialize.

    Returns:
        UTF-8 JSON bytes (no trailing newline).

    Raises:
        TypeError: If the result is not JSON serializable.
        ValueError: If the result contains NaN or infinity.
    """
    return _encode(response_to_dict(response))


def make_error_response(
    request_id: RequestId | None,
    code: int,
    message: str,
    data: Any = None,
) -> Response:
    """Create an error response.

    Args:
        request_id: The id from the original request.
        code: JSON-RPC error code.
        message: Human-readable error message.
        data: Optional additional error data.

    Returns:
        A Response with the error field populated.
    """
    error: dict[str, Any] = {
        "code": code,
        "message": message,
    }
    if data is not None:
        error["data"] = data

    return Response(
        jsonrpc=JSONRPC_VERSION,
        id=request_id,
        error=error,
    )


def error_response(request_id: RequestId | None, error: JsonRpcError) -> Response:
    """Create an error response from a JsonRpcError."""
    return make_error_response(request_id, error.code, error.message, error.data)


def make_success_response(request_id: RequestId | None, result: Any) -> Response:
    """Create a success response.

    Args:
        request_id: The id from the original request.
        result: The result of the method call.

    Returns:
        A Response with the result field populated.
    """
    return Response(
        jsonrpc=JSONRPC_VERSION,
        id=request_id,
        result=result,
    )


def fallback_response(request_id: RequestId | None) -> bytes:
    """Serialized internal error used when a response cannot be encoded."""
    error = internal_error("Failed to marshal response")
    return _encode(response_to_dict(error_response(request_id, error)))


# === Client-side functions ===


def serialize_request(request: Request) -> bytes:
    """Serialize a Request to a compact JSON payload.

    Args:
        request: The Request object to serialize.

    Returns:
        UTF-8 JSON bytes (no trailing newline).
    """
    data: dict[str, Any] = {
        "jsonrpc": request.jsonrpc,
        "method": request.method,
    }

    if request.params is not None:
        data["params"] = request.params

    if request.id is not None:
        data["id"] = request.id

    return _encode(data)


def parse_response(data: bytes | str) -> Response:
    """Parse raw bytes into a JSON-RPC 2.0 Response.

    Args:
        data: A single JSON payload.

    Returns:
        A parsed Response object.

    Raises:
        JsonRpcError: Parse error for malformed JSON, internal error if the
            response shape is wrong.
    """
    obj = decode_message(data)
    _validator.validate_response(obj)

    return Response(
        jsonrpc=obj["jsonrpc"],
        id=obj["id"],
        result=obj.get("result"),
        error=obj.get("error"),
    )
