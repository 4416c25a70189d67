"""Structural validation of JSON-RPC 2.0 messages.

Single messages are checked in a fixed order and the first failure wins:

1. JSON well-formedness (parse error)
2. ``jsonrpc == "2.0"`` (invalid request)
3. ``method`` present and non-empty (invalid request)
4. ``method`` does not start with ``rpc.`` (invalid request)
5. ``method`` uses only ASCII letters, digits, ``_``, ``/`` and ``.``
   (invalid request)

Batches are validated element by element. A bad element does not fail the
batch; it is reported as an index-tagged invalid-request entry.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from reqmcp.rpc.errors import (
    JsonRpcError,
    SERVER_ERROR_MAX,
    STANDARD_CODES,
    internal_error,
    invalid_params,
    invalid_request,
    is_server_range,
    parse_error,
)
from reqmcp.rpc.types import JSONRPC_VERSION, Request, RequestId

_METHOD_NAME_RE = re.compile(r"[A-Za-z0-9_/.]+")
_INVALID_METHOD_CHAR_RE = re.compile(r"[^A-Za-z0-9_/.]")

# Codes below the server range but inside the block JSON-RPC reserves
_RESERVED_BLOCK_MIN = -32768


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def decode_message(data: bytes | str) -> Any:
    """Decode a raw payload into a JSON value.

    Raises:
        JsonRpcError: Parse error for malformed JSON or invalid UTF-8.
    """
    try:
        return json.loads(data, parse_constant=_reject_constant)
    except ValueError as e:
        raise parse_error(f"Invalid JSON: {e}") from e


def is_valid_id(value: Any) -> bool:
    """Check whether value may be used as a request id (null included)."""
    if value is None:
        return True
    # bool is a subclass of int and must not pass as an id
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, str, float))


def recover_id(obj: Any) -> RequestId | None:
    """Return the id of a decoded message when it is usable, otherwise None."""
    if isinstance(obj, dict):
        value = obj.get("id")
        if value is not None and is_valid_id(value):
            return value
    return None


class Validator:
    """Validates single JSON-RPC requests, notifications and responses."""

    def validate_request(self, data: bytes | str) -> Request:
        """Decode and validate a request payload.

        Args:
            data: Raw JSON bytes or text.

        Returns:
            The validated Request. Its id is None for notifications.

        Raises:
            JsonRpcError: Parse error or invalid request.
        """
        return self.check_request(decode_message(data))

    def validate_notification(self, data: bytes | str) -> Request:
        """Decode and validate a notification payload.

        A payload with an id is still accepted; the id is dropped.
        """
        request = self.validate_request(data)
        request.id = None
        return request

    def check_request(self, obj: Any) -> Request:
        """Validate an already-decoded request object.

        Raises:
            JsonRpcError: Invalid request.
        """
        if not isinstance(obj, dict):
            raise invalid_request("Request must be a JSON object")

        version = obj.get("jsonrpc")
        if version != JSONRPC_VERSION:
            raise invalid_request(
                f"Invalid jsonrpc version: expected '{JSONRPC_VERSION}', got '{version}'"
            )

        method = obj.get("method")
        if method is None or method == "":
            raise invalid_request("Missing required field: method")
        if not isinstance(method, str):
            raise invalid_request(f"method must be a string, got: {type(method).__name__}")

        self.validate_method_name(method)

        request_id = obj.get("id")
        self.validate_id(request_id)

        return Request(
            jsonrpc=version,
            method=method,
            params=obj.get("params"),
            id=request_id,
        )

    def validate_method_name(self, method: str) -> None:
        """Check reserved prefix and character class of a method name.

        Raises:
            JsonRpcError: Invalid request.
        """
        if method == "":
            raise invalid_request("Method name cannot be empty")

        if method.startswith("rpc."):
            raise invalid_request("Method names should not start with 'rpc.'")

        if not _METHOD_NAME_RE.fullmatch(method):
            bad = _INVALID_METHOD_CHAR_RE.search(method)
            char = bad.group(0) if bad else method
            raise invalid_request(f"Invalid character in method name: {char!r}")

    def validate_id(self, request_id: Any) -> None:
        """Check that an id is an integer, string, float or null.

        Raises:
            JsonRpcError: Invalid request.
        """
        if not is_valid_id(request_id):
            raise invalid_request("ID must be a string, number, or null")

    def validate_params(self, params: Any, expected_type: type | tuple[type, ...] | None = None) -> None:
        """Check params against an expected Python type.

        Absent params always pass.

        Raises:
            JsonRpcError: Invalid params.
        """
        if params is None or expected_type is None:
            return
        if not isinstance(params, expected_type):
            expected = getattr(expected_type, "__name__", str(expected_type))
            raise invalid_params(
                f"Invalid parameter type: expected {expected}, got {type(params).__name__}"
            )

    def validate_response(self, response: Any) -> None:
        """Check the shape of a decoded response object.

        Raises:
            JsonRpcError: Internal error describing the first violation.
        """
        if not isinstance(response, dict):
            raise internal_error("Response must be a JSON object")

        version = response.get("jsonrpc")
        if version != JSONRPC_VERSION:
            raise internal_error(
                f"Invalid jsonrpc version in response: expected '{JSONRPC_VERSION}', got '{version}'"
            )

        has_result = "result" in response
        has_error = "error" in response
        if has_result and has_error:
            raise internal_error("Response cannot have both result and error")
        if not has_result and not has_error:
            raise internal_error("Response must have either result or error")

        if "id" not in response:
            raise internal_error("Response must have 'id' field")
        if not is_valid_id(response["id"]):
            raise internal_error("Response id must be a string, number, or null")

        if has_error:
            self.validate_error(response["error"])

    def validate_error(self, error: Any) -> None:
        """Check a decoded error object.

        The code must be nonzero and either a standard code, inside the
        server range, or an application code outside the reserved block.

        Raises:
            JsonRpcError: Internal error describing the first violation.
        """
        if not isinstance(error, dict):
            raise internal_error("Error object must be a JSON object")

        code = error.get("code")
        if not isinstance(code, int) or isinstance(code, bool):
            raise internal_error("Error code must be an integer")
        if code == 0:
            raise internal_error("Error code cannot be zero")

        message = error.get("message")
        if not isinstance(message, str) or not message:
            raise internal_error("Error message cannot be empty")

        reserved = _RESERVED_BLOCK_MIN <= code <= SERVER_ERROR_MAX
        if reserved and code not in STANDARD_CODES and not is_server_range(code):
            raise internal_error(f"Invalid error code: {code}")


@dataclass
class BatchEntry:
    """Outcome of validating one element of a batch.

    Exactly one of request and error is set. id carries the element's id
    when it could be recovered, so an error entry can still echo it.
    """

    index: int
    request: Request | None = None
    error: JsonRpcError | None = None
    id: RequestId | None = None


class BatchValidator:
    """Validates a batch payload element by element."""

    def __init__(self, validator: Validator | None = None) -> None:
        self._validator = validator or Validator()

    def validate_batch(self, data: bytes | str | list[Any]) -> list[BatchEntry]:
        """Validate a batch.

        Args:
            data: Raw payload, or an already-decoded list.

        Returns:
            One BatchEntry per element, in input order.

        Raises:
            JsonRpcError: Parse error for malformed JSON; invalid request when
                the payload is not an array or is empty.
        """
        items = data if isinstance(data, list) else decode_message(data)
        if not isinstance(items, list):
            raise invalid_request("Batch must be a JSON array")
        if not items:
            raise invalid_request("Batch cannot be empty")

        entries: list[BatchEntry] = []
        for index, item in enumerate(items):
            try:
                request = self._validator.check_request(item)
            except JsonRpcError as e:
                entries.append(BatchEntry(
                    index=index,
                    error=invalid_request(f"Invalid request at index {index}: {e.data}"),
                    id=recover_id(item),
                ))
            else:
                entries.append(BatchEntry(index=index, request=request, id=request.id))
        return entries


class MessageValidator:
    """Validates any message: single request, notification or batch."""

    def __init__(self) -> None:
        self.validator = Validator()
        self.batch_validator = BatchValidator(self.validator)

    def validate_message(self, data: bytes | str) -> Request | list[BatchEntry]:
        """Decode a payload and validate it as a single message or batch.

        Raises:
            JsonRpcError: Parse error, or invalid request for single messages
                and batch-level failures.
        """
        obj = decode_message(data)
        if isinstance(obj, list):
            return self.batch_validator.validate_batch(obj)
        return self.validator.check_request(obj)
