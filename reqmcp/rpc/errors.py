"""JSON-RPC 2.0 error codes and the JsonRpcError exception."""

from __future__ import annotations

from typing import Any

from reqmcp.core.errors import BridgeError

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Server error range: -32000 to -32099
SERVER_ERROR_MIN = -32099
SERVER_ERROR_MAX = -32000

# Application codes inside the server range
RESOURCE_NOT_FOUND = -32001
UNAUTHORIZED = -32002
VALIDATION_ERROR = -32003
SERVICE_UNAVAILABLE = -32004
RATE_LIMITED = -32005

STANDARD_CODES = frozenset(
    {PARSE_ERROR, INVALID_REQUEST, METHOD_NOT_FOUND, INVALID_PARAMS, INTERNAL_ERROR}
)

ERROR_MESSAGES: dict[int, str] = {
    PARSE_ERROR: "Parse error",
    INVALID_REQUEST: "Invalid Request",
    METHOD_NOT_FOUND: "Method not found",
    INVALID_PARAMS: "Invalid params",
    INTERNAL_ERROR: "Internal error",
    RESOURCE_NOT_FOUND: "Resource not found",
    UNAUTHORIZED: "Unauthorized access",
    VALIDATION_ERROR: "Validation error",
    SERVICE_UNAVAILABLE: "Service unavailable",
    RATE_LIMITED: "Rate limit exceeded",
}


def error_message(code: int) -> str:
    """Return the standard message for an error code."""
    return ERROR_MESSAGES.get(code, "Unknown error")


def is_server_range(code: int) -> bool:
    """Check whether code lies in the reserved server error range."""
    return SERVER_ERROR_MIN <= code <= SERVER_ERROR_MAX


class JsonRpcError(BridgeError):
    """A JSON-RPC error object that can be raised.

    Handlers may raise this directly to control the exact error returned to
    the caller; the mapper passes it through unchanged.

    Attributes:
        code: JSON-RPC error code.
        message: Short human-readable message.
        data: Optional extra detail. Omitted from the wire when None.
    """

    def __init__(self, code: int, message: str | None = None, data: Any = None) -> None:
        super().__init__(message or error_message(code))
        self.code = code
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        """Build the wire representation of the error object."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error

    @classmethod
    def from_dict(cls, error: dict[str, Any]) -> JsonRpcError:
        """Build from a decoded error object."""
        return cls(error["code"], error["message"], error.get("data"))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JsonRpcError):
            return NotImplemented
        return (self.code, self.message, self.data) == (other.code, other.message, other.data)

    def __hash__(self) -> int:
        return hash((self.code, self.message))

    def __repr__(self) -> str:
        return f"JsonRpcError(code={self.code}, message={self.message!r}, data={self.data!r})"


def parse_error(data: Any = None) -> JsonRpcError:
    return JsonRpcError(PARSE_ERROR, data=data)


def invalid_request(data: Any = None) -> JsonRpcError:
    return JsonRpcError(INVALID_REQUEST, data=data)


def method_not_found(method: str) -> JsonRpcError:
    return JsonRpcError(METHOD_NOT_FOUND, data=f"Method '{method}' not found")


def invalid_params(data: Any = None) -> JsonRpcError:
    return JsonRpcError(INVALID_PARAMS, data=data)


def internal_error(data: Any = None) -> JsonRpcError:
    return JsonRpcError(INTERNAL_ERROR, data=data)


def resource_not_found(data: Any = None) -> JsonRpcError:
    return JsonRpcError(RESOURCE_NOT_FOUND, data=data)


def unauthorized(data: Any = None) -> JsonRpcError:
    return JsonRpcError(UNAUTHORIZED, data=data)


def validation_error(data: Any = None) -> JsonRpcError:
    return JsonRpcError(VALIDATION_ERROR, data=data)


def service_unavailable(data: Any = None) -> JsonRpcError:
    return JsonRpcError(SERVICE_UNAVAILABLE, data=data)


def rate_limited(data: Any = None) -> JsonRpcError:
    return JsonRpcError(RATE_LIMITED, data=data)
