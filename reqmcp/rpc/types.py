"""JSON-RPC 2.0 types for the requirements-mcp engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

JSONRPC_VERSION = "2.0"

# Identifier as it arrived on the wire. The Python type (int, str, float)
# is kept so the response echoes the same JSON type.
RequestId = Union[int, str, float]


@dataclass
class Request:
    """JSON-RPC 2.0 request or notification.

    Attributes:
        jsonrpc: Protocol version, must be "2.0".
        method: Name of the method to invoke.
        params: Optional parameters, any JSON value.
        id: Request identifier. None means notification (no response expected).
    """

    jsonrpc: str
    method: str
    params: Any = None
    id: RequestId | None = None

    @property
    def is_notification(self) -> bool:
        """True when the id was absent or null."""
        return self.id is None


@dataclass
class Response:
    """JSON-RPC 2.0 response.

    Attributes:
        jsonrpc: Protocol version, always "2.0".
        id: Request identifier from the original request, or None when it
            could not be recovered.
        result: Result of the method call (mutually exclusive with error).
        error: Error object if method failed (mutually exclusive with result).
    """

    jsonrpc: str
    id: RequestId | None
    result: Any = None
    error: dict[str, Any] | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None
