"""Core types shared across the bridge, the RPC engine and the initializer."""

from reqmcp.core.cancel import CancellationToken
from reqmcp.core.errors import BridgeError, ConfigError

__all__ = [
    "BridgeError",
    "CancellationToken",
    "ConfigError",
]
