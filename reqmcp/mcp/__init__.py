"""MCP STDIO to HTTP bridge."""

from reqmcp.mcp.forwarder import HttpForwarder
from reqmcp.mcp.server import BridgeServer, BridgeState

__all__ = [
    "BridgeServer",
    "BridgeState",
    "HttpForwarder",
]
