"""JSON-RPC 2.0 engine: message model, validation, error mapping, dispatch."""

from reqmcp.rpc.batch import BatchProcessor
from reqmcp.rpc.errors import JsonRpcError
from reqmcp.rpc.mapper import ErrorMapper, map_error
from reqmcp.rpc.processor import CallerIdentity, Handler, InvocationContext, Processor
from reqmcp.rpc.types import Request, RequestId, Response

__all__ = [
    "BatchProcessor",
    "CallerIdentity",
    "ErrorMapper",
    "Handler",
    "InvocationContext",
    "JsonRpcError",
    "Processor",
    "Request",
    "RequestId",
    "Response",
    "map_error",
]
