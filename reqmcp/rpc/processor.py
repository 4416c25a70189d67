"""Method registry and single-message execution for the JSON-RPC engine.

Handlers are coroutines taking an InvocationContext and the raw params
value. They return the result or raise. Raised exceptions go through the
ErrorMapper before they reach the caller.

Registration happens once at startup. After freeze() the handler table is
a read-only mapping shared by every concurrent invocation.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from reqmcp.core.cancel import CancellationToken
from reqmcp.rpc.errors import INTERNAL_ERROR, JsonRpcError, method_not_found
from reqmcp.rpc.mapper import ErrorMapper
from reqmcp.rpc.protocol import (
    error_response,
    fallback_response,
    make_success_response,
    serialize_response,
)
from reqmcp.rpc.types import Request, RequestId, Response
from reqmcp.rpc.validator import Validator, decode_message, recover_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerIdentity:
    """Who is calling. Filled in by the transport that authenticated them."""

    user_id: str | None = None
    username: str | None = None
    role: str | None = None


@dataclass
class InvocationContext:
    """Per-invocation context passed to every handler.

    Attributes:
        caller: Identity of the caller, if known.
        cancel_token: Shared cancellation signal. Handlers doing I/O should
            observe it.
        method: Method being invoked. Set by the processor.
        request_id: Id of the request, None for notifications. Set by the
            processor.
    """

    caller: CallerIdentity | None = None
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    method: str = ""
    request_id: RequestId | None = None


Handler = Callable[[InvocationContext, Any], Awaitable[Any]]


class Processor:
    """Registry of method handlers plus the single-request execution path.

    Example:
        processor = Processor()

        async def noop(ctx, params):
            return {"ok": True}

        processor.register("noop", noop)
        processor.freeze()
        payload = await processor.handle(InvocationContext(), raw_bytes)
    """

    def __init__(self, mapper: ErrorMapper | None = None) -> None:
        self._handlers: dict[str, Handler] | Mapping[str, Handler] = {}
        self._frozen = False
        self._validator = Validator()
        self.mapper = mapper or ErrorMapper()

    def register(self, method: str, handler: Handler) -> None:
        """Register a handler for a method name.

        Raises:
            RuntimeError: If the registry is frozen.
            ValueError: If the name is invalid or already registered.
        """
        if self._frozen:
            raise RuntimeError(f"Cannot register '{method}': registry is frozen")
        try:
            self._validator.validate_method_name(method)
        except JsonRpcError as e:
            raise ValueError(f"Invalid method name '{method}': {e.data}") from e
        if method in self._handlers:
            raise ValueError(f"Method '{method}' is already registered")
        self._handlers[method] = handler  # type: ignore[index]

    def freeze(self) -> None:
        """End the registration phase. Further register() calls fail."""
        if not self._frozen:
            self._handlers = MappingProxyType(dict(self._handlers))
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def has(self, method: str) -> bool:
        return method in self._handlers

    def methods(self) -> list[str]:
        """Registered method names, sorted."""
        return sorted(self._handlers)

    async def handle(self, context: InvocationContext, data: bytes | str) -> bytes | None:
        """Execute one serialized request or notification.

        Args:
            context: Base context. A copy is specialised per invocation.
            data: Raw JSON payload.

        Returns:
            Serialized response, or None for notifications.
        """
        try:
            obj = decode_message(data)
        except JsonRpcError as e:
            logger.debug("Rejecting unparseable payload: %s", e.data)
            return self.serialize(error_response(None, e))

        response = await self.handle_object(context, obj)
        if response is None:
            return None
        return self.serialize(response)

    async def handle_object(self, context: InvocationContext, obj: Any) -> Response | None:
        """Validate and execute an already-decoded message."""
        try:
            request = self._validator.check_request(obj)
        except JsonRpcError as e:
            request_id = recover_id(obj)
            logger.debug("Invalid request (id=%r): %s", request_id, e.data)
            return error_response(request_id, e)
        return await self.dispatch(context, request)

    async def dispatch(self, context: InvocationContext, request: Request) -> Response | None:
        """Run the handler for a validated request.

        Returns:
            A Response, or None for notifications.
        """
        handler = self._handlers.get(request.method)
        ctx = dataclasses.replace(context, method=request.method, request_id=request.id)

        if request.is_notification:
            if handler is None:
                logger.warning("Notification for unknown method '%s' ignored", request.method)
                return None
            try:
                await handler(ctx, request.params)
            except Exception as e:
                logger.warning(
                    "Notification handler '%s' failed: %s",
                    request.method,
                    type(e).__name__,
                    exc_info=True,
                )
            return None

        if handler is None:
            logger.debug("Method not found: %s (id=%r)", request.method, request.id)
            return error_response(request.id, method_not_found(request.method))

        logger.debug("Dispatching %s (id=%r)", request.method, request.id)
        try:
            result = await handler(ctx, request.params)
        except Exception as e:
            error = self.mapper.map_error(e)
            if error.code == INTERNAL_ERROR:
                logger.error(
                    "Handler '%s' (id=%r) failed: %s",
                    request.method,
                    request.id,
                    type(e).__name__,
                    exc_info=True,
                )
            else:
                logger.info(
                    "Handler '%s' (id=%r) returned error %d",
                    request.method,
                    request.id,
                    error.code,
                )
            return error_response(request.id, error)

        return make_success_response(request.id, result)

    def serialize(self, response: Response) -> bytes:
        """Serialize a response, falling back to an internal error."""
        try:
            return serialize_response(response)
        except (TypeError, ValueError) as e:
            logger.error(
                "Failed to serialize response for id=%r: %s", response.id, e
            )
            return fallback_response(response.id)
