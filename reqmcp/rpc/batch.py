"""Batch execution on top of the single-message Processor."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from reqmcp.rpc.errors import JsonRpcError
from reqmcp.rpc.processor import InvocationContext, Processor
from reqmcp.rpc.protocol import error_response
from reqmcp.rpc.types import Response
from reqmcp.rpc.validator import BatchEntry, BatchValidator, decode_message

logger = logging.getLogger(__name__)


class BatchProcessor:
    """Executes single messages and batches.

    Batch elements run concurrently. The response array follows input
    order and leaves out notifications. A batch made only of notifications
    produces no payload at all.
    """

    def __init__(self, processor: Processor) -> None:
        self.processor = processor
        self._batch_validator = BatchValidator()

    async def handle(self, context: InvocationContext, data: bytes | str) -> bytes | None:
        """Execute a raw payload that may be a single message or a batch.

        Returns:
            Serialized response or response array, or None when nothing is
            to be sent back.
        """
        try:
            obj = decode_message(data)
        except JsonRpcError as e:
            return self.processor.serialize(error_response(None, e))

        if not isinstance(obj, list):
            response = await self.processor.handle_object(context, obj)
            return None if response is None else self.processor.serialize(response)

        try:
            entries = self._batch_validator.validate_batch(obj)
        except JsonRpcError as e:
            return self.processor.serialize(error_response(None, e))

        responses = await self.run_batch(context, entries)
        if not responses:
            return None
        return b"[" + b",".join(self.processor.serialize(r) for r in responses) + b"]"

    async def run_batch(
        self, context: InvocationContext, entries: list[BatchEntry]
    ) -> list[Response]:
        """Run validated batch entries and collect responses in input order."""
        logger.debug("Executing batch of %d element(s)", len(entries))
        results: list[Any] = await asyncio.gather(
            *(self._run_entry(context, entry) for entry in entries)
        )
        return [r for r in results if r is not None]

    async def _run_entry(self, context: InvocationContext, entry: BatchEntry) -> Response | None:
        if entry.error is not None:
            return error_response(entry.id, entry.error)
        assert entry.request is not None
        return await self.processor.dispatch(context, entry.request)
