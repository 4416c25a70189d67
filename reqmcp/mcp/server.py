"""STDIO to HTTP bridge server.

Lifecycle:

    RUNNING   reading stdin, one forward task per line
    DRAINING  no new lines accepted, in-flight tasks finishing
    STOPPED   all tasks finished, or the drain deadline forced them off

SIGINT and SIGTERM cancel the shared token at once, which cancels every
in-flight forward. Stdin EOF drains without cancelling, so requests piped
in just before EOF still get their responses. Either way the drain is
bounded by a deadline; when it expires the remaining tasks are cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from enum import Enum
from typing import TextIO

from reqmcp.core.cancel import CancellationToken
from reqmcp.core.errors import BackendError
from reqmcp.core.redaction import redact_secrets
from reqmcp.mcp.forwarder import HttpForwarder
from reqmcp.mcp.stdio import (
    MAX_LINE_LENGTH,
    BoundedLineReader,
    LineTooLongError,
    StdoutWriter,
    open_stdin,
)

logger = logging.getLogger(__name__)

DRAIN_TIMEOUT: float = 5.0

# Time given to cancelled tasks to unwind after the drain deadline
CANCEL_GRACE: float = 1.0


class BridgeState(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class BridgeServer:
    """Pumps newline-delimited JSON-RPC between stdio and the backend.

    Args:
        forwarder: Sends frames to the backend.
        stdin: Source stream. Defaults to process stdin.
        stdout: Serialized sink for responses. Defaults to process stdout.
        stderr: Text stream for human-readable errors.
        drain_timeout: Seconds to wait for in-flight tasks on shutdown.
        max_line_length: Longest accepted input line, in bytes.
    """

    def __init__(
        self,
        forwarder: HttpForwarder,
        *,
        stdin: asyncio.StreamReader | None = None,
        stdout: StdoutWriter | None = None,
        stderr: TextIO | None = None,
        drain_timeout: float = DRAIN_TIMEOUT,
        max_line_length: int = MAX_LINE_LENGTH,
    ) -> None:
        self._forwarder = forwarder
        self._stdin = stdin
        self._stdout = stdout
        self._stderr = stderr
        self._drain_timeout = drain_timeout
        self._max_line_length = max_line_length

        self.cancel_token = CancellationToken()
        self.cancel_token.on_cancel(self._cancel_tasks)
        self._state = BridgeState.RUNNING
        self._tasks: set[asyncio.Task[None]] = set()
        self._pump_task: asyncio.Task[None] | None = None
        self._installed_signals: list[signal.Signals] = []
        self.drain_timed_out = False

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def forwarder(self) -> HttpForwarder:
        return self._forwarder

    @property
    def in_flight(self) -> int:
        """Number of forward tasks still running."""
        return len(self._tasks)

    async def run(self) -> None:
        """Run until stdin closes or a shutdown signal arrives, then drain."""
        logger.info(
            "Starting MCP bridge (backend=%s, timeout=%ss)",
            self._forwarder.url,
            self._forwarder.timeout,
        )
        if self._stdout is None:
            self._stdout = StdoutWriter()
        stdin = self._stdin if self._stdin is not None else await open_stdin()
        reader = BoundedLineReader(stdin, self._max_line_length)

        self._install_signal_handlers()
        self._pump_task = asyncio.create_task(self._pump(reader), name="reqmcp-pump")
        try:
            await self._pump_task
        except asyncio.CancelledError:
            # Pump cancelled by request_shutdown(); anything else propagates
            if self._state is BridgeState.RUNNING:
                raise
        finally:
            self._remove_signal_handlers()
            await self.shutdown()

    def request_shutdown(self, reason: str = "signal") -> None:
        """Stop reading stdin and cancel in-flight work.

        Safe to call from a signal handler and more than once. During an
        EOF drain it cuts the drain short.
        """
        if self._state is BridgeState.STOPPED or self.cancel_token.is_cancelled:
            return
        logger.info("Shutdown requested (%s)", reason)
        self._state = BridgeState.DRAINING
        if self._pump_task is not None and not self._pump_task.done():
            self._pump_task.cancel()
        self.cancel_token.cancel()

    async def shutdown(self) -> bool:
        """Wait for in-flight tasks up to the drain deadline.

        Returns:
            True if every task finished before the deadline.
        """
        if self._state is BridgeState.STOPPED:
            return not self.drain_timed_out
        self._state = BridgeState.DRAINING

        pending = set(self._tasks)
        if pending:
            logger.info("Waiting for %d in-flight request(s)", len(pending))
            _done, pending = await asyncio.wait(pending, timeout=self._drain_timeout)

        if pending:
            self.drain_timed_out = True
            logger.warning("Shutdown timeout reached, forcing exit")
            self.cancel_token.cancel()
            await asyncio.wait(pending, timeout=CANCEL_GRACE)
        else:
            logger.info("All operations completed, shutdown complete")

        self._state = BridgeState.STOPPED
        return not self.drain_timed_out

    async def _pump(self, reader: BoundedLineReader) -> None:
        while self._state is BridgeState.RUNNING:
            try:
                line = await reader.readline()
            except LineTooLongError as e:
                self._write_error(e.message)
                continue

            if not line:
                logger.info("STDIN closed, shutting down")
                self._state = BridgeState.DRAINING
                return

            frame = line.rstrip(b"\r\n")
            if not frame.strip():
                continue

            task = asyncio.create_task(self._process_frame(frame))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _process_frame(self, frame: bytes) -> None:
        logger.debug("Processing message (%d bytes)", len(frame))
        try:
            self.cancel_token.raise_if_cancelled()
            response = await self._forwarder.forward(frame)
        except asyncio.CancelledError:
            self._write_error("request cancelled: bridge is shutting down")
            raise
        except BackendError as e:
            self._write_error(f"backend communication failed: {e.message}")
            return
        except Exception as e:
            logger.error("Unexpected forwarding failure", exc_info=True)
            self._write_error(f"backend communication failed: {redact_secrets(str(e))}")
            return

        if not response:
            # Nothing to relay (e.g. 204 for a notification)
            return

        assert self._stdout is not None
        try:
            await self._stdout.write_line(response)
        except (OSError, ValueError) as e:
            logger.error("Failed to write response to STDOUT: %s", e)

    def _cancel_tasks(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    def _write_error(self, message: str) -> None:
        logger.debug("MCP Server error: %s", message)
        stream = self._stderr if self._stderr is not None else sys.stderr
        try:
            print(f"MCP Server Error: {message}", file=stream, flush=True)
        except (OSError, ValueError):
            pass  # stderr closed

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig.name)
            except (NotImplementedError, RuntimeError, ValueError):
                # Not on the main thread, or platform without signal support
                logger.debug("Cannot install handler for %s", sig.name)
                continue
            self._installed_signals.append(sig)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._installed_signals:
            loop.remove_signal_handler(sig)
        self._installed_signals.clear()
