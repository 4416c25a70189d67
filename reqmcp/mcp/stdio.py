"""Newline-framed stdio streams for the bridge.

Input is read in bounded chunks so a single oversized line cannot exhaust
memory. Output writes are serialized so each response line reaches stdout
whole.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from collections.abc import Callable
from typing import BinaryIO

from reqmcp.core.errors import BridgeError

logger = logging.getLogger(__name__)

MAX_LINE_LENGTH: int = 10 * 1024 * 1024  # 10 MB
READ_CHUNK_SIZE: int = 65536  # 64KB


class LineTooLongError(BridgeError):
    """Raised when an input line exceeds the maximum length.

    The oversized line has already been discarded when this is raised, so
    the caller can keep reading.
    """


class BoundedLineReader:
    """Reads newline-terminated lines from a StreamReader with a size cap."""

    def __init__(self, stream: asyncio.StreamReader, max_length: int = MAX_LINE_LENGTH) -> None:
        self._stream = stream
        self._max_length = max_length
        self._buffer = bytearray()

    async def readline(self) -> bytes:
        """Read one line.

        Returns:
            Line bytes including the newline if present. b"" at EOF.

        Raises:
            LineTooLongError: If the line exceeds the cap. The line is
                skipped.
        """
        while True:
            newline_idx = self._buffer.find(b"\n")
            if newline_idx >= 0:
                line = bytes(self._buffer[: newline_idx + 1])
                del self._buffer[: newline_idx + 1]
                if newline_idx > self._max_length:
                    raise self._too_long()
                return line

            if len(self._buffer) > self._max_length:
                await self._discard_rest_of_line()
                raise self._too_long()

            chunk = await self._stream.read(READ_CHUNK_SIZE)
            if not chunk:
                # EOF - return what we have
                line = bytes(self._buffer)
                self._buffer.clear()
                return line
            self._buffer.extend(chunk)

    async def _discard_rest_of_line(self) -> None:
        self._buffer.clear()
        while True:
            chunk = await self._stream.read(READ_CHUNK_SIZE)
            if not chunk:
                return
            newline_idx = chunk.find(b"\n")
            if newline_idx >= 0:
                # Keep data after the newline for the next read
                self._buffer.extend(chunk[newline_idx + 1 :])
                return

    def _too_long(self) -> LineTooLongError:
        return LineTooLongError(
            f"Input line exceeds maximum length ({self._max_length} bytes), skipped"
        )


class StdoutWriter:
    """Serialized line writer for stdout.

    Each call writes one complete line under a lock; concurrent responses
    never interleave.
    """

    def __init__(self, stream: BinaryIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout.buffer
        self._lock = asyncio.Lock()

    async def write_line(self, data: bytes) -> None:
        """Write data followed by a newline, unless it already ends with one."""
        if not data.endswith(b"\n"):
            data += b"\n"
        async with self._lock:
            await asyncio.to_thread(self._write, data)

    def _write(self, data: bytes) -> None:
        self._stream.write(data)
        self._stream.flush()


async def open_stdin(limit: int = MAX_LINE_LENGTH) -> asyncio.StreamReader:
    """Attach process stdin to an asyncio StreamReader.

    Pipes and terminals are connected to the event loop directly. Regular
    files (``< requests.jsonl``) are not supported by the loop's pipe
    transport, so a daemon thread feeds the reader instead.
    """
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    protocol = asyncio.StreamReaderProtocol(reader)
    try:
        await loop.connect_read_pipe(lambda: protocol, sys.stdin.buffer)
    except (ValueError, OSError, NotImplementedError) as e:
        logger.debug("stdin is not a pipe (%s), reading from a thread", e)
        _feed_from_thread(loop, reader, sys.stdin.buffer)
    return reader


def _feed_from_thread(
    loop: asyncio.AbstractEventLoop, reader: asyncio.StreamReader, source: BinaryIO
) -> None:
    def call(callback: Callable[..., object], *args: object) -> bool:
        try:
            loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            # Loop already closed
            return False
        return True

    def pump() -> None:
        try:
            while True:
                chunk = source.read1(READ_CHUNK_SIZE)
                if not chunk or not call(reader.feed_data, chunk):
                    break
        except (OSError, ValueError) as e:
            logger.debug("stdin reader thread stopped: %s", e)
        finally:
            call(reader.feed_eof)

    threading.Thread(target=pump, name="reqmcp-stdin", daemon=True).start()
