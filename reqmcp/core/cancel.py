"""Cancellation support for async operations."""

import logging
from asyncio import CancelledError
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """Token for cooperative cancellation of async operations.

    The bridge holds one process-wide token. It is cancelled on SIGINT,
    SIGTERM, or when the drain deadline expires. The server registers an
    on_cancel() callback that cancels every in-flight forward task.

    Example:
        token = CancellationToken()

        async def forward(frame):
            token.raise_if_cancelled()
            return await client.post(...)

        # On SIGTERM:
        token.cancel()
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation and notify callbacks."""
        if self._cancelled:
            return  # Already cancelled
        self._cancelled = True
        for callback in self._callbacks:
            try:
                callback()
            except Exception:
                logger.debug("Cancellation callback failed", exc_info=True)

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register a callback to be called when cancelled.

        If already cancelled, callback is invoked immediately.
        """
        self._callbacks.append(callback)
        if self._cancelled:
            try:
                callback()
            except Exception:
                logger.debug("Cancellation callback failed", exc_info=True)

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if cancellation was requested.

        Raises:
            asyncio.CancelledError: If cancel() was called.
        """
        if self._cancelled:
            raise CancelledError("Operation cancelled")
