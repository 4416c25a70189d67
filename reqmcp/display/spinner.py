"""Single-line spinner for long-running initializer operations."""

from __future__ import annotations

import time
from rich.console import Console
from rich.live import Live
from rich.text import Text

from reqmcp.display.console import get_console


class Spinner:
    """Animated spinner with text, pinned to the bottom of the terminal.

    Usage:
        spinner = Spinner()
        spinner.show("Testing connectivity...")
        spinner.update("Testing connectivity... (taking longer than expected...)")
        spinner.hide()
    """

    FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or get_console()
        self.text = ""
        self._live: Live | None = None
        self._start_time: float = 0.0

    def show(self, text: str = "") -> None:
        """Start showing the spinner.

        Nothing is animated when the console is not a terminal; the text is
        printed once instead so logs of scripted runs still show progress.
        """
        self.text = text
        self._start_time = time.monotonic()

        if not self.console.is_terminal:
            self.console.print(text)
            return

        if self._live is None:
            self._live = Live(
                self,
                console=self.console,
                auto_refresh=True,
                refresh_per_second=10,
                transient=True,  # Don't leave spinner in scrollback
            )
            self._live.start()

    def update(self, text: str | None = None) -> None:
        if text is not None:
            self.text = text
            if self._live is None:
                self.console.print(text)
        if self._live:
            self._live.refresh()

    def hide(self) -> None:
        """Stop and hide the spinner."""
        if self._live:
            self._live.stop()
            self._live = None
        self.text = ""

    @property
    def is_active(self) -> bool:
        return self._live is not None

    @property
    def elapsed(self) -> float:
        """Get elapsed time since spinner started."""
        if self._start_time:
            return time.monotonic() - self._start_time
        return 0.0

    def __rich__(self) -> Text:
        """Render the spinner for Rich.Live."""
        frame_idx = int(time.time() * 10) % len(self.FRAMES)
        frame = self.FRAMES[frame_idx]

        parts = [self.text]
        elapsed = self.elapsed
        if elapsed >= 1.0:
            parts.append(f"({elapsed:.0f}s)")
        # Live renderable must remain single-line
        status = " ".join(filter(None, parts)).replace("\n", " ")

        result = Text()
        result.no_wrap = True
        result.overflow = "crop"
        result.append(f"{frame} ", style="cyan")
        result.append(status, style="cyan")
        return result
