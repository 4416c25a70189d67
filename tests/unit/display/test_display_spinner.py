"""Tests for the shared console and the spinner."""

import io

from rich.console import Console

from reqmcp.display.console import get_console, set_console
from reqmcp.display.spinner import Spinner


class TestConsole:
    def test_set_console(self):
        original = get_console()
        custom = Console(file=io.StringIO())
        try:
            set_console(custom)
            assert get_console() is custom
        finally:
            set_console(original)


class TestSpinner:
    """Tests for Spinner on a non-terminal console."""

    def test_non_terminal_prints_text(self):
        buffer = io.StringIO()
        spinner = Spinner(Console(file=buffer, color_system=None))

        spinner.show("Authenticating...")
        spinner.update("Authenticating... (taking longer than expected...)")
        spinner.hide()

        assert buffer.getvalue().splitlines() == [
            "Authenticating...",
            "Authenticating... (taking longer than expected...)",
        ]
        assert not spinner.is_active

    def test_terminal_uses_live(self):
        buffer = io.StringIO()
        spinner = Spinner(Console(file=buffer, force_terminal=True, color_system=None))

        spinner.show("Working")
        try:
            assert spinner.is_active
            assert spinner.elapsed >= 0.0
        finally:
            spinner.hide()

        assert not spinner.is_active

    def test_render_single_line(self):
        spinner = Spinner(Console(file=io.StringIO()))
        spinner.text = "line one\nline two"

        rendered = spinner.__rich__()

        assert "\n" not in rendered.plain
        assert rendered.plain[0] in Spinner.FRAMES
