"""Terminal output for the interactive initializer."""

from reqmcp.display.console import get_console, set_console
from reqmcp.display.spinner import Spinner

__all__ = ["Spinner", "get_console", "set_console"]
