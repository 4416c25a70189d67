"""Terminal prompts for the interactive initializer."""

from __future__ import annotations

import getpass
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TextIO
from urllib.parse import urlparse

from rich.console import Console

from reqmcp.core.errors import BridgeError
from reqmcp.display.console import get_console

logger = logging.getLogger(__name__)

URL_HINT = "Please enter a valid URL (e.g., https://api.example.com)"
YES = ("y", "yes")
NO = ("n", "no")

# Probe for the inline connectivity check; raises on failure
UrlProbe = Callable[[str], Awaitable[None]]


class InputError(BridgeError):
    """Input could not be read, or the user gave up."""


def check_url(url: str) -> str | None:
    """Return the first problem with a backend URL, or None if it is usable."""
    if not url:
        return "URL cannot be empty. Please enter a valid URL."
    try:
        parsed = urlparse(url)
    except ValueError as e:
        return f"Invalid URL format: {e}"
    if not parsed.scheme:
        return "URL must include a scheme (http:// or https://)"
    if parsed.scheme not in ("http", "https"):
        return "URL must use http:// or https://"
    if not parsed.hostname:
        return "URL must include a host (e.g., api.example.com)"
    return None


class InputHandler:
    """Prompts the user and validates what they type.

    Args:
        console: Output console. Defaults to the shared console.
        stream: Read input from this stream instead of the terminal. Input
            from a stream is never treated as a terminal, so passwords are
            read visibly (with a warning).
    """

    def __init__(self, console: Console | None = None, stream: TextIO | None = None) -> None:
        self.console = console or get_console()
        self._stream = stream

    def _say(self, text: str = "") -> None:
        self.console.print(text, markup=False, highlight=False)

    @property
    def is_terminal(self) -> bool:
        if self._stream is not None:
            return False
        try:
            return sys.stdin.isatty()
        except (AttributeError, ValueError):
            return False

    def read_line(self, prompt: str) -> str:
        """Read one stripped line.

        Raises:
            InputError: On end of input or interrupt.
        """
        try:
            if self._stream is not None:
                self.console.print(prompt, end="", markup=False)
                line = self._stream.readline()
                if not line:
                    raise EOFError("end of input")
            else:
                line = self.console.input(prompt)
        except (EOFError, KeyboardInterrupt) as e:
            raise InputError(f"failed to read input: {e or type(e).__name__}") from e
        return line.strip()

    def read_password(self, prompt: str) -> str:
        """Read a password without echo when stdin is a terminal."""
        if not self.is_terminal:
            self._say("Warning: Input is not from a terminal. Password will not be hidden.")
            return self.read_line(prompt)
        try:
            return getpass.getpass(prompt)
        except (EOFError, KeyboardInterrupt) as e:
            raise InputError(f"failed to read password securely: {e or type(e).__name__}") from e

    def ask_yes_no(self, question: str) -> bool:
        """Ask until the user answers y/yes or n/no."""
        while True:
            answer = self.read_line(f"{question} (y/n): ").lower()
            if answer in YES:
                return True
            if answer in NO:
                return False
            self._say("Please enter 'y' for yes or 'n' for no.")

    def ask_retry(self, question: str) -> bool:
        """Like ask_yes_no, but unreadable input counts as no."""
        try:
            return self.ask_yes_no(question)
        except InputError:
            self._say("Error reading input, assuming 'no'")
            return False

    def display_welcome(self) -> None:
        for line in (
            "🚀 MCP Server Initialization",
            "============================",
            "",
            "Welcome to the MCP Server interactive setup!",
            "This process will guide you through configuring your MCP server",
            "by connecting to your backend API and generating the necessary",
            "authentication tokens.",
            "",
            "📋 What this process will do:",
            "   1. 🌐 Collect and validate your backend API server URL",
            "   2. 🔗 Test connectivity to ensure the server is reachable",
            "   3. 🔐 Securely collect your authentication credentials",
            "   4. 🔑 Authenticate with the server and obtain a JWT token",
            "   5. 🎟️  Generate a Personal Access Token (PAT) with 1-year expiration",
            "   6. 📝 Create and save your configuration file",
            "   7. 🔍 Validate the configuration to ensure everything works",
            "",
            "🔒 Security notes:",
            "   • Your password will not be displayed as you type",
            "   • Credentials are used only for token generation and not stored",
            "   • Configuration files are created with secure permissions",
            "   • All network communication uses HTTPS when available",
            "",
        ):
            self._say(line)

    async def collect_server_url(self, probe: UrlProbe | None = None) -> str:
        """Prompt until a usable http(s) URL is entered and, if given, probed.

        Args:
            probe: Connectivity check run on each syntactically valid URL.

        Returns:
            The URL as typed, without surrounding whitespace.

        Raises:
            InputError: If input ends, or the user declines to try another
                URL after a failed probe.
        """
        self._say("Step 1: Backend API Configuration")
        self._say("---------------------------------")
        self._say()
        self._say("Please enter your backend API URL.")
        self._say("Examples:")
        self._say("  https://api.example.com")
        self._say("  http://localhost:8080")
        self._say("  https://requirements.company.com")
        self._say()

        while True:
            url = self.read_line("Backend API URL: ")
            problem = check_url(url)
            if problem is not None:
                self._say(f"❌ {problem}")
                if url:
                    self._say(URL_HINT)
                self._say()
                continue

            if probe is None:
                return url

            self._say(f"🔍 Testing connectivity to {url}...")
            try:
                await probe(url)
            except Exception as e:
                logger.debug("URL probe failed for %s: %s", url, e)
                self._say(f"❌ Connection test failed: {e}")
                self._say()
                self._say("Options:")
                self._say("1. Check that the server is running and accessible")
                self._say("2. Verify the URL is correct")
                self._say("3. Check your network connection")
                self._say()
                if not self.ask_retry("Would you like to try a different URL?"):
                    raise InputError("user cancelled URL configuration") from e
                continue

            self._say("✅ Connection successful!")
            self._say()
            return url

    def collect_credentials(self) -> tuple[str, str]:
        """Prompt for a non-empty username and password.

        Raises:
            InputError: If input ends.
        """
        self._say("Step 2: Authentication Credentials")
        self._say("----------------------------------")
        self._say()
        self._say("Please provide your login credentials for the backend API.")
        self._say("These will be used to authenticate and generate a Personal Access Token.")
        self._say()

        while True:
            username = self.read_line("Username: ")
            if username:
                break
            self._say("❌ Username cannot be empty. Please enter your username.")
            self._say()

        while True:
            password = self.read_password("Password: ")
            if password:
                break
            self._say("❌ Password cannot be empty. Please enter your password.")
            self._say()

        self._say("✅ Credentials collected successfully!")
        self._say()
        return username, password

    def confirm_overwrite(self, existing_path: Path) -> bool:
        """Ask whether to replace an existing configuration file.

        Raises:
            InputError: If input ends before an answer.
        """
        self._say("⚠️  Existing Configuration Detected")
        self._say("===================================")
        self._say()
        self._say(f"A configuration file already exists at: {existing_path}")
        self._say()
        self._say("Options:")
        self._say("1. Overwrite - Replace the existing configuration (a backup will be created)")
        self._say("2. Cancel - Exit without making changes")
        self._say()

        if self.ask_yes_no("Do you want to overwrite the existing configuration?"):
            self._say("✅ Proceeding with configuration overwrite...")
            self._say("📁 A backup of the existing configuration will be created.")
            self._say()
            return True
        self._say("❌ Configuration cancelled by user.")
        return False

    def display_success(self, config_path: Path) -> None:
        for line in (
            "",
            "🎉 MCP Server initialization completed successfully!",
            "=====================================================",
            "",
            f"📁 Configuration saved to: {config_path}",
            "",
            "🚀 Next steps:",
            "   1. You can now run the MCP server normally without the -i flag",
            "   2. The server will use the generated configuration automatically",
            "   3. Your PAT token is valid for 1 year from today",
            "",
            "💻 To start the MCP server:",
            f"   requirements-mcp --config {config_path}",
            "",
            "📚 Additional information:",
            "   • Configuration file permissions are set to 600 (owner-only)",
            "   • PAT token provides secure access to the backend API",
            "   • You can regenerate the PAT token anytime through the web interface",
            "   • Backup of any existing configuration was created automatically",
            "",
            "🔧 Troubleshooting:",
            "   • If the server fails to start, check the configuration file syntax",
            "   • Ensure the backend API server is running and accessible",
            "   • Verify network connectivity and firewall settings",
            "",
        ):
            self._say(line)
