"""Progress display for the interactive initializer.

ProgressTracker keeps the status of every step and prints the step table
after each transition. ProgressIndicator wraps one awaited operation in a
spinner, with a slow-operation warning at half the timeout.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from rich.console import Console

from reqmcp.core.errors import BridgeError
from reqmcp.display.console import get_console
from reqmcp.display.spinner import Spinner

T = TypeVar("T")


class OperationTimeoutError(BridgeError):
    """An operation ran past its per-attempt timeout."""


class StepStatus(Enum):
    PENDING = "⏳"
    IN_PROGRESS = "🔄"
    COMPLETED = "✅"
    FAILED = "❌"


@dataclass
class ProgressStep:
    name: str
    description: str
    status: StepStatus = StepStatus.PENDING
    start_time: float | None = None
    end_time: float | None = None
    error: BaseException | None = None


STEPS: tuple[tuple[str, str], ...] = (
    ("url_collection", "Collecting server URL"),
    ("connectivity_test", "Testing server connectivity"),
    ("credential_collection", "Collecting user credentials"),
    ("authentication", "Authenticating with server"),
    ("pat_generation", "Generating Personal Access Token"),
    ("config_write", "Generating configuration file"),
    ("config_validation", "Validating configuration"),
)


def format_seconds(seconds: float) -> str:
    """Render a duration the way users type it: ``15s``, ``1.5s``."""
    if seconds == int(seconds):
        return f"{int(seconds)}s"
    return f"{seconds:g}s"


class ProgressTracker:
    """Status of each initialization step."""

    def __init__(
        self,
        console: Console | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.console = console or get_console()
        self._clock = clock
        self.steps = [ProgressStep(name, desc) for name, desc in STEPS]
        self.current_step = 0

    def _find(self, name: str) -> ProgressStep:
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(f"unknown initialization step: {name}")

    def start_step(self, name: str) -> None:
        step = self._find(name)
        step.status = StepStatus.IN_PROGRESS
        step.start_time = self._clock()
        self.current_step = self.steps.index(step)
        self.display_progress()

    def complete_step(self, name: str) -> None:
        step = self._find(name)
        step.status = StepStatus.COMPLETED
        step.end_time = self._clock()
        self.display_progress()

    def fail_step(self, name: str, error: BaseException) -> None:
        step = self._find(name)
        step.status = StepStatus.FAILED
        step.end_time = self._clock()
        step.error = error
        self.display_progress()

    def status(self, name: str) -> StepStatus:
        return self._find(name).status

    def _duration(self, step: ProgressStep) -> float | None:
        if step.start_time is None:
            return None
        if step.end_time is not None:
            return step.end_time - step.start_time
        if step.status is StepStatus.IN_PROGRESS:
            return self._clock() - step.start_time
        return None

    def display_progress(self) -> None:
        """Print the step table, marking the current step."""
        out = self.console
        out.print()
        out.print("📋 Initialization Progress:", markup=False)
        out.print("==========================")
        for i, step in enumerate(self.steps):
            prefix = "➤  " if i == self.current_step else "   "
            duration = self._duration(step)
            suffix = f" ({duration:.1f}s)" if duration is not None else ""
            out.print(f"{prefix}{step.status.value} {step.description}{suffix}", markup=False)
            if step.status is StepStatus.FAILED and step.error is not None:
                out.print(f"      Error: {step.error}", markup=False)
        out.print()

    def overall_progress(self) -> float:
        """Percentage of steps completed."""
        completed = sum(1 for s in self.steps if s.status is StepStatus.COMPLETED)
        return completed / len(self.steps) * 100

    def display_summary(self) -> None:
        completed = [s for s in self.steps if s.status is StepStatus.COMPLETED]
        failed = [s for s in self.steps if s.status is StepStatus.FAILED]
        total = sum(self._duration(s) or 0.0 for s in completed)

        out = self.console
        out.print("📊 Initialization Summary:", markup=False)
        out.print("=========================")
        out.print(f"✅ Completed steps: {len(completed)}/{len(self.steps)}", markup=False)
        if failed:
            out.print(f"❌ Failed steps: {len(failed)}", markup=False)
        out.print(f"⏱️  Total time: {total:.1f}s", markup=False)
        out.print(f"📈 Success rate: {self.overall_progress():.1f}%", markup=False)
        out.print()


class ProgressIndicator:
    """Runs awaitables behind a spinner."""

    def __init__(self, console: Console | None = None, spinner: Spinner | None = None) -> None:
        self.spinner = spinner or Spinner(console)

    async def run(
        self,
        message: str,
        operation: Awaitable[T],
        timeout: float | None = None,
    ) -> T:
        """Await operation while showing message.

        Args:
            message: Spinner text.
            operation: The work to await.
            timeout: Seconds before giving up. Past half of it the text
                gains a "taking longer than expected" note.

        Raises:
            OperationTimeoutError: If the timeout expires. The operation
                is cancelled.
        """
        task = asyncio.ensure_future(operation)
        self.spinner.show(message)
        try:
            if timeout is None:
                return await task

            half = timeout / 2
            done, _ = await asyncio.wait({task}, timeout=half)
            if not done:
                self.spinner.update(f"{message} (taking longer than expected...)")
                done, _ = await asyncio.wait({task}, timeout=timeout - half)
            if not done:
                self.spinner.update(f"{message} (operation timed out)")
                raise OperationTimeoutError(
                    f"operation timed out after {format_seconds(timeout)}"
                )
            return task.result()
        finally:
            if not task.done():
                task.cancel()
            self.spinner.hide()

    async def wait(self, seconds: float) -> None:
        """Show the retry countdown while sleeping."""
        await self.run(
            f"⏳ Waiting {format_seconds(seconds)} before retry...",
            asyncio.sleep(seconds),
        )


@dataclass
class StatusMessage:
    operation: str
    messages: list[str] = field(default_factory=list)
    tips: list[str] = field(default_factory=list)


STATUS_MESSAGES: dict[str, StatusMessage] = {
    "url_collection": StatusMessage(
        "Server URL Collection",
        [
            "🌐 Collecting backend API server URL...",
            "🔍 Validating URL format and accessibility...",
            "✅ Server URL validated successfully",
        ],
        [
            "Ensure the URL includes the protocol (http:// or https://)",
            "The server should be running and accessible",
            "Check firewall settings if connection fails",
        ],
    ),
    "connectivity_test": StatusMessage(
        "Server Connectivity Test",
        [
            "🔗 Testing connection to server...",
            "📡 Checking server health endpoint...",
            "✅ Server connectivity confirmed",
        ],
        [
            "This verifies the server is running and reachable",
            "The /ready endpoint must be available",
            "Network connectivity is required",
        ],
    ),
    "credential_collection": StatusMessage(
        "Credential Collection",
        [
            "🔐 Collecting authentication credentials...",
            "👤 Validating username and password format...",
            "✅ Credentials collected securely",
        ],
        [
            "Your password will not be displayed as you type",
            "Credentials are used only for token generation",
            "They are not stored in the configuration file",
        ],
    ),
    "authentication": StatusMessage(
        "Server Authentication",
        [
            "🔑 Authenticating with backend server...",
            "🎫 Requesting JWT authentication token...",
            "✅ Authentication successful",
        ],
        [
            "This verifies your credentials with the server",
            "A temporary JWT token is generated for PAT creation",
            "The JWT token is not stored permanently",
        ],
    ),
    "pat_generation": StatusMessage(
        "Personal Access Token Generation",
        [
            "🎟️  Generating Personal Access Token...",
            "⏰ Setting 1-year expiration period...",
            "✅ PAT token generated successfully",
        ],
        [
            "PAT tokens provide secure long-term access",
            "The token expires in 1 year from creation",
            "This token will be stored in your configuration",
        ],
    ),
    "config_write": StatusMessage(
        "Configuration File Generation",
        [
            "📝 Generating configuration file...",
            "🔒 Setting secure file permissions...",
            "✅ Configuration saved successfully",
        ],
        [
            "Configuration includes server URL and PAT token",
            "File permissions are set to owner-only (600)",
            "Backup is created if existing config exists",
        ],
    ),
    "config_validation": StatusMessage(
        "Configuration Validation",
        [
            "🔍 Validating generated configuration...",
            "🧪 Testing PAT token with MCP endpoint...",
            "✅ Configuration validated successfully",
        ],
        [
            "This ensures the PAT token works correctly",
            "MCP protocol initialization is tested",
            "Configuration is ready for use",
        ],
    ),
}


def get_status_message(operation: str) -> StatusMessage:
    return STATUS_MESSAGES.get(
        operation,
        StatusMessage(
            "Unknown Operation",
            ["Processing..."],
            ["Please wait while the operation completes"],
        ),
    )


def display_operation_start(operation: str, console: Console | None = None) -> None:
    out = console or get_console()
    msg = get_status_message(operation)
    out.print()
    out.print(f"🚀 {msg.operation}", markup=False)
    out.print("-" * (len(msg.operation) + 4))
    if msg.tips:
        out.print("💡 What's happening:", markup=False)
        for tip in msg.tips:
            out.print(f"   • {tip}", markup=False)
        out.print()


def display_operation_success(
    operation: str, *details: str, console: Console | None = None
) -> None:
    out = console or get_console()
    msg = get_status_message(operation)
    if len(msg.messages) > 2:
        out.print(msg.messages[2], markup=False)
    else:
        out.print(f"✅ {msg.operation} completed successfully", markup=False)
    for detail in details:
        out.print(f"   {detail}", markup=False)
    out.print()


def display_operation_error(
    operation: str, error: BaseException, console: Console | None = None
) -> None:
    out = console or get_console()
    msg = get_status_message(operation)
    out.print(f"❌ {msg.operation} failed: {error}", markup=False)
    out.print()
