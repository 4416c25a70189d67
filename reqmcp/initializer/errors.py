"""Categorised initialization errors with troubleshooting guidance."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from rich.console import Console

from reqmcp.core.errors import BridgeError
from reqmcp.display.console import get_console
from reqmcp.initializer.security import sanitize_error_message


class ErrorCategory(Enum):
    """Failure category of an initialization step.

    The value is the heading shown to the user.
    """

    NETWORK = "Network Error"
    AUTH = "Authentication Error"
    FILESYSTEM = "File System Error"
    VALIDATION = "Validation Error"
    USER_INPUT = "User Input Error"


class InitError(BridgeError):
    """An initialization failure the user can act on.

    Attributes:
        category: Which kind of step failed.
        cause: Sanitized text of the underlying error, or None.
        user_guidance: Ordered troubleshooting suggestions.
        retryable: Whether running the operation again may succeed.
    """

    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        cause: BaseException | str | None = None,
        user_guidance: list[str] | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.cause = _sanitize(cause)
        self.user_guidance = list(user_guidance or [])
        self.retryable = retryable

    def __str__(self) -> str:
        if self.cause:
            return f"{self.category.value}: {self.message}: {self.cause}"
        return f"{self.category.value}: {self.message}"

    def display(self, console: Console | None = None) -> None:
        """Render the error and its guidance to the terminal."""
        console = console or get_console()
        console.print()
        console.print(f"❌ {self.category.value}", style="bold red", markup=False)
        console.print(f"   {self.message}", markup=False)

        if self.user_guidance:
            console.print()
            console.print("💡 Troubleshooting suggestions:", markup=False)
            for i, guidance in enumerate(self.user_guidance, 1):
                console.print(f"   {i}. {guidance}", markup=False)

        if self.retryable:
            console.print()
            console.print("🔄 This operation can be retried.", markup=False)
        console.print()


def _sanitize(cause: BaseException | str | None) -> str | None:
    if cause is None:
        return None
    return sanitize_error_message(cause)


def network_error(
    message: str, cause: BaseException | str | None = None, *, retryable: bool = True
) -> InitError:
    return InitError(
        ErrorCategory.NETWORK,
        message,
        cause,
        [
            "Check that the server is running and accessible",
            "Verify the URL is correct and includes the protocol (http:// or https://)",
            "Check your network connection and firewall settings",
            "Ensure the server's /ready endpoint is available",
            "Try accessing the URL in a web browser to verify connectivity",
        ],
        retryable,
    )


def auth_error(
    message: str, cause: BaseException | str | None = None, is_credential_issue: bool = True
) -> InitError:
    """Create an authentication error.

    Args:
        message: Short description shown to the user.
        cause: Underlying error; sanitized before it is stored.
        is_credential_issue: False when the failure is more likely on the
            server side, which adds endpoint-related guidance.
    """
    guidance = [
        "Verify your username and password are correct",
        "Check if your account is active and not locked",
        "Ensure you have the necessary permissions to access the API",
        "Try logging in through the web interface to verify credentials",
    ]
    if not is_credential_issue:
        guidance += [
            "Check if the authentication endpoint (/auth/login) is available",
            "Verify the server is configured to accept login requests",
        ]
    return InitError(ErrorCategory.AUTH, message, cause, guidance)


def filesystem_error(
    message: str, cause: BaseException | str | None = None, config_path: Path | str = ""
) -> InitError:
    directory = Path(config_path).parent if config_path else Path(".")
    return InitError(
        ErrorCategory.FILESYSTEM,
        message,
        cause,
        [
            f"Check that you have write permissions to: {directory}",
            "Ensure the parent directory exists or can be created",
            "Verify there is sufficient disk space available",
            "Check if the file is not currently in use by another process",
            "Try running with elevated permissions if necessary",
        ],
    )


def validation_error(message: str, cause: BaseException | str | None = None) -> InitError:
    return InitError(
        ErrorCategory.VALIDATION,
        message,
        cause,
        [
            "Verify the generated PAT token is valid and not expired",
            "Check if the token has the necessary permissions",
            "Ensure the MCP endpoint (/api/v1/mcp) is available",
            "Try generating a new PAT token if the current one fails",
            "Contact your system administrator if validation continues to fail",
        ],
    )


def user_input_error(message: str, cause: BaseException | str | None = None) -> InitError:
    return InitError(
        ErrorCategory.USER_INPUT,
        message,
        cause,
        [
            "Ensure all required fields are filled in correctly",
            "Check that URLs include the protocol (http:// or https://)",
            "Verify usernames and passwords don't contain invalid characters",
            "Make sure you're entering information in the correct format",
        ],
    )
