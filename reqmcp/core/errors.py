"""Typed exception hierarchy for requirements-mcp."""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all requirements-mcp errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(BridgeError):
    """Raised for configuration issues (missing file, invalid JSON, validation failure)."""


class BackendError(BridgeError):
    """Raised when the remote backend rejects or fails a forwarded request.

    Attributes:
        status_code: HTTP status returned by the backend, or None for
            transport-level failures.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# === Domain errors ===
#
# Raised by business collaborators (handlers registered on the processor).
# The JSON-RPC error mapper recognises these by type before falling back to
# message matching.


class DomainError(BridgeError):
    """Base class for errors raised by domain collaborators."""


class NotFoundError(DomainError):
    """Requested entity does not exist."""


class DuplicateError(DomainError):
    """Entity already exists."""


class ConstraintError(DomainError):
    """Operation violates a domain constraint."""


class DomainValidationError(DomainError):
    """Input failed domain validation."""


class DomainUnauthorizedError(DomainError):
    """Caller lacks access to the requested operation."""


class TokenInvalidError(DomainUnauthorizedError):
    """Bearer or personal access token is invalid."""


class TokenExpiredError(DomainUnauthorizedError):
    """Bearer or personal access token has expired."""


class RateLimitedError(DomainError):
    """Caller exceeded a rate limit or quota."""


class DomainUnavailableError(DomainError):
    """A dependency of the domain service is unavailable."""


class DomainInternalError(DomainError):
    """Unexpected internal failure already classified by the domain.

    Never reclassified from its message text.
    """
