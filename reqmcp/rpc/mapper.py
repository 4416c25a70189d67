"""Mapping from arbitrary exceptions to JSON-RPC error objects.

Classification order:

1. A JsonRpcError anywhere in the ``__cause__`` chain is returned as is.
2. Registered exception types, most specific class first.
3. Case-insensitive substring patterns on the error text, when enabled.
4. Internal error with a generic message.

Raw error text never goes into ``message``. It appears, redacted, in
``data`` for classified errors only.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from reqmcp.core.errors import (
    ConstraintError,
    DomainInternalError,
    DomainUnauthorizedError,
    DomainUnavailableError,
    DomainValidationError,
    DuplicateError,
    NotFoundError,
    RateLimitedError,
)
from reqmcp.core.redaction import redact_secrets
from reqmcp.rpc.errors import (
    INTERNAL_ERROR,
    RATE_LIMITED,
    RESOURCE_NOT_FOUND,
    SERVICE_UNAVAILABLE,
    UNAUTHORIZED,
    VALIDATION_ERROR,
    JsonRpcError,
)

logger = logging.getLogger(__name__)

GENERIC_INTERNAL_DETAIL = "An unexpected error occurred"

DEFAULT_TYPE_CODES: dict[type[BaseException], int] = {
    NotFoundError: RESOURCE_NOT_FOUND,
    DuplicateError: VALIDATION_ERROR,
    ConstraintError: VALIDATION_ERROR,
    DomainValidationError: VALIDATION_ERROR,
    DomainUnauthorizedError: UNAUTHORIZED,
    RateLimitedError: RATE_LIMITED,
    DomainUnavailableError: SERVICE_UNAVAILABLE,
    DomainInternalError: INTERNAL_ERROR,
}

# Checked in order; first matching group wins
DEFAULT_PATTERNS: tuple[tuple[int, tuple[str, ...]], ...] = (
    (RESOURCE_NOT_FOUND, ("not found", "does not exist", "record not found")),
    (UNAUTHORIZED, ("unauthorized", "access denied", "permission denied", "forbidden")),
    (VALIDATION_ERROR, ("validation", "invalid", "required", "constraint")),
    (SERVICE_UNAVAILABLE, ("service unavailable", "connection", "timeout", "database")),
    (RATE_LIMITED, ("rate limit", "too many requests", "quota exceeded")),
)


def _chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield exc and its explicit causes, guarding against cycles."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__


class ErrorMapper:
    """Maps exceptions raised by handlers to JSON-RPC errors.

    Args:
        pattern_fallback: Classify unknown exceptions by message text.
        type_codes: Initial exception-type table. Defaults to the domain
            error hierarchy.
    """

    def __init__(
        self,
        pattern_fallback: bool = True,
        type_codes: dict[type[BaseException], int] | None = None,
    ) -> None:
        self.pattern_fallback = pattern_fallback
        self._type_codes: dict[type[BaseException], int] = dict(
            DEFAULT_TYPE_CODES if type_codes is None else type_codes
        )

    def register(self, exc_type: type[BaseException], code: int) -> None:
        """Map an exception type (and its subclasses) to an error code."""
        self._type_codes[exc_type] = code

    def map_error(self, exc: BaseException) -> JsonRpcError:
        """Map an exception to a JSON-RPC error.

        Mapping the result again returns the same object.

        Args:
            exc: Any exception raised by a handler.

        Returns:
            The JSON-RPC error to send to the caller.
        """
        for link in _chain(exc):
            if isinstance(link, JsonRpcError):
                return link

        for link in _chain(exc):
            code = self._lookup_type(type(link))
            if code is not None:
                if code == INTERNAL_ERROR:
                    return JsonRpcError(INTERNAL_ERROR, data=GENERIC_INTERNAL_DETAIL)
                return JsonRpcError(code, data=self._detail(link))

        if self.pattern_fallback:
            text = str(exc).lower()
            for code, patterns in DEFAULT_PATTERNS:
                if any(p in text for p in patterns):
                    return JsonRpcError(code, data=self._detail(exc))

        logger.debug("Unclassified handler error: %s", type(exc).__name__)
        return JsonRpcError(INTERNAL_ERROR, data=GENERIC_INTERNAL_DETAIL)

    def _lookup_type(self, exc_type: type[BaseException]) -> int | None:
        # Walk the MRO so the most specific registered class wins
        for klass in exc_type.__mro__:
            if klass in self._type_codes:
                return self._type_codes[klass]
        return None

    @staticmethod
    def _detail(exc: BaseException) -> str:
        return redact_secrets(getattr(exc, "message", None) or str(exc))


_default_mapper = ErrorMapper()


def map_error(exc: BaseException) -> JsonRpcError:
    """Map an exception with the default mapper."""
    return _default_mapper.map_error(exc)
