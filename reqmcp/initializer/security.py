"""Secure handling of credentials and tokens during initialization.

Secrets captured by the initializer live in ``bytearray`` buffers that are
zeroed when the init run ends. This is best-effort: the interpreter may
already have copied the original ``str`` elsewhere in memory.
"""

from __future__ import annotations

import logging
import re
import ssl
from collections.abc import Callable
from typing import Any

from reqmcp.core.errors import BridgeError
from reqmcp.core.redaction import redact_secrets

logger = logging.getLogger(__name__)

SENSITIVE_KEYWORDS: tuple[str, ...] = (
    "password",
    "token",
    "pat",
    "jwt",
    "auth",
    "credential",
    "secret",
    "key",
    "bearer",
    "authorization",
    "login",
    "passwd",
    "pwd",
)

MASK = "***MASKED***"

# Longest first so "authorization" wins over "auth" at the same position
_KEYWORD_RE = re.compile(
    "|".join(re.escape(k) for k in sorted(SENSITIVE_KEYWORDS, key=len, reverse=True)),
    re.IGNORECASE,
)


class InsecureTransportError(BridgeError):
    """Raised when an HTTP client would skip certificate validation."""


class SecureString:
    """A secret held in a mutable buffer that can be wiped.

    ``str()`` and ``repr()`` never show the value; call :meth:`value`.
    """

    def __init__(self, value: str | bytes) -> None:
        raw = value.encode("utf-8") if isinstance(value, str) else value
        self._data: bytearray | None = bytearray(raw)

    def value(self) -> str:
        """Return the secret, or "" once cleared."""
        if self._data is None:
            return ""
        return self._data.decode("utf-8")

    def clear(self) -> None:
        """Overwrite the buffer with zeros and release it."""
        if self._data is not None:
            for i in range(len(self._data)):
                self._data[i] = 0
            self._data = None

    @property
    def empty(self) -> bool:
        return not self._data

    def __repr__(self) -> str:
        return "SecureString(<cleared>)" if self.empty else "SecureString(***)"

    __str__ = __repr__


class SecureCredentials:
    """Username and password pair in secure strings."""

    def __init__(self, username: str, password: str) -> None:
        self.username: SecureString | None = SecureString(username)
        self.password: SecureString | None = SecureString(password)

    def reveal(self) -> tuple[str, str]:
        """Return (username, password); empty strings once cleared."""
        return (
            self.username.value() if self.username is not None else "",
            self.password.value() if self.password is not None else "",
        )

    def clear(self) -> None:
        for secret in (self.username, self.password):
            if secret is not None:
                secret.clear()
        self.username = None
        self.password = None

    @property
    def empty(self) -> bool:
        return self.username is None and self.password is None


class SecureToken:
    """A bearer token (JWT or PAT) in a secure string."""

    def __init__(self, token: str) -> None:
        self.token: SecureString | None = SecureString(token)

    def value(self) -> str:
        return self.token.value() if self.token is not None else ""

    def clear(self) -> None:
        if self.token is not None:
            self.token.clear()
            self.token = None

    @property
    def empty(self) -> bool:
        return self.token is None


class SecureCleanup:
    """Append-only list of wipers, run once when the init run ends."""

    def __init__(self) -> None:
        self._funcs: list[Callable[[], None]] = []
        self._tracked: list[SecureString | SecureCredentials | SecureToken] = []

    def add(self, fn: Callable[[], None]) -> None:
        self._funcs.append(fn)

    def add_secret(self, secret: SecureString | SecureCredentials | SecureToken) -> None:
        """Register any secure container for wiping."""
        self._tracked.append(secret)
        self.add(secret.clear)

    @property
    def tracked(self) -> list[SecureString | SecureCredentials | SecureToken]:
        """Containers registered so far, for post-run checks."""
        return list(self._tracked)

    def cleanup(self) -> None:
        """Run every registered wiper. A second call does nothing."""
        funcs, self._funcs = self._funcs, []
        for fn in funcs:
            try:
                fn()
            except Exception as e:
                # A failing wiper must not stop the others
                logger.debug("Secure cleanup function failed: %s", e)


def mask_sensitive(text: str) -> str:
    """Mark every sensitive keyword in text as ``<keyword>=***MASKED***``.

    Matching is case-insensitive and the original casing is kept.
    """
    return _KEYWORD_RE.sub(lambda m: f"{m.group(0)}={MASK}", text)


def sanitize_error_message(error: BaseException | str | None) -> str:
    """Return error text safe to show to the user.

    Secret values (bearer tokens, JWTs, passwords and tokens in assignment
    or URL form) are replaced; the surrounding message is kept readable.
    """
    if error is None:
        return ""
    return redact_secrets(str(error))


class SecureLogger(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Logger wrapper that masks sensitive keywords before emission.

    Masking applies to the final text, so both ``info("...")`` and
    ``info("%s", value)`` are covered, as is the error attached with
    :meth:`with_error`.
    """

    def __init__(self, logger: logging.Logger, error: str | None = None) -> None:
        super().__init__(logger, {})
        self._error = error

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        text = str(msg) % args if args else str(msg)
        if self._error is not None:
            text = f"{text}: {self._error}"
        kwargs.setdefault("stacklevel", 3)
        self.logger.log(level, "%s", mask_sensitive(text), **kwargs)

    def with_error(self, error: BaseException | str | None) -> SecureLogger:
        """Return a logger that appends error to every message, masked."""
        if error is None:
            return self
        return SecureLogger(self.logger, str(error))


def create_secure_ssl_context() -> ssl.SSLContext:
    """Return a client SSL context requiring TLS 1.2+ and valid certificates."""
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.check_hostname = True
    context.verify_mode = ssl.CERT_REQUIRED
    return context


def validate_https_certificate(verify: ssl.SSLContext | bool | str | None) -> None:
    """Fail closed when a client's TLS settings skip certificate validation.

    Args:
        verify: The ``verify`` setting of an HTTP client: an SSL context,
            a bool, or a CA bundle path. None means library defaults.

    Raises:
        InsecureTransportError: If validation is disabled.
    """
    disabled = verify is False or (
        isinstance(verify, ssl.SSLContext)
        and (verify.verify_mode == ssl.CERT_NONE or not verify.check_hostname)
    )
    if disabled:
        raise InsecureTransportError(
            "HTTPS certificate validation is disabled - this is a security risk"
        )
