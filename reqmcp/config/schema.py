"""Pydantic models for requirements-mcp configuration validation."""

from __future__ import annotations

import logging
import re
from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_REQUEST_TIMEOUT = "30s"
DEFAULT_LOG_LEVEL = "info"

LogLevel = Literal["debug", "info", "warn", "error"]

LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse a duration string such as ``"30s"``, ``"1m30s"`` or ``"1.5h"``.

    A bare ``"0"`` is accepted. Negative durations are rejected.

    Args:
        value: Duration text.

    Returns:
        Duration in seconds.

    Raises:
        ValueError: If the text is not a valid duration.
    """
    text = value.strip()
    if text == "0":
        return 0.0
    if not text:
        raise ValueError("invalid duration: empty string")

    total = 0.0
    pos = 0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


def validate_backend_url(url: str) -> str:
    """Check that a backend URL has an http(s) scheme and a host.

    Raises:
        ValueError: If the URL is empty or unusable.
    """
    if not url or not url.strip():
        raise ValueError("backend_api_url is required")
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https"):
        raise ValueError("backend_api_url must use http or https")
    if not parsed.hostname:
        raise ValueError("backend_api_url must include a host")
    return url.strip()


class BridgeConfig(BaseModel):
    """Bridge configuration, as stored in ``~/.requirements-mcp/config.json``.

    The same model validates the document the initializer generates and the
    document the server loads, so both agree on what a valid file is.
    """

    model_config = ConfigDict(extra="ignore")

    backend_api_url: str
    """Base URL of the backend API server."""

    pat_token: str = Field(repr=False)
    """Personal access token sent as the bearer credential."""

    request_timeout: str = DEFAULT_REQUEST_TIMEOUT
    """Per-request timeout as a duration string."""

    log_level: LogLevel = DEFAULT_LOG_LEVEL
    """Logging verbosity."""

    @field_validator("backend_api_url")
    @classmethod
    def check_backend_url(cls, v: str) -> str:
        return validate_backend_url(v)

    @field_validator("pat_token")
    @classmethod
    def check_pat_token(cls, v: str) -> str:
        if not v:
            raise ValueError("pat_token is required")
        return v

    @field_validator("request_timeout", mode="before")
    @classmethod
    def check_request_timeout(cls, v: object) -> object:
        """Empty or missing timeout falls back to the default."""
        if v is None or v == "":
            return DEFAULT_REQUEST_TIMEOUT
        if isinstance(v, str):
            parse_duration(v)
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        if v is None or v == "":
            return DEFAULT_LOG_LEVEL
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def timeout_seconds(self) -> float:
        """Request timeout in seconds."""
        return parse_duration(self.request_timeout)

    @property
    def logging_level(self) -> int:
        """``logging`` level for log_level."""
        return LOG_LEVELS[self.log_level]
