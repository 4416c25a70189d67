"""Secrets redaction for requirements-mcp.

This module detects and redacts credentials from text before it is shown
to a user, written to stderr, or placed into a JSON-RPC ``error.data``
field.

Patterns include:
- Bearer tokens in Authorization headers
- JWTs
- Personal access tokens in assignment or JSON contexts
- Passwords (in assignment/URL contexts)
"""

import logging
import re

# Redaction placeholder - clearly marks redacted content
REDACTED = "[REDACTED]"

# Secret patterns: name -> (regex_pattern, replacement)
# Patterns use capture groups to preserve context while redacting secrets
SECRET_PATTERNS: dict[str, tuple[re.Pattern[str], str]] = {
    # Bearer tokens in Authorization headers
    "bearer_token": (
        re.compile(
            r"((?:Authorization:\s*)?Bearer\s+)([A-Za-z0-9\-_\.=+/]+)",
            re.IGNORECASE,
        ),
        f"\\1{REDACTED}",
    ),
    # JWT tokens (three base64url segments separated by dots)
    "jwt_token": (
        re.compile(
            r"\b(eyJ[A-Za-z0-9\-_]+\.eyJ[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+)\b",
        ),
        REDACTED,
    ),
    # PAT / token assignments: pat_token = "...", "token": "...", etc.
    "token_assignment": (
        re.compile(
            r'(["\']?(?:pat_token|pat|token|access_token|jwt)["\']?[\s]*[=:][\s]*["\']?)'
            r'([^\s"\',;\}]+)',
            re.IGNORECASE,
        ),
        f"\\1{REDACTED}",
    ),
    # Password assignments: password = "...", "password": "...", etc.
    "password_assignment": (
        re.compile(
            r'(["\']?(?:password|passwd|pwd)["\']?[\s]*[=:][\s]*["\']?)'
            r'([^\s"\',;\}]+)',
            re.IGNORECASE,
        ),
        f"\\1{REDACTED}",
    ),
    # Passwords in URLs: user:password@host
    "password_in_url": (
        re.compile(
            r"(://[^:/\s]+:)([^@\s]+)(@)",
        ),
        f"\\1{REDACTED}\\3",
    ),
}


def redact_secrets(text: str) -> str:
    """Redact secrets from a text string.

    Applies all patterns in SECRET_PATTERNS to find and replace
    sensitive information with [REDACTED].

    Args:
        text: The text to scan and redact.

    Returns:
        The text with secrets replaced by [REDACTED].

    Example:
        >>> redact_secrets("Authorization: Bearer abc.def")
        "Authorization: Bearer [REDACTED]"
    """
    result = text

    for _name, (pattern, replacement) in SECRET_PATTERNS.items():
        result = pattern.sub(replacement, result)

    return result


class RedactingFilter(logging.Filter):
    """Logging filter that redacts secrets from every record.

    The record's message is formatted, redacted, and stored back with its
    args cleared, so handlers downstream never see the raw values.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        record.msg = redact_secrets(message)
        record.args = None
        return True
