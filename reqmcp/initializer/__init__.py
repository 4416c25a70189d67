"""Interactive initialization: provisions ``~/.requirements-mcp/config.json``."""

from reqmcp.initializer.controller import RETRY_POLICY, InitController, RetryPolicy
from reqmcp.initializer.errors import ErrorCategory, InitError

__all__ = ["RETRY_POLICY", "ErrorCategory", "InitController", "InitError", "RetryPolicy"]
