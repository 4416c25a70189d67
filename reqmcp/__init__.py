"""requirements-mcp: MCP STDIO to HTTP bridge for the requirements backend."""

__version__ = "0.1.0"
