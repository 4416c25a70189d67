"""Command-line interface for requirements-mcp."""
