"""Argument parsing for the requirements-mcp CLI."""

import argparse
import sys
from pathlib import Path
from typing import NoReturn


class ArgumentParser(argparse.ArgumentParser):
    """Parser whose usage errors exit with status 1, like other fatal errors."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="requirements-mcp",
        description=(
            "MCP bridge for the product requirements backend. Reads JSON-RPC "
            "messages from stdin, forwards them to the backend, and writes "
            "responses to stdout."
        ),
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to configuration file (default: ~/.requirements-mcp/config.json)",
    )
    parser.add_argument(
        "-i", "--init",
        action="store_true",
        help="Run interactive initialization to create the configuration file",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        metavar="PATH",
        help="Also write logs to this file (rotated at 5 MB)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    return build_parser().parse_args(argv)
