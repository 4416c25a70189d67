"""Entry point for the requirements-mcp CLI."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from reqmcp.cli.arg_parser import parse_args
from reqmcp.config.loader import default_config_path
from reqmcp.core.errors import BridgeError, ConfigError
from reqmcp.display.console import get_console
from reqmcp.initializer.controller import InitController
from reqmcp.initializer.errors import InitError
from reqmcp.mcp.bootstrap import configure_logging, run_bridge

logger = logging.getLogger(__name__)


def _describe_config_path(path: Path | None) -> str:
    if path is not None:
        return str(path)
    try:
        return str(default_config_path())
    except ConfigError:
        return "default location"


def run_init(config_path: Path | None, log_file: Path | None = None) -> int:
    """Run interactive initialization. Returns the process exit code."""
    # Terminal output belongs to the prompts; logs go to stderr only on error
    configure_logging(logging.INFO, log_file, console_level=logging.ERROR)
    try:
        asyncio.run(InitController().run(config_path))
    except InitError as e:
        e.display(get_console())
        logger.error("Initialization failed: %s", e)
        return 1
    except KeyboardInterrupt:
        get_console().print("\n❌ Initialization cancelled by user.", markup=False)
        return 1
    return 0


def run_server(config_path: Path | None, log_file: Path | None = None) -> int:
    """Run the bridge until stdin closes or a signal arrives."""
    try:
        asyncio.run(run_bridge(config_path, log_file))
    except ConfigError as e:
        where = _describe_config_path(config_path)
        print(f"Failed to load configuration from {where}: {e.message}", file=sys.stderr)
        print("Run 'requirements-mcp --init' to create a configuration file.", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    except BridgeError as e:
        print(f"MCP Server Error: {e.message}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the requirements-mcp CLI."""
    load_dotenv()
    args = parse_args(argv)
    if args.init:
        return run_init(args.config, args.log_file)
    return run_server(args.config, args.log_file)


if __name__ == "__main__":
    raise SystemExit(main())
