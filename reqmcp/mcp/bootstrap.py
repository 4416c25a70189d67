"""Bridge startup: logging configuration and server construction.

stdout carries only JSON-RPC payloads, so every log handler configured
here writes to stderr or to a file.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from reqmcp.config.loader import load_config
from reqmcp.config.schema import BridgeConfig
from reqmcp.core.redaction import RedactingFilter
from reqmcp.core.secure_io import ensure_dir
from reqmcp.mcp.forwarder import HttpForwarder
from reqmcp.mcp.server import BridgeServer

logger = logging.getLogger(__name__)

ROOT_LOGGER_NAME = "reqmcp"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: int = logging.INFO,
    log_file: Path | None = None,
    console_level: int | None = None,
) -> None:
    """Configure the ``reqmcp`` namespace logger.

    Args:
        level: Threshold for the logger and the file handler.
        log_file: Optional rotating log file, in addition to stderr.
        console_level: Threshold for the stderr handler. Defaults to level.
    """
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level if console_level is not None else level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    console_handler.addFilter(RedactingFilter())

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)

    # Remove any existing handlers to avoid duplicates on reconfigure
    root.handlers.clear()
    root.addHandler(console_handler)

    if log_file is not None:
        ensure_dir(log_file.parent)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.addFilter(RedactingFilter())
        root.addHandler(file_handler)

    # Don't propagate to root logger
    root.propagate = False


def build_server(config: BridgeConfig, **server_kwargs: object) -> BridgeServer:
    """Create a BridgeServer wired to a forwarder for config."""
    timeout = config.timeout_seconds or None
    forwarder = HttpForwarder(config.backend_api_url, config.pat_token, timeout=timeout)
    return BridgeServer(forwarder, **server_kwargs)  # type: ignore[arg-type]


async def run_bridge(config_path: Path | None = None, log_file: Path | None = None) -> None:
    """Load configuration and run the bridge until shutdown.

    Raises:
        ConfigError: If the configuration cannot be loaded.
    """
    config = load_config(config_path)
    configure_logging(config.logging_level, log_file)

    server = build_server(config)
    async with server.forwarder:
        await server.run()
