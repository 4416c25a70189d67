"""Configuration loading for the bridge server."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from reqmcp.config.schema import BridgeConfig
from reqmcp.core.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".requirements-mcp"
CONFIG_FILE_NAME = "config.json"


def default_config_path() -> Path:
    """Return ``$HOME/.requirements-mcp/config.json``.

    Raises:
        ConfigError: If the home directory cannot be determined.
    """
    home = os.environ.get("HOME")
    try:
        base = Path(home) if home else Path.home()
    except RuntimeError as e:
        raise ConfigError(f"Failed to get user home directory: {e}") from e
    return base / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def read_config_document(path: Path) -> dict[str, Any]:
    """Read a config file and decode it into a JSON object.

    A UTF-8 byte order mark is tolerated. An empty file decodes to an empty
    object, which then fails validation for the missing required fields.

    Raises:
        ConfigError: If the file is missing, unreadable, not JSON, or not a
            JSON object.
    """
    try:
        text = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as e:
        raise ConfigError(f"config file not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e

    if not text.strip():
        return {}

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in {path}: {e}") from e

    if not isinstance(document, dict):
        raise ConfigError(
            f"expected a JSON object in {path}, got {type(document).__name__}"
        )
    return document


def format_validation_error(e: ValidationError) -> str:
    """Flatten a pydantic error into ``field: message`` pairs."""
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "config"
        msg = err.get("msg", "invalid value").removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}")
    return "; ".join(parts)


def load_config(path: Path | None = None) -> BridgeConfig:
    """Load and validate the bridge configuration.

    Args:
        path: Config file path. Defaults to default_config_path().

    Returns:
        Validated BridgeConfig.

    Raises:
        ConfigError: If the file is missing, unreadable, not JSON, or fails
            validation.
    """
    config_path = path or default_config_path()
    data = read_config_document(config_path)

    try:
        config = BridgeConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"invalid configuration in {config_path}: {format_validation_error(e)}"
        ) from e

    logger.debug("Loaded config from %s (backend=%s)", config_path, config.backend_api_url)
    return config
