"""Configuration schema and loading."""

from reqmcp.config.loader import default_config_path, load_config
from reqmcp.config.schema import BridgeConfig, parse_duration

__all__ = [
    "BridgeConfig",
    "default_config_path",
    "load_config",
    "parse_duration",
]
