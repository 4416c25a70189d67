"""Generation of the bridge configuration document."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass

from pydantic import ValidationError

from reqmcp.config.loader import format_validation_error
from reqmcp.config.schema import DEFAULT_LOG_LEVEL, DEFAULT_REQUEST_TIMEOUT, BridgeConfig
from reqmcp.core.errors import ConfigError


@dataclass
class GeneratedConfig:
    """The four keys written to ``config.json``. Credentials never appear here."""

    backend_api_url: str
    pat_token: str
    request_timeout: str = DEFAULT_REQUEST_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL

    def __repr__(self) -> str:
        return (
            f"GeneratedConfig(backend_api_url={self.backend_api_url!r}, "
            f"request_timeout={self.request_timeout!r}, log_level={self.log_level!r})"
        )


class ConfigGenerator:
    """Builds, serializes and checks the configuration the initializer writes."""

    def generate(self, api_url: str, pat_token: str) -> GeneratedConfig:
        return GeneratedConfig(backend_api_url=api_url, pat_token=pat_token)

    def to_json(self, config: GeneratedConfig) -> str:
        """Pretty-print with two-space indent and a trailing newline."""
        return json.dumps(asdict(config), indent=2) + "\n"

    def validate(self, config: GeneratedConfig) -> BridgeConfig:
        """Validate with the same model the server loads.

        Raises:
            ConfigError: If any field is invalid.
        """
        try:
            return BridgeConfig.model_validate(asdict(config))
        except ValidationError as e:
            raise ConfigError(f"Invalid generated configuration: {format_validation_error(e)}") from e

    def test_compatibility(self, config: GeneratedConfig) -> BridgeConfig:
        """Round-trip the JSON text through the server's config model.

        Raises:
            ConfigError: If the serialized document does not load.
        """
        try:
            data = json.loads(self.to_json(config))
        except ValueError as e:
            raise ConfigError(f"failed to serialize config to JSON: {e}") from e
        try:
            return BridgeConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(
                f"generated config fails existing validation: {format_validation_error(e)}"
            ) from e
