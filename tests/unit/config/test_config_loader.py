"""Tests for config file loading."""

import json
from pathlib import Path

import pytest

from reqmcp.config.loader import default_config_path, load_config, read_config_document
from reqmcp.core.errors import ConfigError


def _write(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestDefaultConfigPath:
    """Tests for default_config_path."""

    def test_uses_home(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))

        assert default_config_path() == tmp_path / ".requirements-mcp" / "config.json"


class TestReadConfigDocument:
    """Tests for read_config_document."""

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            read_config_document(tmp_path / "nope.json")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("  \n")

        assert read_config_document(path) == {}

    def test_bom_tolerated(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_bytes(b'\xef\xbb\xbf{"a": 1}')

        assert read_config_document(path) == {"a": 1}

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text('{"a": ')

        with pytest.raises(ConfigError, match="invalid JSON"):
            read_config_document(path)

    def test_array_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="got list"):
            read_config_document(_write(tmp_path / "config.json", [1]))


class TestLoadConfig:
    """Tests for load_config."""

    def test_valid(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "config.json", {
            "backend_api_url": "https://api.example.com",
            "pat_token": "pat_abc",
            "request_timeout": "45s",
            "log_level": "debug",
        })

        config = load_config(path)

        assert config.backend_api_url == "https://api.example.com"
        assert config.timeout_seconds == 45.0

    def test_default_path(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        (tmp_path / ".requirements-mcp").mkdir()
        _write(tmp_path / ".requirements-mcp" / "config.json", {
            "backend_api_url": "http://localhost:8080", "pat_token": "pat_abc",
        })

        assert load_config().pat_token == "pat_abc"

    def test_validation_error_names_field(self, tmp_path: Path) -> None:
        """Validation failures are reported as field: message pairs."""
        path = _write(tmp_path / "config.json", {"backend_api_url": "http://h"})

        with pytest.raises(ConfigError) as exc_info:
            load_config(path)

        assert "pat_token" in exc_info.value.message
        assert str(path) in exc_info.value.message
