"""End-to-end initialization into $HOME against a mock backend."""

import io
import json
import stat
from pathlib import Path

import pytest
from rich.console import Console

from reqmcp.config.loader import load_config
from reqmcp.initializer.controller import InitController
from reqmcp.initializer.input import InputHandler


@pytest.mark.asyncio
@pytest.mark.unix_only
async def test_init_creates_private_config(fake_backend, monkeypatch, tmp_path: Path) -> None:
    """The default config is written 0600 and loads back as server config."""
    monkeypatch.setenv("HOME", str(tmp_path))
    console = Console(file=io.StringIO(), width=200, color_system=None)
    controller = InitController(
        input_handler=InputHandler(console, stream=io.StringIO("https://api.example.com\nana\npw\n")),
        client_factory=fake_backend.client_factory(),
        console=console,
        backoff_unit=0,
    )

    written = await controller.run()

    expected = tmp_path / ".requirements-mcp" / "config.json"
    assert written == expected
    assert stat.S_IMODE(expected.stat().st_mode) == 0o600
    assert stat.S_IMODE(expected.parent.stat().st_mode) == 0o755
    assert json.loads(expected.read_text()) == {
        "backend_api_url": "https://api.example.com",
        "pat_token": "pat_generated_value",
        "request_timeout": "30s",
        "log_level": "info",
    }
    assert all(secret.empty for secret in controller.cleanup.tracked)

    config = load_config()
    assert config.pat_token == "pat_generated_value"
    assert config.timeout_seconds == 30.0
