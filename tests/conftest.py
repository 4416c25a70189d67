"""Shared pytest fixtures and configuration for pytest."""

import logging
import sys

import httpx
import pytest

from reqmcp.initializer.client import NetworkClient


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for platform-specific tests."""
    config.addinivalue_line("markers", "unix_only: mark test to run only on Unix")


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Auto-skip tests based on platform markers."""
    skip_unix = pytest.mark.skip(reason="Unix-only test")

    for item in items:
        if "unix_only" in item.keywords and sys.platform == "win32":
            item.add_marker(skip_unix)


@pytest.fixture(autouse=True)
def reset_reqmcp_logger():
    """Undo configure_logging() so caplog sees records in later tests."""
    yield
    logger = logging.getLogger("reqmcp")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


class FakeBackend:
    """Scriptable stand-in for the backend, served through httpx.MockTransport.

    Each endpoint answers with the next queued response, or a default
    success when its queue is empty. Every request is recorded.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.queued: dict[str, list[httpx.Response]] = {}

    def queue(self, path: str, *responses: httpx.Response) -> None:
        self.queued.setdefault(path, []).extend(responses)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.queued.get(request.url.path)
        if queue:
            return queue.pop(0)
        return self.default(request)

    def default(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/ready":
            return httpx.Response(200, json={"status": "ready"})
        if path == "/auth/login":
            return httpx.Response(200, json={
                "token": "jwt-token-value",
                "expires_at": "2026-10-20T00:00:00Z",
                "user": {"id": "u1", "username": "ana", "email": "ana@example.com", "role": "admin"},
            })
        if path == "/api/v1/pats":
            return httpx.Response(201, json={
                "token": "pat_generated_value",
                "pat": {"name": "MCP Server - devbox - 2026-10-19", "expires_at": "2027-10-19T00:00:00Z"},
            })
        if path == "/api/v1/mcp":
            return httpx.Response(200, json={
                "jsonrpc": "2.0",
                "id": 1,
                "result": {"protocolVersion": "2025-06-18", "serverInfo": {"name": "backend"}},
            })
        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client_factory(self, **kwargs):
        """A NetworkClient factory bound to this backend."""

        def factory(url: str) -> NetworkClient:
            return NetworkClient(url, transport=self.transport(), **kwargs)

        return factory


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()
