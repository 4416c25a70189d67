"""HTTP calls made by the interactive initializer.

Each method performs exactly one request. Retries, backoff and timeouts
per step belong to the controller.
"""

from __future__ import annotations

import logging
import socket
import ssl
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from reqmcp.core.errors import BridgeError
from reqmcp.initializer.security import (
    create_secure_ssl_context,
    sanitize_error_message,
    validate_https_certificate,
)
from reqmcp.rpc.errors import JsonRpcError
from reqmcp.rpc.protocol import parse_response, serialize_request
from reqmcp.rpc.types import JSONRPC_VERSION, Request

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

READY_ENDPOINT = "/ready"
LOGIN_ENDPOINT = "/auth/login"
PATS_ENDPOINT = "/api/v1/pats"
MCP_ENDPOINT = "/api/v1/mcp"

MCP_PROTOCOL_VERSION = "2025-06-18"
CLIENT_NAME = "mcp-init-client"
CLIENT_VERSION = "1.0.0"

PAT_LIFETIME = timedelta(days=365)
PAT_SCOPES = ["full_access"]


class NetworkClientError(BridgeError):
    """A single initializer HTTP call failed.

    Attributes:
        status_code: HTTP status when the server answered, else None.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(sanitize_error_message(message))
        self.status_code = status_code


@dataclass
class User:
    id: str = ""
    username: str = ""
    email: str = ""
    role: str = ""


@dataclass
class AuthResponse:
    """Body of a successful ``/auth/login``."""

    token: str
    expires_at: datetime | None = None
    user: User = field(default_factory=User)


@dataclass
class PATResponse:
    """The minted personal access token."""

    token: str
    name: str
    expires_at: datetime | None = None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp, tolerating a trailing ``Z``."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def pat_name(hostname: str | None = None, now: datetime | None = None) -> str:
    """Name a PAT after the machine and the day it was minted."""
    if hostname is None:
        try:
            hostname = socket.gethostname() or "unknown"
        except OSError:
            hostname = "unknown"
    now = now or datetime.now()
    return f"MCP Server - {hostname} - {now:%Y-%m-%d}"


class NetworkClient:
    """Talks to the backend during initialization.

    Args:
        base_url: Backend root URL, e.g. ``https://api.example.com``.
        timeout: Client-level timeout in seconds.
        verify: TLS verification setting passed to httpx. Defaults to a
            hardened context (TLS 1.2+, certificate and hostname checks).
        transport: Optional httpx transport, for tests.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        verify: ssl.SSLContext | bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.verify: ssl.SSLContext | bool = (
            verify if verify is not None else create_secure_ssl_context()
        )
        self._transport = transport
        self._client: Any = None  # httpx.AsyncClient
        self._request_id = 0

    def ensure_secure(self) -> None:
        """Raise InsecureTransportError if certificate checks are off."""
        validate_https_certificate(self.verify)

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                verify=self.verify,
                transport=self._transport,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> NetworkClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        **kwargs: Any,
    ) -> httpx.Response:
        if self._client is None:
            await self.connect()
        try:
            return await self._client.request(method, self.base_url + path, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkClientError(f"{action}: request timed out") from e
        except httpx.HTTPError as e:
            raise NetworkClientError(f"{action}: {e or type(e).__name__}") from e

    @staticmethod
    def _json(response: httpx.Response, action: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise NetworkClientError(f"failed to parse {action} response: {e}") from e
        if not isinstance(data, dict):
            raise NetworkClientError(f"failed to parse {action} response: expected an object")
        return data

    async def test_connectivity(self) -> None:
        """GET ``/ready`` and require 200.

        Raises:
            NetworkClientError: On transport failure or any other status.
        """
        response = await self._request("GET", READY_ENDPOINT, "failed to connect to server")
        if response.status_code != 200:
            raise NetworkClientError(
                f"server not ready, status: {response.status_code}", response.status_code
            )

    async def authenticate(self, username: str, password: str) -> AuthResponse:
        """Exchange username and password for a JWT."""
        response = await self._request(
            "POST",
            LOGIN_ENDPOINT,
            "failed to make login request",
            json={"username": username, "password": password},
        )
        if response.status_code != 200:
            raise NetworkClientError(
                f"authentication failed with status: {response.status_code}",
                response.status_code,
            )

        data = self._json(response, "authentication")
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise NetworkClientError("failed to parse authentication response: missing token")
        user = data.get("user") if isinstance(data.get("user"), dict) else {}
        return AuthResponse(
            token=token,
            expires_at=parse_timestamp(data.get("expires_at")),
            user=User(
                id=str(user.get("id", "")),
                username=str(user.get("username", "")),
                email=str(user.get("email", "")),
                role=str(user.get("role", "")),
            ),
        )

    async def create_pat(self, jwt: str) -> PATResponse:
        """Mint a one-year ``full_access`` PAT using a JWT."""
        expires_at = datetime.now(timezone.utc) + PAT_LIFETIME
        body = {
            "name": pat_name(),
            "expires_at": expires_at.isoformat().replace("+00:00", "Z"),
            "scopes": PAT_SCOPES,
        }
        response = await self._request(
            "POST",
            PATS_ENDPOINT,
            "failed to make PAT request",
            json=body,
            headers={"Authorization": f"Bearer {jwt}"},
        )
        if response.status_code != 201:
            raise NetworkClientError(
                f"PAT creation failed with status: {response.status_code}",
                response.status_code,
            )

        data = self._json(response, "PAT creation")
        token = data.get("token")
        pat = data.get("pat") if isinstance(data.get("pat"), dict) else {}
        if not isinstance(token, str) or not token:
            raise NetworkClientError("failed to parse PAT creation response: missing token")
        return PATResponse(
            token=token,
            name=str(pat.get("name", "")),
            expires_at=parse_timestamp(pat.get("expires_at")) or expires_at,
        )

    async def validate_pat(self, pat: str) -> None:
        """Send an MCP ``initialize`` with the PAT and require a result.

        Raises:
            NetworkClientError: On 401, any non-200 status, a JSON-RPC
                error, or a response without a result.
        """
        self._request_id += 1
        request = Request(
            jsonrpc=JSONRPC_VERSION,
            method="initialize",
            params={
                "protocolVersion": MCP_PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": CLIENT_NAME, "version": CLIENT_VERSION},
            },
            id=self._request_id,
        )
        response = await self._request(
            "POST",
            MCP_ENDPOINT,
            "failed to make MCP request",
            content=serialize_request(request),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {pat}",
            },
        )
        if response.status_code == 401:
            raise NetworkClientError("PAT validation failed: invalid or expired token", 401)
        if response.status_code != 200:
            raise NetworkClientError(
                f"PAT validation failed with status: {response.status_code}",
                response.status_code,
            )

        try:
            rpc_response = parse_response(response.content)
        except JsonRpcError as e:
            raise NetworkClientError(f"failed to parse MCP response: {e.data or e.message}") from e

        if rpc_response.error is not None:
            raise NetworkClientError(
                f"MCP error: {rpc_response.error.get('message')} "
                f"(code: {rpc_response.error.get('code')})"
            )
        if rpc_response.result is None:
            raise NetworkClientError("invalid MCP response: missing result")
        logger.debug("PAT validated against %s", self.base_url + MCP_ENDPOINT)
