"""HTTP forwarding of raw JSON-RPC frames to the backend MCP endpoint.

The forwarder does not look inside the payload. Bytes read from stdin are
POSTed unchanged and the response body is returned unchanged.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from reqmcp.core.errors import BackendError
from reqmcp.core.redaction import redact_secrets

logger = logging.getLogger(__name__)

MCP_ENDPOINT = "/api/v1/mcp"
DEFAULT_TIMEOUT = 30.0

# Cap on how much of an error body is logged
_ERROR_BODY_LOG_LIMIT = 2048


class HttpForwarder:
    """POSTs JSON-RPC frames to ``{backend}/api/v1/mcp`` with a PAT.

    Attributes:
        url: Full endpoint URL.
        timeout: Per-request timeout in seconds. None disables the timeout.

    Example:
        async with HttpForwarder("https://api.example.com", pat) as fwd:
            body = await fwd.forward(b'{"jsonrpc":"2.0","id":1,"method":"ping"}')
    """

    def __init__(
        self,
        backend_url: str,
        pat_token: str,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        self.url = backend_url.rstrip("/") + MCP_ENDPOINT
        self.timeout = timeout
        self._pat_token = pat_token
        self._client: Any = None  # httpx.AsyncClient

    async def connect(self) -> None:
        """Create the HTTP client (connection pool)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=False,
            )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpForwarder:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._pat_token}",
        }

    async def forward(self, frame: bytes) -> bytes:
        """Send one frame and return the backend's response body.

        Args:
            frame: Raw JSON-RPC payload, without trailing newline.

        Returns:
            Response body bytes, possibly empty.

        Raises:
            BackendError: On transport failure or any HTTP status outside 2xx.
        """
        if self._client is None:
            await self.connect()

        logger.debug("Forwarding %d byte(s) to %s", len(frame), self.url)
        try:
            response = await self._client.post(
                self.url, content=frame, headers=self._headers()
            )
        except httpx.TimeoutException as e:
            raise BackendError(
                f"HTTP request failed: request timed out after {self.timeout}s"
            ) from e
        except httpx.HTTPError as e:
            detail = str(e) or type(e).__name__
            raise BackendError(f"HTTP request failed: {redact_secrets(detail)}") from e

        body = response.content
        status = response.status_code

        if not 200 <= status < 300:
            logger.error(
                "Backend API returned error: status=%d body=%s",
                status,
                redact_secrets(body[:_ERROR_BODY_LOG_LIMIT].decode("utf-8", errors="replace")),
            )
            if status == 401:
                raise BackendError("authentication failed: invalid PAT token", status)
            status_text = f"{status} {response.reason_phrase}".strip()
            raise BackendError(f"backend API error: {status_text}", status)

        logger.debug("Received %d byte(s) from backend (status=%d)", len(body), status)
        return body
