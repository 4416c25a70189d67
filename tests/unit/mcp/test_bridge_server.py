"""Tests for the STDIO to HTTP bridge server."""

import asyncio
import io

import httpx
import pytest

from reqmcp.mcp.forwarder import HttpForwarder
from reqmcp.mcp.server import BridgeServer, BridgeState
from reqmcp.mcp.stdio import StdoutWriter


def make_server(handler, *lines: bytes, eof: bool = True, **kwargs):
    forwarder = HttpForwarder("https://x/y", "T")
    forwarder._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    stdin = asyncio.StreamReader()
    for line in lines:
        stdin.feed_data(line)
    if eof:
        stdin.feed_eof()
    stdout = io.BytesIO()
    stderr = io.StringIO()
    server = BridgeServer(
        forwarder, stdin=stdin, stdout=StdoutWriter(stdout), stderr=stderr, **kwargs
    )
    return server, stdin, stdout, stderr


class TestForwarding:
    """Tests for the line-to-request pump."""

    @pytest.mark.asyncio
    async def test_ping_round_trip(self):
        """A request line is POSTed and the reply written as one line."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=b'{"jsonrpc":"2.0","id":7,"result":"pong"}')

        server, _, stdout, stderr = make_server(handler, b'{"jsonrpc":"2.0","id":7,"method":"ping"}\n')

        await server.run()

        assert stdout.getvalue() == b'{"jsonrpc":"2.0","id":7,"result":"pong"}\n'
        assert str(requests[0].url) == "https://x/y/api/v1/mcp"
        assert requests[0].headers["authorization"] == "Bearer T"
        assert stderr.getvalue() == ""
        assert server.state is BridgeState.STOPPED

    @pytest.mark.asyncio
    async def test_crlf_and_blank_lines(self):
        """Blank lines are skipped and CRLF endings stripped."""
        bodies = []

        def handler(request):
            bodies.append(request.content)
            return httpx.Response(200, content=b"{}")

        server, _, stdout, _ = make_server(handler, b"\n   \n", b'{"id":1}\r\n')

        await server.run()

        assert bodies == [b'{"id":1}']
        assert stdout.getvalue() == b"{}\n"

    @pytest.mark.asyncio
    async def test_empty_backend_body_writes_nothing(self):
        server, _, stdout, stderr = make_server(
            lambda request: httpx.Response(204), b'{"jsonrpc":"2.0","method":"notify"}\n'
        )

        await server.run()

        assert stdout.getvalue() == b""
        assert stderr.getvalue() == ""

    @pytest.mark.asyncio
    async def test_backend_error_goes_to_stderr(self):
        """HTTP failures are reported on stderr and stdout stays clean."""
        server, _, stdout, stderr = make_server(
            lambda request: httpx.Response(500), b'{"id":1}\n'
        )

        await server.run()

        assert stdout.getvalue() == b""
        assert stderr.getvalue() == (
            "MCP Server Error: backend communication failed: "
            "backend API error: 500 Internal Server Error\n"
        )

    @pytest.mark.asyncio
    async def test_redirect_goes_to_stderr(self):
        """A redirect page from the backend never reaches stdout."""
        server, _, stdout, stderr = make_server(
            lambda request: httpx.Response(
                301, content=b"<html>\n<body>Moved Permanently</body>\n</html>"
            ),
            b'{"jsonrpc":"2.0","id":1,"method":"ping"}\n',
        )

        await server.run()

        assert stdout.getvalue() == b""
        assert stderr.getvalue() == (
            "MCP Server Error: backend communication failed: "
            "backend API error: 301 Moved Permanently\n"
        )

    @pytest.mark.asyncio
    async def test_oversized_line_skipped(self):
        server, _, stdout, stderr = make_server(
            lambda request: httpx.Response(200, content=request.content),
            b"x" * 64 + b"\n",
            b'{"id":2}\n',
            max_line_length=16,
        )

        await server.run()

        assert "exceeds maximum length" in stderr.getvalue()
        assert stdout.getvalue() == b'{"id":2}\n'


class TestShutdown:
    """Tests for drain and cancellation behaviour."""

    @pytest.mark.asyncio
    async def test_eof_drains_in_flight(self):
        """Requests still running at EOF complete and are written."""

        async def handler(request):
            await asyncio.sleep(0.05)
            return httpx.Response(200, content=b'{"id":1,"result":true}')

        server, _, stdout, _ = make_server(handler, b'{"id":1}\n')

        await server.run()

        assert stdout.getvalue() == b'{"id":1,"result":true}\n'
        assert server.drain_timed_out is False

    @pytest.mark.asyncio
    async def test_drain_deadline_cancels(self):
        """Work outliving the drain deadline is cancelled."""

        async def handler(request):
            await asyncio.sleep(10)
            return httpx.Response(200, content=b"{}")

        server, _, stdout, stderr = make_server(handler, b'{"id":1}\n', drain_timeout=0.05)

        await asyncio.wait_for(server.run(), timeout=5)

        assert server.drain_timed_out is True
        assert server.cancel_token.is_cancelled
        assert stdout.getvalue() == b""
        assert "request cancelled: bridge is shutting down" in stderr.getvalue()
        assert server.in_flight == 0

    @pytest.mark.asyncio
    async def test_request_shutdown_cancels_immediately(self):
        """A shutdown request stops reading and cancels in-flight work."""
        started = asyncio.Event()

        async def handler(request):
            started.set()
            await asyncio.sleep(10)
            return httpx.Response(200, content=b"{}")

        server, _, stdout, stderr = make_server(handler, b'{"id":1}\n', eof=False)
        run = asyncio.create_task(server.run())
        await asyncio.wait_for(started.wait(), timeout=2)

        server.request_shutdown("test")
        await asyncio.wait_for(run, timeout=5)

        assert server.state is BridgeState.STOPPED
        assert server.cancel_token.is_cancelled
        assert stdout.getvalue() == b""
        assert "request cancelled" in stderr.getvalue()

    @pytest.mark.asyncio
    async def test_lines_after_shutdown_not_forwarded(self):
        """Input arriving after a shutdown request is never sent."""
        started = asyncio.Event()
        requests = []

        async def handler(request):
            requests.append(request.content)
            started.set()
            await asyncio.sleep(10)
            return httpx.Response(200, content=b"{}")

        server, stdin, stdout, _ = make_server(handler, b'{"id":1}\n', eof=False)
        run = asyncio.create_task(server.run())
        await asyncio.wait_for(started.wait(), timeout=2)

        server.request_shutdown("test")
        stdin.feed_data(b'{"id":2}\n{"id":3}\n')
        stdin.feed_eof()
        await asyncio.wait_for(run, timeout=5)
        await asyncio.sleep(0.05)

        assert requests == [b'{"id":1}']
        assert stdout.getvalue() == b""
        assert server.in_flight == 0

    @pytest.mark.asyncio
    async def test_responses_may_arrive_out_of_order(self):
        """Lines are forwarded concurrently; a fast reply is not held back."""

        async def handler(request):
            if request.content == b'{"id":"slow"}':
                await asyncio.sleep(0.1)
            return httpx.Response(200, content=request.content)

        server, _, stdout, _ = make_server(handler, b'{"id":"slow"}\n{"id":"fast"}\n')

        await server.run()

        assert stdout.getvalue().splitlines() == [b'{"id":"fast"}', b'{"id":"slow"}']
