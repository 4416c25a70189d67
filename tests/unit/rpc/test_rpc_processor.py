"""Unit tests for the single-message JSON-RPC processor."""

import json

import pytest

from reqmcp.core.errors import NotFoundError
from reqmcp.rpc.errors import JsonRpcError
from reqmcp.rpc.processor import CallerIdentity, InvocationContext, Processor


async def ok_handler(ctx, params):
    return {"ok": True}


async def echo_handler(ctx, params):
    return {"method": ctx.method, "id": ctx.request_id, "params": params}


@pytest.fixture
def processor() -> Processor:
    p = Processor()
    p.register("noop", ok_handler)
    p.register("echo", echo_handler)
    p.freeze()
    return p


class TestRegistration:
    """Tests for the registration phase."""

    def test_freeze_blocks_registration(self, processor):
        """No handler can be added after freeze()."""
        with pytest.raises(RuntimeError):
            processor.register("late", ok_handler)

    def test_duplicate_rejected(self):
        p = Processor()
        p.register("a", ok_handler)

        with pytest.raises(ValueError, match="already registered"):
            p.register("a", ok_handler)

    def test_invalid_name_rejected(self):
        """Registration applies the same method-name rules as requests."""
        with pytest.raises(ValueError):
            Processor().register("rpc.internal", ok_handler)

    def test_methods_sorted(self, processor):
        assert processor.methods() == ["echo", "noop"]
        assert processor.has("noop")
        assert processor.frozen


class TestHandle:
    """Tests for Processor.handle."""

    @pytest.mark.asyncio
    async def test_success_response_bytes(self, processor):
        """A successful call produces the exact compact response."""
        out = await processor.handle(InvocationContext(), b'{"jsonrpc":"2.0","id":1,"method":"noop"}')

        assert out == b'{"jsonrpc":"2.0","id":1,"result":{"ok":true}}'

    @pytest.mark.asyncio
    async def test_method_not_found_bytes(self, processor):
        """An unknown method echoes the string id."""
        out = await processor.handle(InvocationContext(), b'{"jsonrpc":"2.0","id":"abc","method":"missing"}')

        assert out == (
            b'{"jsonrpc":"2.0","id":"abc","error":{"code":-32601,'
            b'"message":"Method not found","data":"Method \'missing\' not found"}}'
        )

    @pytest.mark.asyncio
    async def test_parse_error_has_null_id(self, processor):
        out = await processor.handle(InvocationContext(), b'{"jsonrpc":')

        body = json.loads(out)
        assert body["id"] is None
        assert body["error"]["code"] == -32700

    @pytest.mark.asyncio
    async def test_invalid_request_echoes_id(self, processor):
        """The id is echoed when it can be recovered."""
        out = await processor.handle(InvocationContext(), b'{"jsonrpc":"1.0","id":9,"method":"noop"}')

        body = json.loads(out)
        assert body["id"] == 9
        assert body["error"]["code"] == -32600

    @pytest.mark.asyncio
    async def test_context_is_specialised(self, processor):
        """Handlers see the method and id; the base context is untouched."""
        base = InvocationContext(caller=CallerIdentity(username="ana"))

        out = await processor.handle(base, b'{"jsonrpc":"2.0","id":"x","method":"echo","params":[1]}')

        body = json.loads(out)
        assert body["result"] == {"method": "echo", "id": "x", "params": [1]}
        assert base.method == ""
        assert base.request_id is None

    @pytest.mark.asyncio
    async def test_float_id_preserved(self, processor):
        out = await processor.handle(InvocationContext(), b'{"jsonrpc":"2.0","id":1.5,"method":"noop"}')

        assert json.loads(out)["id"] == 1.5

    @pytest.mark.asyncio
    async def test_handler_error_is_mapped(self):
        """Handler exceptions become mapped errors."""

        async def lookup(ctx, params):
            raise NotFoundError("epic 3 not found")

        p = Processor()
        p.register("lookup", lookup)

        out = await p.handle(InvocationContext(), b'{"jsonrpc":"2.0","id":2,"method":"lookup"}')

        assert json.loads(out)["error"] == {
            "code": -32001,
            "message": "Resource not found",
            "data": "epic 3 not found",
        }

    @pytest.mark.asyncio
    async def test_handler_raises_json_rpc_error(self):
        """A raised JsonRpcError reaches the caller unchanged."""

        async def strict(ctx, params):
            raise JsonRpcError(-32602, "Invalid params", data="x must be positive")

        p = Processor()
        p.register("strict", strict)

        out = await p.handle(InvocationContext(), b'{"jsonrpc":"2.0","id":3,"method":"strict"}')

        assert json.loads(out)["error"]["data"] == "x must be positive"

    @pytest.mark.asyncio
    async def test_unserializable_result_falls_back(self):
        """A result that cannot be encoded yields an internal error."""

        async def bad(ctx, params):
            return {"value": object()}

        p = Processor()
        p.register("bad", bad)

        out = await p.handle(InvocationContext(), b'{"jsonrpc":"2.0","id":4,"method":"bad"}')

        body = json.loads(out)
        assert body["id"] == 4
        assert body["error"]["code"] == -32603
        assert body["error"]["data"] == "Failed to marshal response"


class TestNotifications:
    """Tests for notification handling."""

    @pytest.mark.asyncio
    async def test_notification_runs_without_response(self):
        calls = []

        async def record(ctx, params):
            calls.append(params)

        p = Processor()
        p.register("record", record)

        out = await p.handle(InvocationContext(), b'{"jsonrpc":"2.0","method":"record","params":{"a":1}}')

        assert out is None
        assert calls == [{"a": 1}]

    @pytest.mark.asyncio
    async def test_unknown_notification_is_silent(self, processor):
        out = await processor.handle(InvocationContext(), b'{"jsonrpc":"2.0","method":"missing"}')

        assert out is None

    @pytest.mark.asyncio
    async def test_failing_notification_is_silent(self):
        """Handler failures on notifications are swallowed after logging."""

        async def boom(ctx, params):
            raise RuntimeError("boom")

        p = Processor()
        p.register("boom", boom)

        out = await p.handle(InvocationContext(), b'{"jsonrpc":"2.0","method":"boom"}')

        assert out is None
