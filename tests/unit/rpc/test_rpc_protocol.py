"""Unit tests for JSON-RPC message parsing and serialization."""

import json

import pytest

from reqmcp.rpc.errors import INVALID_REQUEST, PARSE_ERROR, JsonRpcError, internal_error
from reqmcp.rpc.protocol import (
    error_response,
    fallback_response,
    make_error_response,
    make_success_response,
    parse_notification,
    parse_request,
    parse_response,
    serialize_request,
    serialize_response,
)
from reqmcp.rpc.types import Request


class TestParseRequest:
    """Tests for parse_request."""

    def test_parses_basic_request(self):
        """A well-formed request yields method, params and id."""
        request = parse_request(b'{"jsonrpc":"2.0","id":1,"method":"noop","params":{}}')

        assert request.method == "noop"
        assert request.params == {}
        assert request.id == 1
        assert not request.is_notification

    @pytest.mark.parametrize("raw_id", [0, "", "abc", 1.5, -7])
    def test_id_type_preserved(self, raw_id):
        """Ids keep their JSON type, including 0 and the empty string."""
        payload = json.dumps({"jsonrpc": "2.0", "id": raw_id, "method": "m"})
        request = parse_request(payload)

        assert request.id == raw_id
        assert type(request.id) is type(raw_id)

    @pytest.mark.parametrize("payload", [
        '{"jsonrpc":"2.0","method":"m"}',
        '{"jsonrpc":"2.0","method":"m","id":null}',
    ])
    def test_absent_or_null_id_is_notification(self, payload):
        """A request without id, or with id null, is a notification."""
        assert parse_request(payload).is_notification

    @pytest.mark.parametrize("bad_id", ["true", "false", "[1]", '{"a":1}'])
    def test_structured_or_boolean_id_rejected(self, bad_id):
        """Booleans, arrays and objects are not valid ids."""
        payload = '{"jsonrpc":"2.0","method":"m","id":%s}' % bad_id
        with pytest.raises(JsonRpcError) as exc_info:
            parse_request(payload)

        assert exc_info.value.code == INVALID_REQUEST

    def test_truncated_json_is_parse_error(self):
        """Malformed JSON raises a parse error."""
        with pytest.raises(JsonRpcError) as exc_info:
            parse_request('{"jsonrpc":"2.0","id":1,"method":"x"')

        assert exc_info.value.code == PARSE_ERROR
        assert "Invalid JSON" in exc_info.value.data

    def test_nan_constant_rejected(self):
        """Non-standard JSON constants are a parse error."""
        with pytest.raises(JsonRpcError) as exc_info:
            parse_request('{"jsonrpc":"2.0","id":NaN,"method":"m"}')

        assert exc_info.value.code == PARSE_ERROR

    def test_missing_version_is_invalid_request(self):
        """jsonrpc must be "2.0"."""
        with pytest.raises(JsonRpcError) as exc_info:
            parse_request('{"id":1,"method":"m"}')

        assert exc_info.value.code == INVALID_REQUEST
        assert "jsonrpc version" in exc_info.value.data


class TestParseNotification:
    """Tests for parse_notification."""

    def test_drops_id(self):
        """A notification never carries an id."""
        notification = parse_notification('{"jsonrpc":"2.0","method":"ping","id":4}')

        assert notification.id is None
        assert notification.method == "ping"


class TestSerializeResponse:
    """Tests for response serialization."""

    def test_success_is_compact_single_line(self):
        """Serialized responses have no whitespace or newlines."""
        data = serialize_response(make_success_response(1, {"ok": True}))

        assert data == b'{"jsonrpc":"2.0","id":1,"result":{"ok":true}}'

    def test_null_id_is_serialized(self):
        """id is always present, even when null."""
        data = json.loads(serialize_response(make_success_response(None, 1)))

        assert "id" in data
        assert data["id"] is None

    def test_null_result_is_serialized(self):
        """A null result is still emitted as result."""
        data = json.loads(serialize_response(make_success_response(3, None)))

        assert data == {"jsonrpc": "2.0", "id": 3, "result": None}

    def test_error_data_omitted_when_absent(self):
        """error.data only appears when set."""
        data = json.loads(serialize_response(make_error_response(1, -32601, "Method not found")))

        assert data["error"] == {"code": -32601, "message": "Method not found"}

    def test_error_response_from_exception(self):
        """error_response copies code, message and data from a JsonRpcError."""
        response = error_response("x", internal_error("boom"))

        assert response.error == {"code": -32603, "message": "Internal error", "data": "boom"}
        assert response.id == "x"

    def test_non_ascii_kept_as_utf8(self):
        """Text is written as UTF-8, not escaped."""
        data = serialize_response(make_success_response(1, "héllo"))

        assert "héllo".encode() in data

    def test_unserializable_result_raises(self):
        """Objects json cannot encode raise TypeError."""
        with pytest.raises(TypeError):
            serialize_response(make_success_response(1, object()))

    def test_fallback_response(self):
        """The fallback is an internal error for the same id."""
        data = json.loads(fallback_response(9))

        assert data["id"] == 9
        assert data["error"]["code"] == -32603
        assert data["error"]["data"] == "Failed to marshal response"

    def test_round_trip_is_stable(self):
        """Serialize, parse and serialize again gives the same bytes."""
        first = serialize_response(make_success_response("a", {"n": [1, 2.5, "x"]}))
        second = serialize_response(parse_response(first))

        assert first == second


class TestClientSide:
    """Tests for serialize_request and parse_response."""

    def test_serialize_request_omits_absent_fields(self):
        """Notifications have no id and params-less requests no params."""
        data = json.loads(serialize_request(Request(jsonrpc="2.0", method="ping")))

        assert data == {"jsonrpc": "2.0", "method": "ping"}

    def test_parse_response_error(self):
        """Error responses decode into an error dict."""
        response = parse_response(
            '{"jsonrpc":"2.0","id":1,"error":{"code":-32001,"message":"Resource not found"}}'
        )

        assert response.is_error
        assert response.error["code"] == -32001

    def test_parse_response_requires_result_or_error(self):
        """A response with neither result nor error is rejected."""
        with pytest.raises(JsonRpcError) as exc_info:
            parse_response('{"jsonrpc":"2.0","id":1}')

        assert "result or error" in exc_info.value.data
