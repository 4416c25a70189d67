"""Unit tests for JSON-RPC structural validation."""

import pytest

from reqmcp.rpc.errors import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, PARSE_ERROR, JsonRpcError
from reqmcp.rpc.validator import BatchValidator, MessageValidator, Validator


@pytest.fixture
def validator() -> Validator:
    return Validator()


class TestRequestValidation:
    """Tests for Validator.validate_request ordering and messages."""

    def test_parse_error_wins_over_everything(self, validator):
        """Malformed JSON is reported before any field check."""
        with pytest.raises(JsonRpcError) as exc_info:
            validator.validate_request(b'{"method": "rpc.x"')

        assert exc_info.value.code == PARSE_ERROR

    def test_version_checked_before_method(self, validator):
        """A wrong version is reported even if method is also missing."""
        with pytest.raises(JsonRpcError) as exc_info:
            validator.validate_request('{"jsonrpc":"1.0"}')

        assert exc_info.value.data == "Invalid jsonrpc version: expected '2.0', got '1.0'"

    @pytest.mark.parametrize("payload", [
        '{"jsonrpc":"2.0","id":1}',
        '{"jsonrpc":"2.0","id":1,"method":""}',
    ])
    def test_missing_or_empty_method(self, validator, payload):
        """method must be present and non-empty."""
        with pytest.raises(JsonRpcError) as exc_info:
            validator.validate_request(payload)

        assert exc_info.value.code == INVALID_REQUEST
        assert exc_info.value.data == "Missing required field: method"

    def test_non_string_method(self, validator):
        """method must be a string."""
        with pytest.raises(JsonRpcError) as exc_info:
            validator.validate_request('{"jsonrpc":"2.0","id":1,"method":5}')

        assert exc_info.value.code == INVALID_REQUEST

    def test_reserved_prefix(self, validator):
        """Names starting with rpc. are reserved."""
        with pytest.raises(JsonRpcError) as exc_info:
            validator.validate_request('{"jsonrpc":"2.0","id":1,"method":"rpc.reservedName"}')

        assert exc_info.value.code == INVALID_REQUEST
        assert "rpc." in exc_info.value.data

    @pytest.mark.parametrize("method", ["has space", "dash-name", "emoji✓", "semi;colon"])
    def test_invalid_method_characters(self, validator, method):
        """Only letters, digits, underscore, slash and dot are allowed."""
        with pytest.raises(JsonRpcError) as exc_info:
            validator.validate_method_name(method)

        assert exc_info.value.code == INVALID_REQUEST
        assert "Invalid character in method name" in exc_info.value.data

    @pytest.mark.parametrize("method", ["tools/list", "requirements.get", "get_epic", "v2.a_b/c"])
    def test_valid_method_names(self, validator, method):
        """Typical MCP and dotted names pass."""
        validator.validate_method_name(method)

    def test_request_must_be_object(self, validator):
        """A JSON scalar is not a request."""
        with pytest.raises(JsonRpcError) as exc_info:
            validator.validate_request("42")

        assert exc_info.value.code == INVALID_REQUEST


class TestParamsValidation:
    """Tests for Validator.validate_params."""

    def test_absent_params_pass(self, validator):
        validator.validate_params(None, dict)

    def test_wrong_type_is_invalid_params(self, validator):
        """Params of the wrong container type are rejected."""
        with pytest.raises(JsonRpcError) as exc_info:
            validator.validate_params([1, 2], dict)

        assert exc_info.value.code == INVALID_PARAMS
        assert "expected dict, got list" in exc_info.value.data


class TestResponseValidation:
    """Tests for Validator.validate_response and validate_error."""

    def test_valid_success(self, validator):
        validator.validate_response({"jsonrpc": "2.0", "id": 1, "result": None})

    def test_both_result_and_error(self, validator):
        """result and error are mutually exclusive."""
        with pytest.raises(JsonRpcError) as exc_info:
            validator.validate_response({
                "jsonrpc": "2.0", "id": 1, "result": 1,
                "error": {"code": -32603, "message": "x"},
            })

        assert exc_info.value.code == INTERNAL_ERROR

    @pytest.mark.parametrize("code", [-32700, -32600, -32601, -32602, -32603, -32000, -32050, -32099, 1, -1, 404])
    def test_accepted_error_codes(self, validator, code):
        """Standard codes, the server range and application codes pass."""
        validator.validate_error({"code": code, "message": "m"})

    @pytest.mark.parametrize("code", [0, -32100, -32768, -32500])
    def test_rejected_error_codes(self, validator, code):
        """Zero and unassigned codes in the reserved block are rejected."""
        with pytest.raises(JsonRpcError):
            validator.validate_error({"code": code, "message": "m"})

    def test_empty_error_message(self, validator):
        with pytest.raises(JsonRpcError) as exc_info:
            validator.validate_error({"code": -32603, "message": ""})

        assert "message" in exc_info.value.data


class TestBatchValidation:
    """Tests for BatchValidator."""

    def test_non_array(self):
        """A batch must be an array."""
        with pytest.raises(JsonRpcError) as exc_info:
            BatchValidator().validate_batch('{"jsonrpc":"2.0"}')

        assert exc_info.value.data == "Batch must be a JSON array"

    def test_empty_array(self):
        """An empty batch is an invalid request."""
        with pytest.raises(JsonRpcError) as exc_info:
            BatchValidator().validate_batch("[]")

        assert exc_info.value.code == INVALID_REQUEST
        assert exc_info.value.data == "Batch cannot be empty"

    def test_bad_elements_reported_by_index(self):
        """Invalid elements become index-tagged entries; the rest pass."""
        entries = BatchValidator().validate_batch(
            '[{"jsonrpc":"2.0","id":1,"method":"a"}, 5, {"jsonrpc":"1.0","id":"k","method":"b"}]'
        )

        assert [e.index for e in entries] == [0, 1, 2]
        assert entries[0].request is not None
        assert entries[1].error.data == "Invalid request at index 1: Request must be a JSON object"
        assert entries[1].id is None
        assert entries[2].error.code == INVALID_REQUEST
        assert entries[2].error.data.startswith("Invalid request at index 2:")
        assert entries[2].id == "k"


class TestMessageValidator:
    """Tests for MessageValidator dispatching."""

    def test_single_message(self):
        result = MessageValidator().validate_message('{"jsonrpc":"2.0","method":"m"}')

        assert result.method == "m"
        assert result.is_notification

    def test_batch_message(self):
        result = MessageValidator().validate_message('[{"jsonrpc":"2.0","method":"m"}]')

        assert isinstance(result, list)
        assert len(result) == 1
