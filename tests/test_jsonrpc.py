"""
Tests for the JSON-RPC codec.

Tests cover:
- Parsing valid and malformed lines
- Request/notification classification
- Response and error envelopes
- tools/call parameter extraction

Author: dev-agent Team
"""

import json

import pytest

from devagent.constants import (
    JSONRPC_INTERNAL_ERROR,
    JSONRPC_INVALID_REQUEST,
    JSONRPC_PARSE_ERROR,
)
from devagent.services.jsonrpc import (
    ProtocolError,
    create_error,
    create_error_response,
    create_notification,
    create_response,
    extract_tool_call_params,
    is_request,
    parse_message,
    serialize,
    validate_params,
)


class TestParseMessage:
    """Tests for parse_message."""

    def test_parses_request(self):
        """Test a well-formed request is returned as a dict."""
        message = parse_message('{"jsonrpc": "2.0", "id": 7, "method": "tools/list"}')

        assert message == {"jsonrpc": "2.0", "id": 7, "method": "tools/list"}

    def test_accepts_bytes(self):
        """Test that raw bytes are accepted."""
        message = parse_message(b'{"jsonrpc": "2.0", "method": "initialized"}')

        assert message["method"] == "initialized"

    def test_invalid_json_is_parse_error(self):
        """Test that broken JSON raises PARSE_ERROR."""
        with pytest.raises(ProtocolError) as exc_info:
            parse_message("{not json")

        assert exc_info.value.code == JSONRPC_PARSE_ERROR
        assert exc_info.value.request_id is None

    def test_non_object_is_invalid_request(self):
        """Test that a JSON array is rejected."""
        with pytest.raises(ProtocolError) as exc_info:
            parse_message("[1, 2]")

        assert exc_info.value.code == JSONRPC_INVALID_REQUEST

    def test_wrong_version_keeps_request_id(self):
        """Test that the id is recovered from an invalid message."""
        with pytest.raises(ProtocolError) as exc_info:
            parse_message('{"jsonrpc": "1.0", "id": "abc", "method": "initialize"}')

        assert exc_info.value.code == JSONRPC_INVALID_REQUEST
        assert exc_info.value.request_id == "abc"

    def test_missing_method(self):
        """Test that a message without a method is rejected."""
        with pytest.raises(ProtocolError) as exc_info:
            parse_message('{"jsonrpc": "2.0", "id": 3}')

        assert exc_info.value.code == JSONRPC_INVALID_REQUEST
        assert exc_info.value.request_id == 3


class TestClassification:
    """Tests for is_request."""

    @pytest.mark.parametrize("request_id", [0, 1, "req-1", ""])
    def test_non_null_id_is_request(self, request_id):
        """Test that any non-null id makes a request, including 0."""
        assert is_request({"jsonrpc": "2.0", "id": request_id, "method": "x"})

    def test_missing_or_null_id_is_notification(self):
        """Test that notifications have no id or a null id."""
        assert not is_request({"jsonrpc": "2.0", "method": "initialized"})
        assert not is_request({"jsonrpc": "2.0", "id": None, "method": "initialized"})


class TestEnvelopes:
    """Tests for response and error construction."""

    def test_create_response(self):
        """Test a success envelope echoes the id."""
        assert create_response("a", {"ok": True}) == {
            "jsonrpc": "2.0",
            "id": "a",
            "result": {"ok": True},
        }

    def test_create_error_response_omits_missing_data(self):
        """Test that an error without data has no data key."""
        error = create_error(JSONRPC_INTERNAL_ERROR, "boom")

        response = create_error_response(5, error)

        assert response == {
            "jsonrpc": "2.0",
            "id": 5,
            "error": {"code": JSONRPC_INTERNAL_ERROR, "message": "boom"},
        }

    def test_create_error_response_includes_data(self):
        """Test that error data is carried through."""
        error = create_error(-32001, "Rate limit exceeded", {"details": {"retryAfter": 2}})

        response = create_error_response(1, error)

        assert response["error"]["data"] == {"details": {"retryAfter": 2}}

    def test_create_error_response_uses_sentinel_id(self):
        """Test that a missing id becomes the sentinel 0."""
        response = create_error_response(None, create_error(JSONRPC_PARSE_ERROR, "bad"))

        assert response["id"] == 0

    def test_create_notification(self):
        """Test notifications carry no id."""
        assert create_notification("progress", {"pct": 50}) == {
            "jsonrpc": "2.0",
            "method": "progress",
            "params": {"pct": 50},
        }
        assert "params" not in create_notification("ping")

    def test_serialize_is_single_line(self):
        """Test serialized messages never contain a newline."""
        line = serialize(create_response(1, {"text": "line one\nline two", "name": "café"}))

        assert "\n" not in line
        assert "café" in line
        assert json.loads(line)["result"]["text"] == "line one\nline two"


class TestToolCallParams:
    """Tests for extract_tool_call_params and validate_params."""

    def test_extracts_name_and_arguments(self):
        """Test normal extraction."""
        assert extract_tool_call_params({"name": "echo", "arguments": {"text": "hi"}}) == (
            "echo",
            {"text": "hi"},
        )

    def test_missing_arguments_become_empty(self):
        """Test that omitted arguments default to an empty object."""
        assert extract_tool_call_params({"name": "echo"}) == ("echo", {})

    @pytest.mark.parametrize(
        "params",
        [None, [], {"arguments": {}}, {"name": 3}, {"name": ""}, {"name": "x", "arguments": [1]}],
    )
    def test_malformed_params(self, params):
        """Test that malformed params return None."""
        assert extract_tool_call_params(params) is None

    def test_validate_params(self):
        """Test object and array checks."""
        assert validate_params({})
        assert not validate_params([])
        assert validate_params([], "array")
        assert not validate_params({}, "array")
