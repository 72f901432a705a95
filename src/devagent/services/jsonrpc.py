"""
JSON-RPC 2.0 codec.

Stateless helpers that turn raw lines into message dictionaries,
classify them as requests or notifications, and build the success and
error envelopes written back to the client.

A message with a non-null ``id`` is a request and gets exactly one
response; anything else is a notification and gets none.

Author: dev-agent Team
"""

import json
from typing import Any, Optional, Union

from mcp.types import ErrorData

from ..constants import (
    JSONRPC_INVALID_REQUEST,
    JSONRPC_PARSE_ERROR,
    JSONRPC_VERSION,
    SENTINEL_REQUEST_ID,
)


RequestId = Union[str, int]
Message = dict[str, Any]


class ProtocolError(Exception):
    """
    A JSON-RPC error raised by protocol handlers.

    Attributes:
        error: The wire error object (code, message, data)
        request_id: Id of the offending request, when it could be recovered
    """

    def __init__(self, error: ErrorData, request_id: Optional[RequestId] = None):
        super().__init__(error.message)
        self.error = error
        self.request_id = request_id

    @property
    def code(self) -> int:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def data(self) -> Any:
        return self.error.data


def create_error(code: int, message: str, data: Any = None) -> ProtocolError:
    """Build the structured error raised by protocol handlers."""
    return ProtocolError(ErrorData(code=code, message=message, data=data))


def parse_message(line: Union[str, bytes]) -> Message:
    """
    Parse one framed line into a request or notification.

    Raises:
        ProtocolError: PARSE_ERROR for invalid JSON, INVALID_REQUEST for a
            well-formed JSON value that is not a JSON-RPC 2.0 message.
            The request id is attached when one was present.
    """
    try:
        parsed = json.loads(line)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise create_error(JSONRPC_PARSE_ERROR, f"Parse error: {exc}") from exc

    if not isinstance(parsed, dict):
        raise create_error(JSONRPC_INVALID_REQUEST, "Message must be a JSON object")

    request_id = parsed.get("id")
    if not isinstance(request_id, (str, int)) or isinstance(request_id, bool):
        request_id = None

    if parsed.get("jsonrpc") != JSONRPC_VERSION:
        error = create_error(
            JSONRPC_INVALID_REQUEST, 'Invalid JSON-RPC version, must be "2.0"'
        )
        error.request_id = request_id
        raise error

    if not isinstance(parsed.get("method"), str):
        error = create_error(JSONRPC_INVALID_REQUEST, 'Missing or invalid "method" field')
        error.request_id = request_id
        raise error

    return parsed


def is_request(message: Message) -> bool:
    """True iff the message carries a non-null id."""
    return message.get("id") is not None


def create_response(request_id: RequestId, result: Any) -> Message:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def create_error_response(
    request_id: Optional[RequestId],
    error: Union[ProtocolError, ErrorData],
) -> Message:
    """
    Build an error envelope.

    A missing id is replaced by the sentinel id so the client still sees
    the failure.
    """
    error_data = error.error if isinstance(error, ProtocolError) else error
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": SENTINEL_REQUEST_ID if request_id is None else request_id,
        "error": error_data.model_dump(exclude_none=True),
    }


def create_notification(method: str, params: Optional[dict[str, Any]] = None) -> Message:
    notification: Message = {"jsonrpc": JSONRPC_VERSION, "method": method}
    if params:
        notification["params"] = params
    return notification


def serialize(message: Message) -> str:
    """Serialize a message to a single line of JSON (no trailing newline)."""
    return json.dumps(message, ensure_ascii=False, separators=(",", ":"))


def validate_params(params: Any, expected_type: str = "object") -> bool:
    """Check that params is an object (dict) or an array (list)."""
    if expected_type == "object":
        return isinstance(params, dict)
    return isinstance(params, list)


def extract_tool_call_params(params: Any) -> Optional[tuple[str, dict[str, Any]]]:
    """
    Pull ``name`` and ``arguments`` out of tools/call params.

    ``arguments`` may be omitted (treated as empty), but when present it
    must be an object.

    Returns:
        (name, arguments), or None if the params are malformed.
    """
    if not validate_params(params, "object"):
        return None

    name = params.get("name")
    if not isinstance(name, str) or not name:
        return None

    arguments = params.get("arguments")
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        return None

    return name, arguments
