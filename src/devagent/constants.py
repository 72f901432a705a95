"""
Constants and Configuration Values for dev-agent.

This module centralizes the magic strings and numbers used by the MCP
server core: application metadata, protocol method names, semantic and
wire-level error codes, and rate-limiting defaults.

Usage:
    from devagent.constants import (
        APPLICATION_NAME,
        ProtocolMethod,
        ErrorCode,
    )

Naming Conventions:
    - ALL_CAPS for constants
    - Descriptive names that read like English
    - Grouped by category with clear section headers

Author: dev-agent Team
"""

from enum import Enum
from pathlib import Path

from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
)


# ============================================================================
# Application Metadata
# ============================================================================

APPLICATION_NAME = "dev-agent"
APPLICATION_VERSION = "0.1.4"
APPLICATION_DESCRIPTION = "Developer tooling exposed to AI assistants over MCP"


# ============================================================================
# File System Paths
# ============================================================================

DEFAULT_STORAGE_DIRECTORY = Path.home() / ".dev-agent"
VECTOR_STORE_DIRECTORY_NAME = "vectors"
GITHUB_STATE_FILE_NAME = "github-state.json"
LOG_DIRECTORY_NAME = "logs"


# ============================================================================
# Protocol
# ============================================================================

JSONRPC_VERSION = "2.0"

# Used when the client does not send a protocolVersion in initialize
FALLBACK_PROTOCOL_VERSION = "1.0"

# Id used for error responses to requests whose id could not be recovered
SENTINEL_REQUEST_ID = 0


class ProtocolMethod(str, Enum):
    """
    Protocol methods understood by the server.

    Only the tool methods are implemented; the resource and prompt
    methods are recognized so the client gets an explicit
    "not implemented" answer instead of silence.
    """

    INITIALIZE = "initialize"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    RESOURCES_LIST = "resources/list"
    RESOURCES_READ = "resources/read"
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"


UNIMPLEMENTED_METHODS = {
    ProtocolMethod.RESOURCES_LIST.value,
    ProtocolMethod.RESOURCES_READ.value,
    ProtocolMethod.PROMPTS_LIST.value,
    ProtocolMethod.PROMPTS_GET.value,
}


class NotificationMethod(str, Enum):
    """Lifecycle notifications sent by the client."""

    INITIALIZED = "initialized"
    NOTIFICATIONS_INITIALIZED = "notifications/initialized"


# ============================================================================
# Error Codes
# ============================================================================

class ErrorCode(str, Enum):
    """
    Semantic error codes carried by ExecutionResult errors.

    These are what adapters and the registry speak; the server maps
    them to numeric JSON-RPC codes before anything reaches the wire.
    """

    INVALID_PARAMS = "INVALID_PARAMS"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNAVAILABLE = "UNAVAILABLE"
    GITHUB_CLI_ERROR = "GITHUB_CLI_ERROR"
    INDEXER_ERROR = "INDEXER_ERROR"
    HEALTH_CHECK_ERROR = "HEALTH_CHECK_ERROR"


# Application-specific JSON-RPC codes (-32000 to -32099)
TOOL_ERROR = -32001
TIMEOUT_ERROR = -32002
GITHUB_CLI_ERROR = -32003
INDEXER_ERROR = -32004

# Standard JSON-RPC codes, re-exported for convenience
JSONRPC_PARSE_ERROR = PARSE_ERROR
JSONRPC_INVALID_REQUEST = INVALID_REQUEST
JSONRPC_METHOD_NOT_FOUND = METHOD_NOT_FOUND
JSONRPC_INVALID_PARAMS = INVALID_PARAMS
JSONRPC_INTERNAL_ERROR = INTERNAL_ERROR

# Semantic code -> wire code
WIRE_ERROR_CODES = {
    ErrorCode.INVALID_PARAMS.value: INVALID_PARAMS,
    ErrorCode.NOT_FOUND.value: TOOL_ERROR,
    ErrorCode.RATE_LIMITED.value: TOOL_ERROR,
    ErrorCode.TIMEOUT.value: TIMEOUT_ERROR,
    ErrorCode.INTERNAL_ERROR.value: INTERNAL_ERROR,
    ErrorCode.GITHUB_CLI_ERROR.value: GITHUB_CLI_ERROR,
    ErrorCode.INDEXER_ERROR.value: INDEXER_ERROR,
}

# Anything not in the table above is reported as a tool error
DEFAULT_WIRE_ERROR_CODE = TOOL_ERROR


# ============================================================================
# Rate Limiting
# ============================================================================

DEFAULT_RATE_LIMIT_CAPACITY = 100  # burst
DEFAULT_RATE_LIMIT_REFILL_RATE = 10.0  # tokens per second (600/min)


# ============================================================================
# Execution
# ============================================================================

DEFAULT_TOOL_TIMEOUT_SECONDS = 120.0
DEFAULT_SHUTDOWN_GRACE_SECONDS = 5.0
DEFAULT_MESSAGE_QUEUE_SIZE = 256

# Longest raw message preview written to debug logs
LOG_PREVIEW_LENGTH = 200


# ============================================================================
# Tool Names
# ============================================================================

class ToolName(str, Enum):
    """Names of the tools built into the server package."""

    HEALTH = "dev_health"


# ============================================================================
# Error Messages
# ============================================================================

class ErrorMessage:
    """
    Standardized error messages for consistent user experience.

    Using a class instead of a dict provides:
    - IDE autocomplete
    - Easy documentation
    """

    TOOL_NOT_FOUND = "Tool not found: {tool_name}"
    TOOL_UNAVAILABLE = "Tool unavailable: {tool_name} failed to initialize"
    TOOL_ALREADY_REGISTERED = "Adapter already registered: {tool_name}"
    INVALID_INPUT_SCHEMA = "Invalid input schema for tool {tool_name}: {error}"
    RATE_LIMITED = "Rate limit exceeded for {tool_name}. Try again in {retry_after} second(s)."
    TOOL_TIMEOUT = "Tool {tool_name} did not finish within {timeout} second(s)"
    TOOL_FAILED = "Tool execution failed"
    METHOD_NOT_IMPLEMENTED = "Method not implemented: {method}"
    UNKNOWN_METHOD = "Unknown method: {method}"
    INVALID_TOOL_CALL = "tools/call requires a string 'name' and an object 'arguments'"
    TRANSPORT_NOT_READY = "Transport not ready"


class Suggestion:
    """Hints attached to errors so the client can recover."""

    CHECK_SCHEMA = "Check the tool input schema and try again"
    CHECK_ARGUMENTS = "Check the tool arguments and try again"
    WAIT_RETRY = "Wait {retry_after} second(s) before retrying"
    LIST_TOOLS = "Call tools/list to see the available tools"
    CHECK_LOGS = "Check the server logs for the initialization error"
    NARROW_REQUEST = "Retry with a narrower request or raise the tool timeout"
    RUN_INDEX = "Run the indexing step first"
