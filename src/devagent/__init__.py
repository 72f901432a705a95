"""
dev-agent - Developer Tooling for AI Assistants over MCP.

This package provides an MCP (Model Context Protocol) server core that
lets AI assistants call developer tools through a small, uniform adapter
interface.

Key Features:
    - **Stdio transport**: Newline-delimited JSON-RPC 2.0 on stdin/stdout
    - **Adapter registry**: Pluggable tools with schema validation
    - **Rate limiting**: Token bucket per tool
    - **Uniform errors**: Semantic error codes mapped to JSON-RPC codes

Quick Start:
    1. Install: pip install dev-agent-mcp
    2. Serve: dev-agent-mcp serve --repository-path ~/projects/app

Architecture:
    - server.py: Protocol orchestration (initialize, tools/list, tools/call)
    - adapters/: Tool adapter contract, registry and built-in tools
    - services/: JSON-RPC codec, stdio transport, rate limiter, formatter
    - models/: Tool definitions and execution results
    - config.py: Configuration from environment and CLI

Author: dev-agent Team
"""

__version__ = "0.1.4"
__author__ = "dev-agent Team"
__description__ = "Developer tooling exposed to AI assistants over MCP"

# Public API
from devagent.constants import (
    APPLICATION_NAME,
    APPLICATION_VERSION,
    ErrorCode,
    ProtocolMethod,
)

from devagent.logging import (
    get_logger,
    setup_logging,
)

from devagent.models import (
    AdapterContext,
    ExecutionResult,
    ToolDefinition,
    ToolExecutionContext,
)

from devagent.adapters import (
    AdapterRegistry,
    ToolAdapter,
)

__all__ = [
    # Metadata
    "__version__",
    "__author__",
    "__description__",

    # Constants
    "APPLICATION_NAME",
    "APPLICATION_VERSION",
    "ErrorCode",
    "ProtocolMethod",

    # Logging
    "get_logger",
    "setup_logging",

    # Adapter contract
    "AdapterContext",
    "AdapterRegistry",
    "ExecutionResult",
    "ToolAdapter",
    "ToolDefinition",
    "ToolExecutionContext",
]
