"""
Services for the dev-agent MCP server.

Protocol plumbing shared by the server and the adapters:

- **Transport** (transport.py): Framed message I/O over stdio
- **JSON-RPC** (jsonrpc.py): Message parsing and response envelopes
- **RateLimiter** (rate_limiter.py): Per-tool token buckets
- **ResponseFormatter** (response_formatter.py): MCP content blocks

Usage:
    from devagent.services import RateLimiter, StdioTransport

    limiter = RateLimiter(default_capacity=10, default_refill_rate=1)
    transport = StdioTransport()
"""

from .jsonrpc import (
    ProtocolError,
    create_error,
    create_error_response,
    create_notification,
    create_response,
    is_request,
    parse_message,
)
from .rate_limiter import RateLimiter, RateLimitResult, TokenBucket
from .response_formatter import FormatterConfig, ResponseFormatter
from .transport import StdioTransport, Transport, open_pipe_writer

__all__ = [
    # Transport
    "Transport",
    "StdioTransport",
    "open_pipe_writer",
    # JSON-RPC
    "ProtocolError",
    "create_error",
    "create_error_response",
    "create_notification",
    "create_response",
    "is_request",
    "parse_message",
    # Rate limiting
    "RateLimiter",
    "RateLimitResult",
    "TokenBucket",
    # Formatting
    "FormatterConfig",
    "ResponseFormatter",
]
