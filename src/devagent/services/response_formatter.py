"""
Response Formatter Service - MCP content blocks.

The protocol requires ``tools/call`` results to be a list of typed
content blocks. Every tool result is returned as a single ``text`` block:
strings are passed through, anything else is serialized as indented JSON.

Example:
    formatter = ResponseFormatter()
    formatter.format_tool_result({"matches": 3})
    # {"content": [{"type": "text", "text": "{\\n  \\"matches\\": 3\\n}"}]}

Author: dev-agent Team
"""

import json
from dataclasses import dataclass
from typing import Any

from mcp.types import TextContent


@dataclass
class FormatterConfig:
    """Configuration for response formatting."""
    json_indent: int | None = 2
    ensure_ascii: bool = False


class ResponseFormatter:
    """Wraps raw tool output into the protocol's content-block envelope."""

    def __init__(self, config: FormatterConfig | None = None):
        self.config = config or FormatterConfig()

    def to_text(self, data: Any) -> str:
        """Render tool output as text."""
        if isinstance(data, str):
            return data
        return json.dumps(
            data,
            indent=self.config.json_indent,
            ensure_ascii=self.config.ensure_ascii,
            default=str,
        )

    def format_tool_result(self, data: Any) -> dict[str, Any]:
        """Build ``{"content": [{"type": "text", "text": ...}]}``."""
        block = TextContent(type="text", text=self.to_text(data))
        return {"content": [block.model_dump(exclude_none=True, by_alias=True)]}
