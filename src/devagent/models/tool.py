"""
Tool Models - Definitions, Results and Contexts.

This module defines the data passed across the adapter boundary:

1. **ToolDefinition**: name, description and JSON schema advertised by
   an adapter in ``tools/list``. Immutable once registered.

2. **ExecutionResult**: the outcome of one tool call. Either
   ``success=True`` with ``data`` or ``success=False`` with an
   ``AdapterError``. Adapters return it instead of raising, and the
   registry normalizes anything they do raise into one.

3. **AdapterContext / ToolExecutionContext**: the explicit logger and
   configuration handed to every lifecycle and execute call.

Data Flow:
    tools/call → AdapterRegistry.execute_tool → ToolAdapter.execute
                                 ↓
                          ExecutionResult
                                 ↓
              MCPServer → content block or JSON-RPC error

Example:
    result = ExecutionResult.fail(
        ErrorCode.NOT_FOUND,
        "No index found for this repository",
        suggestion="Run the indexing step first",
    )

Author: dev-agent Team
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Union

from ..constants import ErrorCode

if TYPE_CHECKING:
    from ..config import Config


@dataclass(frozen=True)
class ToolDefinition:
    """
    Description of a callable tool as advertised to the client.

    Attributes:
        name: Unique tool name within the registry
        description: Human-readable description shown to the assistant
        input_schema: JSON-schema object describing the arguments
    """

    name: str
    description: str
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_dict(self) -> dict[str, Any]:
        """Wire representation used in tools/list."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": copy.deepcopy(self.input_schema),
        }


@dataclass
class AdapterError:
    """
    Structured failure reported by an adapter or the registry.

    Attributes:
        code: Semantic error code (see constants.ErrorCode)
        message: Human-readable description
        details: Optional machine-readable side data
        suggestion: Optional hint for recovering from the error
        recoverable: Whether retrying can succeed
    """

    code: str
    message: str
    details: Any = None
    suggestion: Optional[str] = None
    recoverable: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            result["details"] = self.details
        if self.suggestion:
            result["suggestion"] = self.suggestion
        result["recoverable"] = self.recoverable
        return result


@dataclass
class ExecutionResult:
    """
    Outcome of a single tool execution.

    Attributes:
        success: True when ``data`` holds the tool output
        data: Tool output (string or JSON-serializable value)
        error: Failure description when ``success`` is False
        metadata: Response metadata (duration_ms, tokens, ...)
    """

    success: bool
    data: Any = None
    error: Optional[AdapterError] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None, **metadata: Any) -> "ExecutionResult":
        """Build a successful result."""
        return cls(success=True, data=data, metadata=dict(metadata))

    @classmethod
    def fail(
        cls,
        code: Union[ErrorCode, str],
        message: str,
        details: Any = None,
        suggestion: Optional[str] = None,
        recoverable: bool = False,
    ) -> "ExecutionResult":
        """Build a failed result."""
        code_value = code.value if isinstance(code, ErrorCode) else str(code)
        return cls(
            success=False,
            error=AdapterError(
                code=code_value,
                message=message,
                details=details,
                suggestion=suggestion,
                recoverable=recoverable,
            ),
        )

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.success:
            result["data"] = self.data
        elif self.error is not None:
            result["error"] = self.error.to_dict()
        if self.metadata:
            result["metadata"] = self.metadata
        return result


@dataclass
class ValidationResult:
    """Outcome of validating tool arguments against a schema."""

    valid: bool
    error: Optional[str] = None
    details: Optional[list[dict[str, str]]] = None


@dataclass
class AdapterContext:
    """
    Explicit context passed to adapter lifecycle calls.

    Attributes:
        logger: Logger the adapter should write to
        config: Effective server configuration
    """

    logger: logging.Logger
    config: "Config"


@dataclass
class ToolExecutionContext(AdapterContext):
    """Context for a single tool call."""

    request_id: Optional[Union[str, int]] = None
