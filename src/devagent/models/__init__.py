"""Data models for tool definitions, execution results and contexts."""

from .tool import (
    AdapterContext,
    AdapterError,
    ExecutionResult,
    ToolDefinition,
    ToolExecutionContext,
    ValidationResult,
)

__all__ = [
    "AdapterContext",
    "AdapterError",
    "ExecutionResult",
    "ToolDefinition",
    "ToolExecutionContext",
    "ValidationResult",
]
