"""Base adapter interface for tools exposed over MCP."""

from abc import ABC, abstractmethod
from typing import Any

from ..models.tool import (
    AdapterContext,
    ExecutionResult,
    ToolDefinition,
    ToolExecutionContext,
)


class ToolAdapter(ABC):
    """Abstract base class for tool adapters.

    An adapter wraps one capability (search, GitHub context, repository
    map, ...) behind a uniform surface. The registry only ever calls
    these four methods:

        get_tool_definition()  -> ToolDefinition
        initialize(context)    -> None   (optional)
        execute(args, context) -> ExecutionResult
        shutdown()             -> None   (optional)
    """

    @abstractmethod
    def get_tool_definition(self) -> ToolDefinition:
        """Name, description and input schema advertised in tools/list."""
        pass

    async def initialize(self, context: AdapterContext) -> None:
        """Prepare the adapter before the server starts taking calls."""
        pass

    @abstractmethod
    async def execute(
        self, args: dict[str, Any], context: ToolExecutionContext
    ) -> ExecutionResult:
        """Run the tool with already-validated arguments.

        Args:
            args: Tool arguments from the client
            context: Logger, configuration and request id for this call

        Returns:
            ExecutionResult carrying the tool output or a structured error
        """
        pass

    async def shutdown(self) -> None:
        """Release resources when the server stops."""
        pass

    @property
    def name(self) -> str:
        return self.get_tool_definition().name
