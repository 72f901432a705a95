"""
Adapter Registry - lifecycle and dispatch for tool adapters.

The registry owns every ToolAdapter, keyed by tool name, and is the only
place tool calls cross into adapter code. A call goes through:

    1. Lookup         unknown name            -> NOT_FOUND
    2. Availability   initialize() had failed -> UNAVAILABLE
    3. Rate limit     bucket exhausted        -> RATE_LIMITED (details.retryAfter)
    4. Validation     schema violation        -> INVALID_PARAMS
    5. Execute        raised / timed out      -> INTERNAL_ERROR / TIMEOUT

Whatever happens, execute_tool() returns an ExecutionResult; adapter
exceptions never escape it.

Example:
    registry = AdapterRegistry(RegistryConfig())
    registry.register(HealthAdapter(config))
    await registry.initialize_all(context)
    result = await registry.execute_tool("dev_health", {}, context)

Author: dev-agent Team
"""

import asyncio
import copy
import time
from dataclasses import asdict, dataclass, replace
from typing import Any, Iterable, Optional

from jsonschema.exceptions import SchemaError
from jsonschema.protocols import Validator

from ..config import RateLimitConfig, RegistryConfig
from ..constants import ErrorCode, ErrorMessage, Suggestion
from ..logging import get_logger
from ..models.tool import (
    AdapterContext,
    ExecutionResult,
    ToolDefinition,
    ToolExecutionContext,
)
from ..services.rate_limiter import Clock, RateLimiter
from .base import ToolAdapter
from .validation import check_arguments, compile_schema, validation_failure


logger = get_logger(__name__)


@dataclass
class ToolStats:
    """Invocation counters for one tool."""

    calls: int = 0
    successes: int = 0
    failures: int = 0
    rate_limited: int = 0
    total_duration_ms: float = 0.0


class AdapterRegistry:
    """
    Owns the registered tool adapters and dispatches calls to them.

    Args:
        config: Registry configuration (rate limits, execution deadline).
        clock: Time source for the rate limiter, mainly for tests.
    """

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or RegistryConfig()
        self._adapters: dict[str, ToolAdapter] = {}
        self._definitions: dict[str, ToolDefinition] = {}
        self._validators: dict[str, Optional[Validator]] = {}
        self._unavailable: dict[str, str] = {}
        self._stats: dict[str, ToolStats] = {}

        if self.config.enable_rate_limiting:
            self._rate_limiter: Optional[RateLimiter] = RateLimiter.from_config(
                self.config.rate_limit,
                self.config.tool_limits,
                clock=clock,
            )
        else:
            self._rate_limiter = None

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, adapter: ToolAdapter) -> None:
        """
        Register an adapter under its tool name.

        Raises:
            ValueError: If an adapter with the same tool name is already
                registered, or its input schema is not a valid JSON schema.
        """
        definition = adapter.get_tool_definition()
        tool_name = definition.name

        if tool_name in self._adapters:
            raise ValueError(ErrorMessage.TOOL_ALREADY_REGISTERED.format(tool_name=tool_name))

        # The registry keeps its own copy of the schema
        definition = replace(definition, input_schema=copy.deepcopy(definition.input_schema))

        try:
            validator = compile_schema(definition.input_schema)
        except SchemaError as exc:
            raise ValueError(
                ErrorMessage.INVALID_INPUT_SCHEMA.format(tool_name=tool_name, error=exc.message)
            ) from exc

        self._validators[tool_name] = validator
        self._adapters[tool_name] = adapter
        self._definitions[tool_name] = definition
        self._stats[tool_name] = ToolStats()
        logger.debug("Adapter registered", extra={"tool_name": tool_name})

    def register_all(self, adapters: Iterable[ToolAdapter]) -> None:
        for adapter in adapters:
            self.register(adapter)

    async def unregister(self, tool_name: str) -> None:
        """Shut down and remove an adapter. Unknown names are ignored."""
        adapter = self._adapters.pop(tool_name, None)
        if adapter is None:
            return

        self._definitions.pop(tool_name, None)
        self._validators.pop(tool_name, None)
        self._unavailable.pop(tool_name, None)
        self._stats.pop(tool_name, None)
        await self._shutdown_one(tool_name, adapter)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize_all(self, context: AdapterContext) -> None:
        """
        Initialize every adapter concurrently.

        An adapter whose initialize() raises is logged and marked
        unavailable; the others still start.
        """
        names = list(self._adapters)
        outcomes = await asyncio.gather(
            *(self._adapters[name].initialize(context) for name in names),
            return_exceptions=True,
        )

        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                self._unavailable[name] = str(outcome)
                logger.error(
                    "Adapter initialization failed",
                    extra={"tool_name": name, "error": str(outcome)},
                )

        logger.info(
            "Adapters initialized",
            extra={
                "available": len(names) - len(self._unavailable),
                "unavailable": len(self._unavailable),
            },
        )

    async def shutdown_all(self) -> None:
        """Shut down every adapter. One failure does not stop the rest."""
        adapters = list(self._adapters.items())
        await asyncio.gather(
            *(self._shutdown_one(name, adapter) for name, adapter in adapters)
        )
        self._adapters.clear()
        self._definitions.clear()
        self._validators.clear()
        self._unavailable.clear()

    async def _shutdown_one(self, tool_name: str, adapter: ToolAdapter) -> None:
        try:
            await adapter.shutdown()
        except Exception as exc:
            logger.error(
                "Adapter shutdown failed",
                extra={"tool_name": tool_name, "error": str(exc)},
            )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_tool_definitions(self) -> list[ToolDefinition]:
        """All registered tool definitions, in registration order."""
        return list(self._definitions.values())

    def get_adapter(self, tool_name: str) -> Optional[ToolAdapter]:
        return self._adapters.get(tool_name)

    def get_tool_names(self) -> list[str]:
        return list(self._adapters)

    def has_tool(self, tool_name: str) -> bool:
        return tool_name in self._adapters

    def is_available(self, tool_name: str) -> bool:
        return tool_name in self._adapters and tool_name not in self._unavailable

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute_tool(
        self,
        tool_name: str,
        args: dict[str, Any],
        context: ToolExecutionContext,
    ) -> ExecutionResult:
        """
        Validate, rate-limit and run a tool.

        Args:
            tool_name: Registered tool name
            args: Arguments from the client
            context: Per-call logger, configuration and request id

        Returns:
            The adapter's ExecutionResult, or a failed result describing
            why the adapter was not (successfully) invoked.
        """
        adapter = self._adapters.get(tool_name)
        if adapter is None:
            return ExecutionResult.fail(
                ErrorCode.NOT_FOUND,
                ErrorMessage.TOOL_NOT_FOUND.format(tool_name=tool_name),
                suggestion=Suggestion.LIST_TOOLS,
            )

        stats = self._stats[tool_name]
        stats.calls += 1

        if tool_name in self._unavailable:
            stats.failures += 1
            return ExecutionResult.fail(
                ErrorCode.UNAVAILABLE,
                ErrorMessage.TOOL_UNAVAILABLE.format(tool_name=tool_name),
                details={"reason": self._unavailable[tool_name]},
                suggestion=Suggestion.CHECK_LOGS,
            )

        if self._rate_limiter is not None:
            rate_limit = self._rate_limiter.check(tool_name)
            if not rate_limit.allowed:
                stats.rate_limited += 1
                context.logger.warning(
                    "Rate limit exceeded",
                    extra={"tool_name": tool_name, "retry_after": rate_limit.retry_after},
                )
                return ExecutionResult.fail(
                    ErrorCode.RATE_LIMITED,
                    ErrorMessage.RATE_LIMITED.format(
                        tool_name=tool_name, retry_after=rate_limit.retry_after
                    ),
                    details={"retryAfter": rate_limit.retry_after},
                    suggestion=Suggestion.WAIT_RETRY.format(retry_after=rate_limit.retry_after),
                    recoverable=True,
                )

        validation = check_arguments(self._validators[tool_name], args)
        if not validation.valid:
            stats.failures += 1
            return validation_failure(validation)

        start = time.perf_counter()
        result = await self._invoke(tool_name, adapter, args, context)
        duration_ms = round((time.perf_counter() - start) * 1000, 3)

        stats.total_duration_ms += duration_ms
        if result.success:
            stats.successes += 1
            result.metadata.setdefault("duration_ms", duration_ms)
        else:
            stats.failures += 1

        return result

    async def _invoke(
        self,
        tool_name: str,
        adapter: ToolAdapter,
        args: dict[str, Any],
        context: ToolExecutionContext,
    ) -> ExecutionResult:
        timeout = self.config.tool_timeout_seconds
        try:
            if timeout is None:
                outcome = await adapter.execute(args, context)
            else:
                outcome = await asyncio.wait_for(adapter.execute(args, context), timeout)
        except asyncio.TimeoutError:
            context.logger.error(
                "Tool execution timed out",
                extra={"tool_name": tool_name, "timeout_seconds": timeout},
            )
            return ExecutionResult.fail(
                ErrorCode.TIMEOUT,
                ErrorMessage.TOOL_TIMEOUT.format(tool_name=tool_name, timeout=timeout),
                details={"timeoutSeconds": timeout},
                suggestion=Suggestion.NARROW_REQUEST,
                recoverable=True,
            )
        except Exception as exc:
            context.logger.error(
                "Tool execution failed",
                extra={"tool_name": tool_name, "error": str(exc)},
            )
            return ExecutionResult.fail(
                ErrorCode.INTERNAL_ERROR,
                str(exc) or ErrorMessage.TOOL_FAILED,
                suggestion=Suggestion.CHECK_ARGUMENTS,
                recoverable=True,
            )

        if isinstance(outcome, ExecutionResult):
            return outcome

        # Adapters returning bare data are treated as successful
        return ExecutionResult.ok(outcome)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Registry statistics: tool counts plus per-tool invocation counters."""
        return {
            "total_adapters": len(self._adapters),
            "available_adapters": len(self._adapters) - len(self._unavailable),
            "tool_names": self.get_tool_names(),
            "unavailable": sorted(self._unavailable),
            "invocations": {name: asdict(stats) for name, stats in self._stats.items()},
        }

    def get_rate_limit_status(self) -> Optional[dict[str, dict[str, float]]]:
        """Bucket snapshot per tool, or None when rate limiting is off."""
        if self._rate_limiter is None:
            return None
        return self._rate_limiter.get_status()

    def set_rate_limit(self, tool_name: str, limit: RateLimitConfig) -> None:
        if self._rate_limiter is not None:
            self._rate_limiter.set_limit(tool_name, limit)

    def reset_rate_limit(self, tool_name: str) -> None:
        if self._rate_limiter is not None:
            self._rate_limiter.reset(tool_name)

    def reset_all_rate_limits(self) -> None:
        if self._rate_limiter is not None:
            self._rate_limiter.reset_all()
