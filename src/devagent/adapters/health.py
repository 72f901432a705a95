"""
Health Check Adapter - the ``dev_health`` tool.

Reports whether the server's dependencies are usable:

- Repository: the configured path exists, is a directory, is a git repo
- Vector storage: the index directory exists and holds data
- GitHub index: the GitHub state file exists and parses (only if present)

Each check yields pass / warn / fail; the overall status is ``unhealthy``
if any check fails, ``degraded`` if any warns, and ``healthy`` otherwise.
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from ..constants import ErrorCode, Suggestion, ToolName
from ..models.tool import (
    AdapterContext,
    ExecutionResult,
    ToolDefinition,
    ToolExecutionContext,
)
from .base import ToolAdapter


class CheckStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


_STATUS_ICONS = {
    HealthStatus.HEALTHY: "✅",
    HealthStatus.DEGRADED: "⚠️",
    HealthStatus.UNHEALTHY: "❌",
}


@dataclass
class CheckResult:
    """Outcome of a single dependency check."""

    status: CheckStatus
    message: str
    details: Optional[dict[str, Any]] = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": self.status.value, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


class HealthAdapter(ToolAdapter):
    """Health and readiness checks for the server and its storage.

    Paths default to the ones in the configuration handed to
    initialize(); explicit constructor arguments take precedence.
    """

    def __init__(
        self,
        repository_path: Optional[Path] = None,
        vector_store_path: Optional[Path] = None,
        github_state_path: Optional[Path] = None,
    ):
        self.repository_path = repository_path
        self.vector_store_path = vector_store_path
        self.github_state_path = github_state_path
        self._start_time = time.monotonic()

    def get_tool_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=ToolName.HEALTH.value,
            description=(
                "Check the health status of the dev-agent MCP server and its "
                "dependencies (vector storage, repository, GitHub index)"
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "verbose": {
                        "type": "boolean",
                        "description": "Include detailed diagnostic information",
                        "default": False,
                    },
                },
            },
        )

    async def initialize(self, context: AdapterContext) -> None:
        config = context.config
        if self.repository_path is None:
            self.repository_path = config.repository_path
        if self.vector_store_path is None:
            self.vector_store_path = config.vector_store_path
        if self.github_state_path is None and config.github_state_path.exists():
            self.github_state_path = config.github_state_path

        context.logger.debug(
            "Health adapter initialized",
            extra={"repository_path": str(self.repository_path)},
        )

    async def execute(
        self, args: dict[str, Any], context: ToolExecutionContext
    ) -> ExecutionResult:
        verbose = args.get("verbose") is True

        try:
            checks = await asyncio.to_thread(self._run_checks, verbose)
        except OSError as exc:
            context.logger.error("Health check failed", extra={"error": str(exc)})
            return ExecutionResult.fail(
                ErrorCode.HEALTH_CHECK_ERROR,
                f"Health check failed: {exc}",
                recoverable=True,
            )

        status = self.overall_status(checks)
        report = {
            "status": status.value,
            "checks": {name: check.to_dict() for name, check in checks.items()},
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_ms": round((time.monotonic() - self._start_time) * 1000),
        }
        report["formatted_report"] = self.format_report(status, checks)
        return ExecutionResult.ok(report)

    @staticmethod
    def overall_status(checks: dict[str, CheckResult]) -> HealthStatus:
        statuses = {check.status for check in checks.values()}
        if CheckStatus.FAIL in statuses:
            return HealthStatus.UNHEALTHY
        if CheckStatus.WARN in statuses:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    @staticmethod
    def format_report(status: HealthStatus, checks: dict[str, CheckResult]) -> str:
        lines = [f"{_STATUS_ICONS[status]} **MCP Server Health: {status.value.upper()}**", ""]
        for name, check in checks.items():
            lines.append(f"- {name}: {check.status.value.upper()} - {check.message}")
        return "\n".join(lines)

    def _run_checks(self, verbose: bool) -> dict[str, CheckResult]:
        checks = {
            "repository": self._check_repository(verbose),
            "vector_storage": self._check_vector_storage(verbose),
        }
        if self.github_state_path is not None:
            checks["github_index"] = self._check_github_index(verbose)
        return checks

    def _check_repository(self, verbose: bool) -> CheckResult:
        path = self.repository_path
        details = {"path": str(path)} if verbose else None

        if path is None or not path.exists():
            return CheckResult(CheckStatus.FAIL, "Repository path does not exist", details)
        if not path.is_dir():
            return CheckResult(CheckStatus.FAIL, "Repository path is not a directory", details)
        if not (path / ".git").exists():
            return CheckResult(
                CheckStatus.WARN, "Repository accessible but not a Git repository", details
            )
        return CheckResult(
            CheckStatus.PASS, "Repository accessible and is a Git repository", details
        )

    def _check_vector_storage(self, verbose: bool) -> CheckResult:
        path = self.vector_store_path
        details = {"path": str(path)} if verbose else None

        if path is None or not path.exists():
            return CheckResult(
                CheckStatus.FAIL,
                f"Vector storage not found. {Suggestion.RUN_INDEX}",
                details,
            )
        if not path.is_dir():
            return CheckResult(CheckStatus.FAIL, "Vector storage path is not a directory", details)

        file_count = sum(1 for _ in path.iterdir())
        if file_count == 0:
            return CheckResult(
                CheckStatus.WARN,
                "Vector storage is empty (repository may not be indexed)",
                details,
            )
        if verbose:
            details = {"path": str(path), "file_count": file_count}
        return CheckResult(
            CheckStatus.PASS, f"Vector storage operational ({file_count} files)", details
        )

    def _check_github_index(self, verbose: bool) -> CheckResult:
        path = self.github_state_path
        details = {"path": str(path)} if verbose else None

        if path is None or not path.exists():
            return CheckResult(CheckStatus.WARN, "GitHub index not found", details)

        try:
            state = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            return CheckResult(CheckStatus.FAIL, f"GitHub state unreadable: {exc}", details)

        repository = state.get("repository") if isinstance(state, dict) else None
        message = f"GitHub index present for {repository}" if repository else "GitHub index present"
        if verbose and isinstance(state, dict):
            details = {"path": str(path), **{
                key: state[key] for key in ("repository", "lastIndexed") if key in state
            }}
        return CheckResult(CheckStatus.PASS, message, details)
