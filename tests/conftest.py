"""
Shared fixtures and test doubles.

Author: dev-agent Team
"""

import asyncio
from pathlib import Path
from typing import Any, Optional

import pytest

from devagent.config import Config, RegistryConfig, reset_config
from devagent.models.tool import (
    AdapterContext,
    ExecutionResult,
    ToolDefinition,
    ToolExecutionContext,
)
from devagent.adapters.base import ToolAdapter
from devagent.logging import get_logger
from devagent.services.transport import Transport


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_reader(*lines: str) -> asyncio.StreamReader:
    """StreamReader holding the given lines followed by end of input."""
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data((line + "\n").encode("utf-8"))
    reader.feed_eof()
    return reader


class MemoryTransport(Transport):
    """In-memory transport: messages are fed by the test, sends are recorded."""

    def __init__(self):
        super().__init__()
        self.sent: list[dict[str, Any]] = []
        self.started = False
        self.stopped = False
        self.fail_on_start: Optional[Exception] = None

    @property
    def is_ready(self) -> bool:
        return self.started and not self.stopped

    async def start(self) -> None:
        if self.fail_on_start is not None:
            raise self.fail_on_start
        self.started = True

    async def stop(self) -> None:
        self.stopped = True
        self._closed.set()

    async def send(self, message: dict[str, Any]) -> None:
        self.sent.append(message)

    async def feed(self, message: dict[str, Any]) -> None:
        await self._deliver(message)

    def close_input(self) -> None:
        self._closed.set()


class GatedStartTransport(MemoryTransport):
    """MemoryTransport whose start() blocks until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def start(self) -> None:
        self.entered.set()
        await self.release.wait()
        await super().start()


class EchoAdapter(ToolAdapter):
    """Returns its arguments; requires a string ``text`` argument."""

    def __init__(self, name: str = "echo"):
        self._name = name
        self.initialized = False
        self.shut_down = False
        self.calls: list[dict[str, Any]] = []

    def get_tool_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self._name,
            description="Echo the given text",
            input_schema={
                "type": "object",
                "properties": {
                    "text": {"type": "string"},
                    "repeat": {"type": "integer", "minimum": 1, "maximum": 5},
                },
                "required": ["text"],
            },
        )

    async def initialize(self, context: AdapterContext) -> None:
        self.initialized = True

    async def execute(self, args: dict[str, Any], context: ToolExecutionContext) -> ExecutionResult:
        self.calls.append(args)
        return ExecutionResult.ok({"echo": args["text"] * args.get("repeat", 1)})


class BrokenInitAdapter(EchoAdapter):
    """Fails during initialize()."""

    async def initialize(self, context: AdapterContext) -> None:
        raise RuntimeError("missing index")


class RaisingAdapter(EchoAdapter):
    """Raises from execute()."""

    async def execute(self, args, context):
        raise RuntimeError("boom")


class SlowAdapter(EchoAdapter):
    """Sleeps for ``delay`` seconds before answering."""

    def __init__(self, name: str = "slow", delay: float = 1.0):
        super().__init__(name)
        self.delay = delay

    async def execute(self, args, context):
        await asyncio.sleep(self.delay)
        return ExecutionResult.ok("done")


class GatedInitAdapter(EchoAdapter):
    """Blocks in initialize() until ``release`` is set."""

    def __init__(self, name: str = "gated"):
        super().__init__(name)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def initialize(self, context: AdapterContext) -> None:
        self.entered.set()
        await self.release.wait()
        self.initialized = True


class BareValueAdapter(EchoAdapter):
    """Returns raw data instead of an ExecutionResult."""

    async def execute(self, args, context):
        return {"raw": True}


@pytest.fixture(autouse=True)
def reset_config_fixture():
    """Reset the global config before and after each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config rooted in a temporary directory."""
    return Config(
        repository_path=tmp_path / "repo",
        storage_path=tmp_path / "storage",
        registry=RegistryConfig(tool_timeout_seconds=5),
    )


@pytest.fixture
def execution_context(config: Config) -> ToolExecutionContext:
    return ToolExecutionContext(logger=get_logger("devagent.tests"), config=config, request_id=1)


@pytest.fixture
def adapter_context(config: Config) -> AdapterContext:
    return AdapterContext(logger=get_logger("devagent.tests"), config=config)
