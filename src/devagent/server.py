"""
MCP Server for dev-agent.

This module implements the Model Context Protocol (MCP) server core that
exposes developer tooling to AI assistants like Claude, Cursor and VS Code.

The MCP Protocol:
    MCP is JSON-RPC 2.0 over newline-delimited stdio. This server:

    1. Negotiates the session via ``initialize``
    2. Advertises registered tools via ``tools/list``
    3. Dispatches ``tools/call`` to the adapter registry
    4. Answers ``resources/*`` and ``prompts/*`` with "not implemented"

Every request gets exactly one response carrying its id; notifications
never get one.

Lifecycle:
    constructed → starting → running → stopping → stopped

Error mapping:
    Adapter failures come back from the registry as ExecutionResults with
    a semantic code (NOT_FOUND, RATE_LIMITED, ...). They are translated to
    numeric JSON-RPC codes here, with ``details`` and ``suggestion`` in the
    error's ``data``.

Usage:
    # Start the server directly
    python -m devagent.server

    # Or via the CLI
    dev-agent-mcp serve

    # Or configured in an MCP client
    {
      "command": "dev-agent-mcp",
      "args": ["serve"]
    }

Author: dev-agent Team
"""

import asyncio
import json
import signal
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from .adapters import AdapterRegistry, ToolAdapter, get_builtin_adapters
from .config import Config, get_config
from .constants import (
    DEFAULT_WIRE_ERROR_CODE,
    FALLBACK_PROTOCOL_VERSION,
    JSONRPC_INTERNAL_ERROR,
    JSONRPC_INVALID_PARAMS,
    JSONRPC_METHOD_NOT_FOUND,
    LOG_PREVIEW_LENGTH,
    UNIMPLEMENTED_METHODS,
    WIRE_ERROR_CODES,
    ErrorMessage,
    NotificationMethod,
    ProtocolMethod,
)
from .logging import (
    get_logger,
    log_operation_end,
    log_operation_start,
    setup_logging,
)
from .models.tool import AdapterContext, ExecutionResult, ToolExecutionContext
from .services.jsonrpc import (
    Message,
    ProtocolError,
    RequestId,
    create_error,
    create_error_response,
    create_response,
    extract_tool_call_params,
    is_request,
)
from .services.response_formatter import ResponseFormatter
from .services.transport import StdioTransport, Transport


# Module logger
logger = get_logger(__name__)


class ServerState(str, Enum):
    """Lifecycle states of the server."""

    CONSTRUCTED = "constructed"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ServerInfo:
    """Static session metadata returned from initialize."""

    name: str
    version: str


# Capability flags advertised in initialize
SERVER_CAPABILITIES = {
    "tools": {"supported": True},
    "resources": {"supported": False},
    "prompts": {"supported": False},
}


def map_error_code(code: Optional[str]) -> int:
    """Map a semantic error code to its JSON-RPC wire code."""
    if code is None:
        return DEFAULT_WIRE_ERROR_CODE
    return WIRE_ERROR_CODES.get(code, DEFAULT_WIRE_ERROR_CODE)


def _preview(message: Any) -> str:
    return json.dumps(message, default=str)[:LOG_PREVIEW_LENGTH]


class MCPServer:
    """
    Protocol orchestrator: ties the transport, codec and registry together.

    Args:
        config: Effective configuration. Defaults to the global config.
        transport: Message transport. Defaults to a StdioTransport.
        adapters: Adapters to register before start().
        registry: Pre-built registry. Defaults to one built from config.
        server_info: Name and version to advertise.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        transport: Optional[Transport] = None,
        adapters: Optional[Iterable[ToolAdapter]] = None,
        registry: Optional[AdapterRegistry] = None,
        server_info: Optional[ServerInfo] = None,
    ):
        self.config = config or get_config()
        self.server_info = server_info or ServerInfo(
            name=self.config.server.name,
            version=self.config.server.version,
        )
        self.registry = registry or AdapterRegistry(self.config.registry)
        self.transport = transport or StdioTransport(
            queue_size=self.config.server.queue_size,
            max_concurrency=self.config.server.max_concurrency,
        )
        self.formatter = ResponseFormatter()
        self.client_protocol_version: Optional[str] = None
        self.client_initialized = False
        self._state = ServerState.CONSTRUCTED
        self._error_replies: set[asyncio.Task] = set()

        if adapters:
            self.registry.register_all(adapters)

    @property
    def state(self) -> ServerState:
        return self._state

    def register_adapter(self, adapter: ToolAdapter) -> None:
        """Register an adapter. Duplicate tool names raise ValueError."""
        self.registry.register(adapter)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Initialize adapters, wire the transport and start reading.

        The state only becomes RUNNING once the transport has started.
        """
        if self._state != ServerState.CONSTRUCTED:
            raise RuntimeError(f"Cannot start server in state {self._state.value}")

        self._state = ServerState.STARTING
        start_time = log_operation_start(
            logger,
            "MCP server startup",
            server_name=self.server_info.name,
            server_version=self.server_info.version,
        )

        context = AdapterContext(logger=logger, config=self.config)
        await self.registry.initialize_all(context)

        if self._state != ServerState.STARTING:
            # stop() ran while adapters were initializing
            log_operation_end(logger, "MCP server startup", start_time, success=False)
            return

        self.transport.on_message(self.handle_message)
        self.transport.on_error(self.handle_error)

        try:
            await self.transport.start()
        except Exception:
            await self.registry.shutdown_all()
            self._state = ServerState.STOPPED
            log_operation_end(logger, "MCP server startup", start_time, success=False)
            raise

        if self._state != ServerState.STARTING:
            await self.transport.stop()
            log_operation_end(logger, "MCP server startup", start_time, success=False)
            return

        self._state = ServerState.RUNNING
        log_operation_end(
            logger, "MCP server startup", start_time, tools=self.registry.get_tool_names()
        )

    async def stop(self) -> None:
        """
        Stop the server. Idempotent.

        In-flight requests get ``shutdown_grace_seconds`` to finish before
        adapters are shut down and the transport is closed.
        """
        if self._state in (ServerState.STOPPING, ServerState.STOPPED):
            return

        self._state = ServerState.STOPPING
        logger.info("Stopping MCP server")

        grace = self.config.server.shutdown_grace_seconds
        if self.transport.is_ready:
            still_running = await self.transport.drain(timeout=grace)
            if still_running:
                logger.warning(
                    "Abandoning in-flight requests at shutdown",
                    extra={"in_flight": still_running},
                )

        if self._error_replies:
            await asyncio.gather(*self._error_replies, return_exceptions=True)

        await self.registry.shutdown_all()
        await self.transport.stop()

        self._state = ServerState.STOPPED
        logger.info("MCP server stopped")

    async def serve_forever(self) -> None:
        """Start, run until the input stream closes, then stop."""
        await self.start()
        if self._state != ServerState.RUNNING:
            return
        try:
            await self.transport.wait_closed()
        finally:
            await self.stop()

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------

    async def handle_message(self, message: Message) -> None:
        """
        Handle one parsed message from the transport.

        Notifications are logged and never answered. Requests always get
        exactly one response, success or error, keyed by their id.
        """
        logger.debug(
            "Raw message received",
            extra={"is_request": is_request(message), "preview": _preview(message)},
        )

        if not is_request(message):
            self._handle_notification(message)
            return

        request_id: RequestId = message["id"]
        method = message.get("method")
        logger.info("Received request", extra={"method": method, "request_id": request_id})

        try:
            result = await self.route_request(message)
            response = create_response(request_id, result)
        except ProtocolError as exc:
            logger.error(
                "Request handling failed",
                extra={"method": method, "request_id": request_id, "error": exc.message},
            )
            response = create_error_response(request_id, exc)
        except Exception as exc:
            logger.exception(
                "Unexpected error handling request",
                extra={"method": method, "request_id": request_id},
            )
            response = create_error_response(
                request_id, create_error(JSONRPC_INTERNAL_ERROR, str(exc) or "Internal error")
            )

        logger.debug(
            "Sending response",
            extra={"method": method, "request_id": request_id, "preview": _preview(response)},
        )
        await self.transport.send(response)

    def _handle_notification(self, message: Message) -> None:
        method = message.get("method")
        logger.info("Received notification", extra={"method": method})

        if method in (
            NotificationMethod.INITIALIZED.value,
            NotificationMethod.NOTIFICATIONS_INITIALIZED.value,
        ):
            self.client_initialized = True
            logger.info("Client initialized successfully")
        else:
            logger.debug("Ignoring unrecognized notification", extra={"method": method})

    def handle_error(self, error: Exception) -> None:
        """
        Handle a transport-level error.

        Malformed messages that still carried an id get an error response
        so the client is not left waiting; everything else is logged.
        """
        logger.error("Transport error", extra={"error": str(error)})

        if isinstance(error, ProtocolError) and error.request_id is not None:
            response = create_error_response(error.request_id, error)
            task = asyncio.get_running_loop().create_task(self.transport.send(response))
            self._error_replies.add(task)
            task.add_done_callback(self._error_replies.discard)
            task.add_done_callback(_log_send_failure)

    async def route_request(self, request: Message) -> Any:
        """
        Dispatch a request to its protocol method handler.

        Raises:
            ProtocolError: For unknown or unimplemented methods, malformed
                params and failed tool calls.
        """
        method = request.get("method")
        params = request.get("params")

        if method == ProtocolMethod.INITIALIZE.value:
            return self._handle_initialize(params)

        if method == ProtocolMethod.TOOLS_LIST.value:
            return self._handle_tools_list()

        if method == ProtocolMethod.TOOLS_CALL.value:
            return await self._handle_tools_call(params, request.get("id"))

        if method in UNIMPLEMENTED_METHODS:
            raise create_error(
                JSONRPC_METHOD_NOT_FOUND,
                ErrorMessage.METHOD_NOT_IMPLEMENTED.format(method=method),
            )

        raise create_error(
            JSONRPC_METHOD_NOT_FOUND, ErrorMessage.UNKNOWN_METHOD.format(method=method)
        )

    def _handle_initialize(self, params: Any) -> dict[str, Any]:
        requested = params.get("protocolVersion") if isinstance(params, dict) else None
        self.client_protocol_version = requested or FALLBACK_PROTOCOL_VERSION

        logger.debug(
            "Initialize request",
            extra={"client_protocol_version": self.client_protocol_version},
        )

        return {
            "protocolVersion": self.client_protocol_version,
            "capabilities": SERVER_CAPABILITIES,
            "serverInfo": asdict(self.server_info),
        }

    def _handle_tools_list(self) -> dict[str, Any]:
        return {"tools": [d.to_dict() for d in self.registry.get_tool_definitions()]}

    async def _handle_tools_call(self, params: Any, request_id: Optional[RequestId]) -> dict[str, Any]:
        extracted = extract_tool_call_params(params)
        if extracted is None:
            raise create_error(JSONRPC_INVALID_PARAMS, ErrorMessage.INVALID_TOOL_CALL)
        name, arguments = extracted

        context = ToolExecutionContext(logger=logger, config=self.config, request_id=request_id)
        result = await self.registry.execute_tool(name, arguments, context)

        if not result.success:
            raise self._tool_error(result)

        return self.formatter.format_tool_result(result.data)

    @staticmethod
    def _tool_error(result: ExecutionResult) -> ProtocolError:
        error = result.error
        if error is None:
            return create_error(DEFAULT_WIRE_ERROR_CODE, ErrorMessage.TOOL_FAILED)

        data = {
            key: value
            for key, value in (("details", error.details), ("suggestion", error.suggestion))
            if value is not None
        }
        return create_error(
            map_error_code(error.code),
            error.message or ErrorMessage.TOOL_FAILED,
            data or None,
        )


def _log_send_failure(task: "asyncio.Task[None]") -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.error("Failed to send error response", extra={"error": str(task.exception())})


def create_server(config: Optional[Config] = None) -> MCPServer:
    """Build a server with the built-in adapters registered."""
    config = config or get_config()
    return MCPServer(config=config, adapters=get_builtin_adapters(config))


async def main(config: Optional[Config] = None) -> None:
    """
    Run the MCP server with stdio transport.

    This is the main entry point that:
    1. Configures logging (stderr only, stdout carries the protocol)
    2. Starts the server and serves until stdin closes
    3. Shuts down gracefully on SIGINT/SIGTERM
    """
    config = config or get_config()
    setup_logging(log_level=config.log_level, log_dir=config.log_dir, force=True)

    server = create_server(config)

    loop = asyncio.get_running_loop()
    serve_task = asyncio.ensure_future(server.serve_forever())

    def _request_shutdown() -> None:
        logger.info("Shutdown signal received")
        loop.create_task(server.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_shutdown)
        except (NotImplementedError, RuntimeError):
            # Signal handlers are unavailable on some platforms (Windows)
            pass

    await serve_task


def run_server(config: Optional[Config] = None) -> None:
    """Entry point for running the server."""
    asyncio.run(main(config))


if __name__ == "__main__":
    run_server()
