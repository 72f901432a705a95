"""
Command Line Interface for dev-agent.

This module provides the CLI for running the MCP server and inspecting
what it would expose. Protocol traffic only flows through ``serve``;
the other commands are for humans at a terminal.

Commands:
    - serve: Run as MCP server over stdio
    - tools: List the tools the server registers
    - config-show: Show the effective configuration

Example Usage:
    $ dev-agent-mcp serve --repository-path ~/projects/app
    $ dev-agent-mcp --log-level DEBUG serve --tool-timeout 30
    $ dev-agent-mcp tools

Author: dev-agent Team
"""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from .adapters import get_builtin_adapters
from .config import RateLimitConfig, get_config, set_config

console = Console()


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Override the LOG_LEVEL environment variable",
)
@click.pass_context
def main(ctx, log_level):
    """dev-agent - developer tooling for AI assistants over MCP.

    \b
    Quick Start:
        # Run the server for the current repository
        dev-agent-mcp serve

        # See what tools a client will get
        dev-agent-mcp tools

    \b
    Integration:
        Configure your MCP client to launch "dev-agent-mcp serve".
        Logs go to stderr; stdout carries the protocol.
    """
    ctx.ensure_object(dict)

    if log_level:
        config = get_config().model_copy(update={"log_level": log_level.upper()})
        set_config(config)


@main.command()
@click.option(
    "--repository-path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Repository the tools operate on (default: current directory)",
)
@click.option(
    "--rate-limit-capacity",
    type=click.FloatRange(min=0, min_open=True),
    help="Token bucket burst size per tool",
)
@click.option(
    "--rate-limit-refill-rate",
    type=click.FloatRange(min=0, min_open=True),
    help="Tokens refilled per second per tool",
)
@click.option(
    "--tool-timeout",
    type=float,
    help="Seconds a tool call may run (0 disables the deadline)",
)
def serve(repository_path, rate_limit_capacity, rate_limit_refill_rate, tool_timeout):
    """Run as MCP server for AI assistant integration.

    Reads JSON-RPC requests from stdin, one per line, and writes
    responses to stdout until stdin closes or the process is
    interrupted.
    """
    from .server import run_server

    config = get_config()
    registry = config.registry

    if rate_limit_capacity is not None or rate_limit_refill_rate is not None:
        rate_limit = RateLimitConfig(
            capacity=(
                rate_limit_capacity
                if rate_limit_capacity is not None
                else registry.rate_limit.capacity
            ),
            refill_rate=(
                rate_limit_refill_rate
                if rate_limit_refill_rate is not None
                else registry.rate_limit.refill_rate
            ),
        )
        registry = registry.model_copy(update={"rate_limit": rate_limit})
    if tool_timeout is not None:
        registry = registry.model_copy(
            update={"tool_timeout_seconds": tool_timeout if tool_timeout > 0 else None}
        )

    updates = {"registry": registry}
    if repository_path is not None:
        updates["repository_path"] = repository_path.resolve()
    config = config.model_copy(update=updates)
    set_config(config)

    # The console is stdout; announcing here would corrupt the protocol stream
    run_server(config)


@main.command()
def tools():
    """List the tools registered by the server."""
    config = get_config()

    table = Table(title="dev-agent Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Arguments", style="dim")

    for adapter in get_builtin_adapters(config):
        definition = adapter.get_tool_definition()
        properties = definition.input_schema.get("properties", {})
        table.add_row(
            definition.name,
            definition.description,
            ", ".join(properties) or "-",
        )

    console.print(table)


@main.command("config-show")
def config_show():
    """Show current configuration as JSON."""
    config = get_config()

    payload = config.model_dump(mode="json")
    payload["vector_store_path"] = str(config.vector_store_path)
    payload["github_state_path"] = str(config.github_state_path)
    payload["log_dir"] = str(config.log_dir)

    console.print_json(json.dumps(payload))


if __name__ == "__main__":
    main()
