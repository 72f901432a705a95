"""
Configuration Module for dev-agent.

This module provides the configuration system for the MCP server core,
including settings for rate limiting, tool execution and the server
session itself.

The configuration follows a hierarchical structure:
    - RateLimitConfig: Token bucket parameters for one tool
    - RegistryConfig: Adapter registry behavior (rate limits, deadlines)
    - ServerConfig: Session metadata and message dispatch policy
    - Config: Main configuration aggregating all sub-configs

Example Usage:
    >>> from devagent.config import get_config, set_config, Config
    >>> config = Config(repository_path=Path("/path/to/repo"))
    >>> set_config(config)
    >>> current_config = get_config()

Author: dev-agent Team
"""

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from .constants import (
    APPLICATION_NAME,
    APPLICATION_VERSION,
    DEFAULT_MESSAGE_QUEUE_SIZE,
    DEFAULT_RATE_LIMIT_CAPACITY,
    DEFAULT_RATE_LIMIT_REFILL_RATE,
    DEFAULT_SHUTDOWN_GRACE_SECONDS,
    DEFAULT_STORAGE_DIRECTORY,
    DEFAULT_TOOL_TIMEOUT_SECONDS,
    GITHUB_STATE_FILE_NAME,
    LOG_DIRECTORY_NAME,
    VECTOR_STORE_DIRECTORY_NAME,
)


class RateLimitConfig(BaseModel):
    """
    Token bucket parameters for a single rate-limited key.

    Attributes:
        capacity: Maximum tokens in the bucket (burst size)
        refill_rate: Tokens added per second (sustained rate)
    """

    capacity: float = Field(
        default=DEFAULT_RATE_LIMIT_CAPACITY,
        gt=0,
        description="Maximum tokens (burst capacity)",
    )
    refill_rate: float = Field(
        default=DEFAULT_RATE_LIMIT_REFILL_RATE,
        gt=0,
        description="Tokens refilled per second",
    )


class RegistryConfig(BaseModel):
    """
    Configuration for the adapter registry.

    Attributes:
        enable_rate_limiting: Whether tool calls pass through the rate limiter
        rate_limit: Default bucket parameters for every tool
        tool_limits: Per-tool overrides of the default bucket
        tool_timeout_seconds: Deadline for a single execute() call, None disables it
    """

    enable_rate_limiting: bool = Field(
        default=True,
        description="Enable per-tool rate limiting",
    )
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    tool_limits: dict[str, RateLimitConfig] = Field(
        default_factory=dict,
        description="Per-tool rate limit overrides keyed by tool name",
    )
    tool_timeout_seconds: Optional[float] = Field(
        default=DEFAULT_TOOL_TIMEOUT_SECONDS,
        gt=0,
        description="Deadline for a single tool execution (None = no deadline)",
    )


class ServerConfig(BaseModel):
    """Session metadata and message dispatch policy."""

    name: str = Field(default=APPLICATION_NAME, description="Advertised server name")
    version: str = Field(default=APPLICATION_VERSION, description="Advertised server version")
    queue_size: int = Field(
        default=DEFAULT_MESSAGE_QUEUE_SIZE,
        ge=1,
        description="Maximum parsed messages buffered between reader and dispatcher",
    )
    max_concurrency: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum requests handled at once (None = unbounded, 1 = serialized)",
    )
    shutdown_grace_seconds: float = Field(
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        ge=0,
        description="How long stop() waits for in-flight requests",
    )


class Config(BaseModel):
    """
    Main configuration for dev-agent.

    Attributes:
        repository_path: Repository the tools operate on
        storage_path: Root directory for indexes, state and logs
        log_level: Logging level name
        server: Session and dispatch configuration
        registry: Adapter registry configuration

    Example:
        >>> config = Config(
        ...     repository_path=Path("/path/to/repo"),
        ...     registry=RegistryConfig(
        ...         rate_limit=RateLimitConfig(capacity=20, refill_rate=2),
        ...     ),
        ... )
    """

    repository_path: Path = Field(
        default_factory=Path.cwd,
        description="Repository the tools operate on",
    )
    storage_path: Path = Field(
        default=DEFAULT_STORAGE_DIRECTORY,
        description="Directory for indexes, state files and logs",
    )
    log_level: str = Field(default="INFO", description="Logging level")

    server: ServerConfig = Field(default_factory=ServerConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)

    @property
    def vector_store_path(self) -> Path:
        """Directory holding the vector index."""
        return self.storage_path / VECTOR_STORE_DIRECTORY_NAME

    @property
    def github_state_path(self) -> Path:
        """State file written by the GitHub indexer."""
        return self.storage_path / GITHUB_STATE_FILE_NAME

    @property
    def log_dir(self) -> Path:
        """Directory for log files."""
        return self.storage_path / LOG_DIRECTORY_NAME

    @classmethod
    def load_default(cls) -> "Config":
        """
        Load default configuration.

        Returns:
            Config instance with default values
        """
        return cls()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Build configuration from environment variables.

        Repository detection priority:
            1. WORKSPACE_FOLDER_PATHS (set dynamically by some editors)
            2. REPOSITORY_PATH
            3. Current working directory

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Returns:
            Config instance

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ

        repository = env.get("WORKSPACE_FOLDER_PATHS") or env.get("REPOSITORY_PATH")
        values: dict = {}
        if repository:
            values["repository_path"] = Path(repository)
        if env.get("DEV_AGENT_STORAGE_PATH"):
            values["storage_path"] = Path(env["DEV_AGENT_STORAGE_PATH"]).expanduser()
        if env.get("LOG_LEVEL"):
            values["log_level"] = env["LOG_LEVEL"].upper()

        rate_limit: dict = {}
        if env.get("DEV_AGENT_RATE_LIMIT_CAPACITY"):
            rate_limit["capacity"] = env["DEV_AGENT_RATE_LIMIT_CAPACITY"]
        if env.get("DEV_AGENT_RATE_LIMIT_REFILL_RATE"):
            rate_limit["refill_rate"] = env["DEV_AGENT_RATE_LIMIT_REFILL_RATE"]

        registry: dict = {}
        if rate_limit:
            registry["rate_limit"] = RateLimitConfig(**rate_limit)
        timeout = env.get("DEV_AGENT_TOOL_TIMEOUT")
        if timeout is not None:
            registry["tool_timeout_seconds"] = (
                None if timeout.strip().lower() in ("", "0", "none") else timeout
            )
        if registry:
            values["registry"] = RegistryConfig(**registry)

        return cls(**values)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance.

    Creates a configuration from the environment if none has been set.

    Returns:
        Current global Config instance
    """
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def set_config(config: Config) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Config instance to use globally
    """
    global _config
    _config = config


def reset_config() -> None:
    """
    Reset the global configuration to None.

    Useful for testing or reinitializing configuration.
    """
    global _config
    _config = None
