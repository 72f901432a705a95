"""
Tests for the configuration module.

Tests cover:
- Defaults for every sub-config
- Field validation
- Environment variable loading
- Global config management functions

Author: dev-agent Team
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from devagent.config import (
    Config,
    RateLimitConfig,
    RegistryConfig,
    ServerConfig,
    get_config,
    reset_config,
    set_config,
)


class TestRateLimitConfig:
    """Tests for RateLimitConfig."""

    def test_default_values(self):
        """Test default bucket parameters."""
        config = RateLimitConfig()

        assert config.capacity == 100
        assert config.refill_rate == 10.0

    @pytest.mark.parametrize("field", ["capacity", "refill_rate"])
    def test_rejects_non_positive(self, field):
        """Test zero is not a valid capacity or rate."""
        with pytest.raises(ValidationError):
            RateLimitConfig(**{field: 0})


class TestRegistryConfig:
    """Tests for RegistryConfig."""

    def test_default_values(self):
        """Test defaults."""
        config = RegistryConfig()

        assert config.enable_rate_limiting is True
        assert config.tool_limits == {}
        assert config.tool_timeout_seconds == 120.0

    def test_timeout_can_be_disabled(self):
        """Test None disables the deadline."""
        assert RegistryConfig(tool_timeout_seconds=None).tool_timeout_seconds is None

    def test_negative_timeout_rejected(self):
        """Test the deadline must be positive."""
        with pytest.raises(ValidationError):
            RegistryConfig(tool_timeout_seconds=-1)


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_default_values(self):
        """Test defaults."""
        config = ServerConfig()

        assert config.name == "dev-agent"
        assert config.version == "0.1.4"
        assert config.max_concurrency is None
        assert config.shutdown_grace_seconds == 5.0

    def test_zero_concurrency_rejected(self):
        """Test max_concurrency must be at least 1."""
        with pytest.raises(ValidationError):
            ServerConfig(max_concurrency=0)


class TestConfig:
    """Tests for the main Config."""

    def test_derived_paths(self, tmp_path):
        """Test storage-relative paths."""
        config = Config(storage_path=tmp_path)

        assert config.vector_store_path == tmp_path / "vectors"
        assert config.github_state_path == tmp_path / "github-state.json"
        assert config.log_dir == tmp_path / "logs"

    def test_load_default(self):
        """Test load_default uses the working directory."""
        assert Config.load_default().repository_path == Path.cwd()


class TestConfigFromEnv:
    """Tests for Config.from_env."""

    def test_empty_environment(self):
        """Test an empty environment gives defaults."""
        config = Config.from_env({})

        assert config.repository_path == Path.cwd()
        assert config.log_level == "INFO"

    def test_workspace_takes_precedence(self):
        """Test WORKSPACE_FOLDER_PATHS wins over REPOSITORY_PATH."""
        config = Config.from_env({
            "WORKSPACE_FOLDER_PATHS": "/work/app",
            "REPOSITORY_PATH": "/other",
        })

        assert config.repository_path == Path("/work/app")

    def test_repository_path(self):
        """Test REPOSITORY_PATH is used when no workspace is set."""
        assert Config.from_env({"REPOSITORY_PATH": "/repo"}).repository_path == Path("/repo")

    def test_rate_limit_and_log_level(self):
        """Test numeric variables are parsed."""
        config = Config.from_env({
            "DEV_AGENT_RATE_LIMIT_CAPACITY": "20",
            "DEV_AGENT_RATE_LIMIT_REFILL_RATE": "2.5",
            "LOG_LEVEL": "debug",
        })

        assert config.registry.rate_limit.capacity == 20
        assert config.registry.rate_limit.refill_rate == 2.5
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("value", ["0", "none", ""])
    def test_timeout_disabled(self, value):
        """Test DEV_AGENT_TOOL_TIMEOUT can turn the deadline off."""
        config = Config.from_env({"DEV_AGENT_TOOL_TIMEOUT": value})

        assert config.registry.tool_timeout_seconds is None

    def test_timeout_value(self):
        """Test DEV_AGENT_TOOL_TIMEOUT sets the deadline."""
        config = Config.from_env({"DEV_AGENT_TOOL_TIMEOUT": "30"})

        assert config.registry.tool_timeout_seconds == 30.0

    def test_invalid_value_raises(self):
        """Test malformed numbers are rejected."""
        with pytest.raises(ValidationError):
            Config.from_env({"DEV_AGENT_RATE_LIMIT_CAPACITY": "lots"})


class TestGlobalConfig:
    """Tests for get_config/set_config/reset_config."""

    def test_set_and_get(self, tmp_path):
        """Test set_config replaces the global instance."""
        config = Config(repository_path=tmp_path)

        set_config(config)

        assert get_config() is config

    def test_get_creates_from_environment(self, monkeypatch, tmp_path):
        """Test get_config reads the environment on first use."""
        monkeypatch.setenv("REPOSITORY_PATH", str(tmp_path))
        monkeypatch.delenv("WORKSPACE_FOLDER_PATHS", raising=False)

        assert get_config().repository_path == tmp_path

    def test_reset(self, tmp_path):
        """Test reset_config drops the global instance."""
        config = Config(repository_path=tmp_path)
        set_config(config)

        reset_config()

        assert get_config() is not config
