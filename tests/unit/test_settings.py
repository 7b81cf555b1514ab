"""
Tests for environment-driven settings.
"""

import importlib
from pathlib import Path

import pytest
from pydantic import ValidationError

from validator_rewards.config import settings as settings_module
from validator_rewards.config.settings import Settings


@pytest.fixture
def clean_env(monkeypatch):
    """Remove REWARDS_* variables set by the test session."""
    for name in ("REWARDS_LOG_FILE", "REWARDS_LOG_LEVEL", "REWARDS_NETWORK"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, clean_env) -> None:
        """Test every field has a default."""
        settings = Settings(_env_file=None)
        assert settings.plan_path == Path("rewards.yaml")
        assert settings.network == "mainnet"
        assert settings.performance_provider == "beaconcha"
        assert settings.log_level == "INFO"
        assert settings.log_file == "logs/rewards.log"

    def test_environment_prefix(self, clean_env) -> None:
        """Test REWARDS_* variables are read."""
        clean_env.setenv("REWARDS_NETWORK", "holesky")
        clean_env.setenv("REWARDS_DATA_DIR", "/srv/data")
        clean_env.setenv("REWARDS_PERFORMANCE_PROVIDER", "E2M")
        settings = Settings(_env_file=None)

        assert settings.network == "holesky"
        assert settings.performance_provider == "e2m"
        assert settings.performance_dir == Path("/srv/data/e2m")
        assert settings.state_path == Path("/srv/data/e2m/state.json")

    def test_unknown_provider(self, clean_env) -> None:
        """Test only supported providers are accepted."""
        with pytest.raises(ValidationError, match="performance provider must be one of"):
            Settings(_env_file=None, performance_provider="etherscan")

    def test_invalid_network(self, clean_env) -> None:
        """Test network names must be usable as directory names."""
        with pytest.raises(ValidationError, match="Invalid network name"):
            Settings(_env_file=None, network="../mainnet")

    def test_log_level_normalized(self, clean_env) -> None:
        """Test log level names are case-insensitive."""
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError, match="log level must be one of"):
            Settings(_env_file=None, log_level="loud")

    def test_empty_log_file_disables_sink(self, clean_env) -> None:
        """Test an empty log file turns file logging off."""
        clean_env.setenv("REWARDS_LOG_FILE", "")
        assert Settings(_env_file=None).log_file is None

    def test_import_does_not_read_environment(self, clean_env) -> None:
        """Test a bad environment only fails once settings are built."""
        clean_env.setenv("REWARDS_PERFORMANCE_PROVIDER", "etherscan")

        module = importlib.reload(settings_module)
        assert not hasattr(module, "settings")
        with pytest.raises(ValidationError):
            module.Settings(_env_file=None)
