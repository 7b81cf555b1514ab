"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

import re
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from validator_rewards.constants import PERFORMANCE_PROVIDERS


LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
NETWORK_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class Settings(BaseSettings):
    """Rewards calculator settings loaded from REWARDS_* environment variables."""

    # Inputs
    plan_path: Path = Field(default=Path("rewards.yaml"), description="Reward plan document")
    data_dir: Path = Field(default=Path("data"), description="Participation data root")
    performance_provider: str = "beaconcha"

    # Outputs
    output_dir: Path = Path("rewards")
    network: str = "mainnet"

    # Logging
    log_level: str = "INFO"
    log_file: str | None = "logs/rewards.log"  # Empty disables the file sink

    model_config = SettingsConfigDict(
        env_prefix="REWARDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("performance_provider")
    @classmethod
    def validate_performance_provider(cls, v: str) -> str:
        """Validate performance provider name."""
        v = v.strip().lower()
        if v not in PERFORMANCE_PROVIDERS:
            raise ValueError(
                f"performance provider must be one of {', '.join(PERFORMANCE_PROVIDERS)}, got {v!r}"
            )
        return v

    @field_validator("network")
    @classmethod
    def validate_network(cls, v: str) -> str:
        """Network name doubles as the export directory name."""
        v = v.strip()
        if not NETWORK_PATTERN.match(v):
            raise ValueError(f"Invalid network name: {v!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}, got {v!r}")
        return v

    @field_validator("log_file")
    @classmethod
    def empty_log_file_as_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def performance_dir(self) -> Path:
        """Directory holding the selected provider's participation exports."""
        return self.data_dir / self.performance_provider

    @property
    def state_path(self) -> Path:
        return self.performance_dir / "state.json"
