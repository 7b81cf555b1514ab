"""Configuration module."""

from validator_rewards.config.settings import Settings

__all__ = ["Settings"]
