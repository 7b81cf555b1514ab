"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- RewardCalculator instance
- Plan document factory for validation tests
"""

import copy

import pytest

from validator_rewards.core.calculator import RewardCalculator


BASE_PLAN_DOCUMENT = {
    "version": 1,
    "mechanics": [
        {
            "since": "2024-01",
            "criteria": {"min_attestations_per_day": 202, "min_decideds_per_day": 22},
            "tiers": [
                {"max_effective_balance": 30000, "apr_boost": "0.5"},
                {"max_effective_balance": 60000, "apr_boost": "0.3"},
            ],
        },
    ],
    "rounds": [
        {"period": "2024-03", "eth_apr": "0.05", "ssv_eth": "0.01"},
        {"period": "2024-04", "eth_apr": "0.04", "ssv_eth": "0.01"},
    ],
}


@pytest.fixture
def calculator() -> RewardCalculator:
    """
    Create RewardCalculator with the 32 ETH reference balance.

    Returns:
        RewardCalculator: Calculator instance for testing
    """
    return RewardCalculator()


@pytest.fixture
def plan_document():
    """
    Fresh copy of a valid plan document, as parsed from YAML.

    Tests mutate the returned dict to produce invalid plans.
    """
    return copy.deepcopy(BASE_PLAN_DOCUMENT)
