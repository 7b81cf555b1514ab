"""
SSV Validator Rewards Calculator.

Computes monthly incentive rewards for validators, their owners and
reward recipients from a versioned reward plan and per-period
participation data.

Example:
    >>> from validator_rewards import RewardsEngine, InMemoryParticipationSource, load_plan
    >>>
    >>> plan = load_plan("rewards.yaml")
    >>> engine = RewardsEngine(plan, InMemoryParticipationSource(validators={...}))
    >>> report = engine.run(PerformanceWindow(earliest=..., latest=...))
    >>> report.cumulative_rewards()
    {'0x...': 1234567890000000000}
"""

from validator_rewards.core import (
    Amount,
    CalculationError,
    ConsistencyError,
    PerformanceDataError,
    Period,
    Plan,
    PlanValidationError,
    RewardCalculator,
    RewardsError,
    load_plan,
    parse_plan,
)
from validator_rewards.core.aggregation import ParticipationTotals, RewardsEngine
from validator_rewards.core.models import (
    Mechanics,
    OwnerParticipation,
    ParticipationTotal,
    PerformanceWindow,
    RecipientParticipation,
    RewardRates,
    RewardsReport,
    RewardSplit,
    Round,
    RoundResult,
    Tier,
    ValidatorParticipation,
)
from validator_rewards.sources import (
    FileParticipationSource,
    InMemoryParticipationSource,
    ParticipationSource,
    load_performance_window,
)


__version__ = "1.0.0"
__all__ = [
    # Core
    "Amount",
    "Period",
    "Plan",
    "RewardCalculator",
    "RewardsEngine",
    "ParticipationTotals",
    "load_plan",
    "parse_plan",
    # Models
    "Mechanics",
    "Tier",
    "Round",
    "ValidatorParticipation",
    "OwnerParticipation",
    "RecipientParticipation",
    "ParticipationTotal",
    "PerformanceWindow",
    "RewardRates",
    "RewardSplit",
    "RoundResult",
    "RewardsReport",
    # Sources
    "ParticipationSource",
    "InMemoryParticipationSource",
    "FileParticipationSource",
    "load_performance_window",
    # Errors
    "RewardsError",
    "PlanValidationError",
    "PerformanceDataError",
    "CalculationError",
    "ConsistencyError",
]
