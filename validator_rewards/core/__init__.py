"""Core reward arithmetic, plan model and calculator."""

from validator_rewards.core.amount import Amount
from validator_rewards.core.calculator import RewardCalculator
from validator_rewards.core.exceptions import (
    CalculationError,
    ConsistencyError,
    PerformanceDataError,
    PlanValidationError,
    RewardsError,
)
from validator_rewards.core.period import Period
from validator_rewards.core.plan import Plan, load_plan, parse_plan

__all__ = [
    "Amount",
    "Period",
    "Plan",
    "RewardCalculator",
    "load_plan",
    "parse_plan",
    "RewardsError",
    "PlanValidationError",
    "PerformanceDataError",
    "CalculationError",
    "ConsistencyError",
]
