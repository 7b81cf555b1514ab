"""
Per-entity reward and network fee calculator.

Pure integer arithmetic over wei and Gwei-day quantities, without any
dependency on plan loading, data sources or export code. Results are
reproducible bit for bit: every division truncates and the order of
operations is fixed.
"""

from validator_rewards.constants import VALIDATOR_BALANCE_GWEI
from validator_rewards.core.exceptions import CalculationError
from validator_rewards.core.models import Participation, RewardSplit


class RewardCalculator:
    """
    Gross reward and fee deduction for one entity in one round.

    An entity earns the daily validator reward for every 32 ETH of
    effective balance it kept active per day. The network fee is charged
    on registered effective balance and credited back per registered
    validator day, so a 32 ETH validator registered for the whole round
    owes nothing and only balance above the reference accrues a fee.
    """

    def __init__(self, reference_balance_gwei: int = VALIDATOR_BALANCE_GWEI) -> None:
        if reference_balance_gwei <= 0:
            raise CalculationError("reference balance must be positive")
        self.reference_balance_gwei = reference_balance_gwei

    def calculate_reward_and_fee(
        self,
        active_effective_balance: int,
        registered_effective_balance: int,
        registered_days: int,
        round_days: int,
        daily_reward: int,
        network_fee: int,
    ) -> RewardSplit:
        """
        Calculate net reward and fee deduction.

        Formula:
            unit_base   = reference_balance * round_days
            base_reward = daily_reward * round_days * active_eb // unit_base
            fee_from_eb = network_fee * registered_eb // unit_base
            fee_credit  = network_fee * registered_days // round_days
            fee         = min(base_reward, max(0, fee_from_eb - fee_credit))
            reward      = base_reward - fee

        Args:
            active_effective_balance: Effective balance summed over active days (Gwei-days)
            registered_effective_balance: Effective balance summed over registered days (Gwei-days)
            registered_days: Validator days registered in the round
            round_days: Days in the round
            daily_reward: Daily reward of one reference validator (wei)
            network_fee: Network fee budget of one reference validator for the round (wei)

        Returns:
            RewardSplit(reward, fee_deduction), both non-negative wei

        Raises:
            CalculationError: If round_days is zero or any input is negative

        Example:
            >>> calc = RewardCalculator()
            >>> calc.calculate_reward_and_fee(32 * 10**9 * 31, 32 * 10**9 * 31, 31, 31, 100, 100)
            RewardSplit(reward=3100, fee_deduction=0)
        """
        if round_days == 0:
            raise CalculationError("round days cannot be zero")
        for name, value in (
            ("active_effective_balance", active_effective_balance),
            ("registered_effective_balance", registered_effective_balance),
            ("registered_days", registered_days),
            ("round_days", round_days),
            ("daily_reward", daily_reward),
            ("network_fee", network_fee),
        ):
            if not isinstance(value, int) or isinstance(value, bool):
                raise CalculationError(f"{name} must be an int, got {type(value).__name__}")
            if value < 0:
                raise CalculationError(f"{name} must be non-negative, got {value}")

        unit_base = self.reference_balance_gwei * round_days
        reward_tier = daily_reward * round_days

        base_reward = reward_tier * active_effective_balance // unit_base

        fee_from_eb = network_fee * registered_effective_balance // unit_base
        fee_credit = network_fee * registered_days // round_days
        raw_fee = max(0, fee_from_eb - fee_credit)

        fee = min(base_reward, raw_fee)
        return RewardSplit(reward=base_reward - fee, fee_deduction=fee)

    def apply(
        self,
        participation: Participation,
        round_days: int,
        daily_reward: int,
        network_fee: int,
    ) -> RewardSplit:
        """Calculate and attach reward and fee deduction to a participation record."""
        split = self.calculate_reward_and_fee(
            active_effective_balance=participation.total_active_effective_balance,
            registered_effective_balance=participation.total_registered_effective_balance,
            registered_days=participation.registered_days,
            round_days=round_days,
            daily_reward=daily_reward,
            network_fee=network_fee,
        )
        participation.reward = split.reward
        participation.fee_deduction = split.fee_deduction
        return split
