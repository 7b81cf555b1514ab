"""
Type definitions for exported rows.

TypedDict shapes of the CSV rows written by the exporters. Amounts are
rendered as exact decimal strings with 18 fractional digits.
"""

from typing import TypedDict


class ParticipationRowDict(TypedDict):
    """
    Columns shared by every participation row.

    Attributes:
        active_days: Validator days that met the activity criteria
        registered_days: Validator days registered with the network
        total_active_effective_balance: Effective balance over active days (ETH-days)
        total_registered_effective_balance: Effective balance over registered days (ETH-days)
        reward: Net reward after the fee deduction
        fee_deduction: Network fee withheld from the reward
    """
    active_days: int
    registered_days: int
    total_active_effective_balance: str
    total_registered_effective_balance: str
    reward: str
    fee_deduction: str
