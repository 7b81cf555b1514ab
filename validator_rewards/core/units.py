"""
Unit conversions between ETH, Gwei and wei.

Effective balances arrive in Gwei (or Gwei-days), reward amounts are
settled in wei of the reward token, and plan values (tier bounds, rates,
network fees) are authored in whole display units. Every conversion in
the package goes through one of these functions.
"""

from validator_rewards.constants import WEI_PER_GWEI
from validator_rewards.core.amount import Amount


def eth_to_wei(amount: Amount) -> int:
    """Display units to integer base units, truncated toward zero."""
    return amount.to_wei()


def wei_to_eth(wei: int) -> Amount:
    """Integer base units to an exact display amount."""
    return Amount.from_wei(wei)


def eth_to_gwei(amount: Amount) -> int:
    """Display units to integer Gwei, truncated toward zero."""
    return amount.to_gwei()


def gwei_to_eth(gwei: int) -> Amount:
    """Integer Gwei to an exact display amount."""
    return Amount.from_gwei(gwei)


def gwei_to_wei(gwei: int) -> int:
    return gwei * WEI_PER_GWEI


def wei_to_gwei(wei: int) -> int:
    """Integer base units to Gwei, truncated toward zero."""
    if wei < 0:
        return -(-wei // WEI_PER_GWEI)
    return wei // WEI_PER_GWEI
