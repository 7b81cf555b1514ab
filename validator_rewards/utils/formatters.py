"""
Formatting utilities for token amounts and round reports.

Amounts are formatted from their exact decimal value; nothing here goes
through float.
"""

from decimal import ROUND_DOWN, Decimal
from typing import TYPE_CHECKING, Union

from validator_rewards.core.amount import Amount


if TYPE_CHECKING:
    from validator_rewards.core.models import RewardsReport, RoundSummary


def format_token_amount(
    amount: Union[Amount, Decimal, int],
    symbol: str = "SSV",
    decimals: int = 4,
    thousands_separator: str = ",",
) -> str:
    """
    Format a token amount for display, truncated to ``decimals`` places.

    Args:
        amount: Amount to format
        symbol: Token symbol appended after the number
        decimals: Number of fractional digits shown
        thousands_separator: Separator between groups of thousands

    Returns:
        Formatted string with symbol

    Example:
        >>> format_token_amount(Amount.parse("1234.56789"))
        '1,234.5678 SSV'
        >>> format_token_amount(Amount(80), decimals=0, symbol="")
        '80'
    """
    value = amount.value if isinstance(amount, Amount) else Decimal(amount)
    quantum = Decimal(1).scaleb(-decimals)
    truncated = value.quantize(quantum, rounding=ROUND_DOWN)
    formatted = f"{truncated:,f}"
    if thousands_separator != ",":
        formatted = formatted.replace(",", thousands_separator)
    return f"{formatted} {symbol}" if symbol else formatted


def format_wei(wei: int, symbol: str = "SSV", decimals: int = 4) -> str:
    """Format an integer wei amount, e.g. ``format_wei(10**18) == '1.0000 SSV'``."""
    return format_token_amount(Amount.from_wei(wei), symbol=symbol, decimals=decimals)


def format_round_summary(summary: "RoundSummary", symbol: str = "SSV") -> str:
    """
    Format a round summary as a text report.

    Args:
        summary: RoundSummary of a processed round
        symbol: Reward token symbol

    Returns:
        Multi-line formatted report
    """
    lines = [
        f"Round {summary.period}:",
        f"  Validators:      {summary.validators}",
        f"  Effective bal.:  {format_token_amount(summary.total_effective_balance, 'ETH', 2)}",
        f"  Tier:            {summary.tier} ETH",
        f"  Network fee:     {format_token_amount(summary.network_fee, symbol)}",
        f"  Daily reward:    {format_token_amount(summary.daily_reward, symbol, 8)}",
        f"  Monthly reward:  {format_token_amount(summary.monthly_reward, symbol, 8)}",
        f"  Annual reward:   {format_token_amount(summary.annual_reward, symbol, 8)}",
    ]
    return "\n".join(lines)


def format_report(report: "RewardsReport", symbol: str = "SSV") -> str:
    """Multi-line report of every round plus overall totals."""
    sections = [format_round_summary(r.summary, symbol) for r in report.rounds]
    total_reward = sum(
        (t.reward for t in report.total_by_recipient if not t.is_network_fee), Amount.zero()
    )
    total_fee = sum(
        (t.reward for t in report.total_by_recipient if t.is_network_fee), Amount.zero()
    )
    sections.append(
        "\n".join([
            "Totals:",
            f"  Recipients:      {len(report.total_by_recipient)}",
            f"  Rewards:         {format_token_amount(total_reward, symbol)}",
            f"  Network fees:    {format_token_amount(total_fee, symbol)}",
        ])
    )
    return "\n\n".join(sections)
