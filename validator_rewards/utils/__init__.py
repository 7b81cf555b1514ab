"""Formatting, export and logging utilities."""

from validator_rewards.utils.exporters import export_report, export_round, publish_report
from validator_rewards.utils.formatters import (
    format_report,
    format_round_summary,
    format_token_amount,
    format_wei,
)
from validator_rewards.utils.logging import setup_logging

__all__ = [
    "export_report",
    "export_round",
    "publish_report",
    "format_report",
    "format_round_summary",
    "format_token_amount",
    "format_wei",
    "setup_logging",
]
