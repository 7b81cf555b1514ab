"""
Command line interface.

Usage:
    validator-rewards calc --plan rewards.yaml --data-dir data --output-dir rewards
    validator-rewards validate-plan --plan rewards.yaml
"""

import argparse
import sys

from loguru import logger
from pydantic import ValidationError

from validator_rewards.config.settings import Settings
from validator_rewards.core.aggregation import RewardsEngine
from validator_rewards.core.exceptions import RewardsError
from validator_rewards.core.plan import load_plan, parse_plan, read_plan_document
from validator_rewards.sources import FileParticipationSource, load_performance_window
from validator_rewards.utils.exporters import publish_report
from validator_rewards.utils.formatters import format_report
from validator_rewards.utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="validator-rewards",
        description="Calculate validator incentive rewards",
    )
    parser.add_argument("--log-level", dest="log_level", help="Log level (default: INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    calc = subparsers.add_parser("calc", help="Calculate rewards and export them")
    calc.add_argument("--plan", dest="plan_path", help="Reward plan document")
    calc.add_argument("--data-dir", dest="data_dir", help="Participation data root")
    calc.add_argument("--output-dir", dest="output_dir", help="Export root directory")
    calc.add_argument("--network", help="Network name, used as export sub-directory")
    calc.add_argument(
        "--provider",
        dest="performance_provider",
        help="Performance provider whose data is used (beaconcha or e2m)",
    )

    validate = subparsers.add_parser("validate-plan", help="Validate a reward plan")
    validate.add_argument("--plan", dest="plan_path", help="Reward plan document")

    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Settings from the environment, overridden by explicit options."""
    overrides = {}
    for name in ("plan_path", "data_dir", "output_dir", "network", "performance_provider", "log_level"):
        value = getattr(args, name, None)
        if value is not None:
            overrides[name] = value
    return Settings(**overrides)


def run_calc(settings: Settings) -> None:
    plan_document = read_plan_document(settings.plan_path)
    plan = parse_plan(plan_document, base_dir=settings.plan_path.parent)
    source = FileParticipationSource(settings.performance_dir, plan)
    window = load_performance_window(settings.state_path)

    report = RewardsEngine(plan, source).run(window)

    target = settings.output_dir / settings.network
    if target.exists():
        logger.warning(f"Replacing existing export at {target}")
    publish_report(report, plan, settings.output_dir, settings.network, plan_document)
    print(format_report(report))


def run_validate_plan(settings: Settings) -> None:
    plan = load_plan(settings.plan_path)
    logger.info(
        f"Plan {settings.plan_path} is valid",
        extra={"mechanics": len(plan.mechanics), "rounds": len(plan.rounds)},
    )
    print(plan.to_json())


COMMANDS = {
    "calc": run_calc,
    "validate-plan": run_validate_plan,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args)
    except ValidationError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return 1

    setup_logging(settings.log_level, settings.log_file)

    try:
        COMMANDS[args.command](settings)
    except RewardsError as exc:
        logger.error(f"{args.command} failed: {exc}")
        return 1
    return 0
