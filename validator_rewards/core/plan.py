"""
Reward plan: versioned mechanics, tier schedules and monthly rounds.

The plan is parsed from a YAML (or JSON) document, validated as a unit and
immutable afterwards. It resolves the tier and per-validator reward rates
for a period.
"""

import csv
import json
from pathlib import Path

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from validator_rewards.constants import MONTHS_PER_YEAR, VALIDATOR_BALANCE_ETH
from validator_rewards.core.amount import Amount
from validator_rewards.core.exceptions import CalculationError, PlanValidationError
from validator_rewards.core.models import Mechanics, RewardRates, Round, Tier
from validator_rewards.core.period import Period
from validator_rewards.core.units import eth_to_wei, gwei_to_eth
from validator_rewards.validators import (
    validate_execution_address,
    validate_public_key,
)


class Plan(BaseModel):
    """Top-level reward plan document."""

    model_config = ConfigDict(frozen=True)

    version: int = 1
    mechanics: list[Mechanics] = Field(default_factory=list)
    rounds: list[Round] = Field(default_factory=list)

    def validate_plan(self) -> None:
        """
        Check structural invariants of the plan.

        Raises:
            PlanValidationError: On the first violated invariant
        """
        self._validate_mechanics()
        self._validate_rounds()

    def _validate_mechanics(self) -> None:
        if not self.mechanics:
            raise PlanValidationError("missing mechanics")
        for mechanics in self.mechanics:
            if mechanics.since is None:
                raise PlanValidationError("zero period in mechanics")
        if not _is_sorted([m.since for m in self.mechanics]):
            raise PlanValidationError("mechanics are not sorted by period")
        for prev, curr in zip(self.mechanics, self.mechanics[1:]):
            if prev.since == curr.since:
                raise PlanValidationError(f"duplicate mechanics: {curr.since}")

        for mechanics in self.mechanics:
            since = mechanics.since
            if mechanics.criteria is None:
                raise PlanValidationError(f"missing criteria in mechanics {since}")

            invalid = mechanics.invalid_features()
            if invalid:
                raise PlanValidationError(
                    f"failed to validate features: invalid feature: {invalid[0]}"
                )

            tiers = mechanics.tiers
            if not tiers:
                raise PlanValidationError(f"missing tiers in mechanics {since}")
            bounds = [tier.max_effective_balance for tier in tiers]
            if not _is_sorted(bounds):
                raise PlanValidationError(
                    f"tiers are not sorted by max effective balance in mechanics {since}"
                )
            if bounds[0] <= 0:
                raise PlanValidationError(
                    f"max effective balance must be positive in mechanics {since}"
                )
            for prev, curr in zip(bounds, bounds[1:]):
                if prev == curr:
                    raise PlanValidationError(f"duplicate tier: {curr} in mechanics {since}")

            if mechanics.owner_redirects and mechanics.owner_redirects_file:
                raise PlanValidationError(
                    "both owner_redirects and owner_redirects_file specified "
                    f"for period {since}"
                )
            if mechanics.validator_redirects and mechanics.validator_redirects_file:
                raise PlanValidationError(
                    "both validator_redirects and validator_redirects_file specified "
                    f"for period {since}"
                )

    def _validate_rounds(self) -> None:
        if not self.rounds:
            raise PlanValidationError("missing rounds")
        for round_ in self.rounds:
            if round_.period is None:
                raise PlanValidationError("zero period in rounds")
        if not _is_sorted([r.period for r in self.rounds]):
            raise PlanValidationError("rounds are not sorted by period")
        for prev, curr in zip(self.rounds, self.rounds[1:]):
            if prev.period == curr.period:
                raise PlanValidationError(f"duplicate round: {curr.period}")
        for round_ in self.rounds:
            if round_.network_fee.is_negative():
                raise PlanValidationError(f"negative network fee in round {round_.period}")

    def mechanics_at(self, period: Period) -> Mechanics:
        """
        Mechanics in effect for a period.

        Returns the last mechanics whose ``since`` is not after the period.

        Raises:
            PlanValidationError: If the mechanics list is not sorted
            CalculationError: If no mechanics apply to the period
        """
        if not _is_sorted([m.since for m in self.mechanics]):
            raise PlanValidationError("mechanics list is not sorted")
        selection = None
        for mechanics in self.mechanics:
            if mechanics.since <= period:
                selection = mechanics
        if selection is None:
            raise CalculationError(f"mechanics not found for period {period}")
        return selection

    def round_at(self, period: Period) -> Round:
        for round_ in self.rounds:
            if round_.period == period:
                return round_
        raise CalculationError(f"period not found: {period}")

    def tier(self, period: Period, total_effective_balance_gwei: int) -> Tier:
        """
        Resolve the reward tier for a period.

        Args:
            period: Round period
            total_effective_balance_gwei: Network effective balance, Gwei

        Returns:
            First tier whose bound (ETH) covers the balance

        Raises:
            CalculationError: If the balance is not positive or exceeds the
                highest tier
        """
        if total_effective_balance_gwei <= 0:
            raise CalculationError("total effective balance must be positive")
        try:
            mechanics = self.mechanics_at(period)
        except CalculationError as exc:
            raise CalculationError(f"failed to get mechanics: {exc}") from exc
        bounds = [tier.max_effective_balance for tier in mechanics.tiers]
        if not _is_sorted(bounds):
            raise PlanValidationError(f"tiers aren't sorted in mechanics {mechanics.since}")

        total_effective_balance = gwei_to_eth(total_effective_balance_gwei)
        for tier in mechanics.tiers:
            if total_effective_balance <= tier.max_effective_balance:
                return tier
        raise CalculationError(
            f"total effective balance {total_effective_balance} ETH exceeds "
            f"highest tier ({bounds[-1]}) in period {period}"
        )

    def validator_rewards(
        self, period: Period, total_effective_balance_gwei: int
    ) -> RewardRates:
        """
        Per-validator reward rates for a period.

        Formula:
            annual  = 32 * eth_apr / ssv_eth * apr_boost
            monthly = annual / 12
            daily   = monthly / days in period

        All steps stay in Amount precision; conversion to wei happens last.
        """
        try:
            tier = self.tier(period, total_effective_balance_gwei)
        except CalculationError as exc:
            raise CalculationError(f"failed to determine tier: {exc}") from exc
        round_ = self.round_at(period)

        annual = Amount(VALIDATOR_BALANCE_ETH) * round_.eth_apr
        annual = annual / round_.ssv_eth
        annual = annual * tier.apr_boost
        monthly = annual / MONTHS_PER_YEAR
        daily = monthly / period.days()

        return RewardRates(
            daily=eth_to_wei(daily),
            monthly=eth_to_wei(monthly),
            annual=eth_to_wei(annual),
        )

    def to_json(self) -> str:
        """Normalized plan as indented JSON, amounts as decimal strings."""
        return json.dumps(self.model_dump(mode="json"), indent=2)


def _is_sorted(values: list) -> bool:
    return all(a <= b for a, b in zip(values, values[1:]))


def parse_plan(data: str | bytes, base_dir: Path | None = None) -> Plan:
    """
    Parse and validate a reward plan document.

    Args:
        data: YAML (or JSON) document
        base_dir: Directory that redirect CSV paths are relative to

    Returns:
        Validated Plan with redirect files loaded

    Raises:
        PlanValidationError: If the document is malformed or invalid
    """
    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise PlanValidationError(f"failed to parse plan document: {exc}") from exc
    if not isinstance(raw, dict):
        raise PlanValidationError("plan document must be a mapping")

    try:
        plan = Plan.model_validate(raw)
    except ValidationError as exc:
        raise PlanValidationError(f"invalid plan: {exc}") from exc

    plan.validate_plan()
    plan = _load_redirect_files(plan, base_dir or Path.cwd())

    logger.debug(
        "Parsed reward plan",
        extra={
            "version": plan.version,
            "mechanics": len(plan.mechanics),
            "rounds": len(plan.rounds),
        },
    )
    return plan


def read_plan_document(path: Path | str) -> bytes:
    """Raw bytes of a plan file, kept verbatim alongside each export."""
    path = Path(path)
    try:
        return path.read_bytes()
    except OSError as exc:
        raise PlanValidationError(f"failed to read plan {str(path)!r}: {exc}") from exc


def load_plan(path: Path | str) -> Plan:
    """Read and parse a plan file; redirect files resolve next to it."""
    path = Path(path)
    return parse_plan(read_plan_document(path), base_dir=path.parent)


def _load_redirect_files(plan: Plan, base_dir: Path) -> Plan:
    mechanics_list = []
    for mechanics in plan.mechanics:
        update = {}
        if mechanics.owner_redirects_file:
            update["owner_redirects"] = load_redirects_csv(
                base_dir / mechanics.owner_redirects_file, kind="owner"
            )
        if mechanics.validator_redirects_file:
            update["validator_redirects"] = load_redirects_csv(
                base_dir / mechanics.validator_redirects_file, kind="validator"
            )
        mechanics_list.append(mechanics.model_copy(update=update) if update else mechanics)
    return plan.model_copy(update={"mechanics": mechanics_list})


def load_redirects_csv(path: Path, kind: str) -> dict[str, str]:
    """
    Load a ``from,to`` redirect table.

    Owner tables map execution addresses, validator tables map BLS public
    keys; targets are always execution addresses.

    Raises:
        PlanValidationError: On I/O errors, a bad header, malformed rows,
            invalid addresses or duplicate keys
    """
    validate_key = validate_public_key if kind == "validator" else validate_execution_address
    try:
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
    except OSError as exc:
        raise PlanValidationError(
            f"failed to load {kind} redirects from file {str(path)!r}: {exc}"
        ) from exc

    if not rows:
        raise PlanValidationError(f"failed to read header from CSV file {str(path)!r}")
    header = rows[0]
    if len(header) != 2 or header[0].strip().lower() != "from" or header[1].strip().lower() != "to":
        raise PlanValidationError(
            f"invalid or missing header in CSV file {str(path)!r}: expected 'from,to'"
        )

    redirects: dict[str, str] = {}
    for line, record in enumerate(rows[1:], start=2):
        if not record:
            continue
        if len(record) != 2:
            raise PlanValidationError(f"invalid CSV format on line {line} of {str(path)!r}")
        is_valid, source, error = validate_key(record[0])
        if not is_valid:
            raise PlanValidationError(f"{error} on line {line} of {str(path)!r}")
        is_valid, target, error = validate_execution_address(record[1])
        if not is_valid:
            raise PlanValidationError(f"{error} on line {line} of {str(path)!r}")
        if source in redirects:
            raise PlanValidationError(f"duplicate {kind} redirect key: {source}")
        redirects[source] = target
    return redirects
