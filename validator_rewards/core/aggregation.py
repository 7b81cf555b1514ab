"""
Reward aggregation across validators, owners and recipients.

The engine walks the complete rounds of a plan in chronological order,
enriches each round's participation rows with rewards and fee deductions
and folds them into cumulative totals. Totals keep raw wei and Gwei-day
integers until the very end and are converted to display amounts once.
"""

from collections.abc import Callable, Sequence
from typing import Generic, TypeVar

from loguru import logger

from validator_rewards.core.calculator import RewardCalculator
from validator_rewards.core.exceptions import (
    CalculationError,
    ConsistencyError,
    PerformanceDataError,
)
from validator_rewards.core.models import (
    OwnerParticipation,
    Participation,
    ParticipationTotal,
    PerformanceWindow,
    RecipientParticipation,
    RewardsReport,
    Round,
    RoundResult,
    RoundSummary,
    ValidatorParticipation,
)
from validator_rewards.core.plan import Plan
from validator_rewards.core.units import eth_to_wei, gwei_to_eth, wei_to_eth
from validator_rewards.sources import ParticipationSource


P = TypeVar("P", bound=Participation)


class ParticipationTotals(Generic[P]):
    """
    Cumulative totals of one dimension, keyed by entity identity.

    The first record seen for an identity is cloned; later records are
    folded in with :meth:`merge`.
    """

    def __init__(self, dimension: str) -> None:
        self.dimension = dimension
        self._totals: dict[str, P] = {}
        self._finalized = False

    @staticmethod
    def merge(existing: P, incoming: P) -> P:
        """
        Fold one round of participation into an existing total.

        Day counts, effective balance sums, reward and fee deduction are
        added as integers. Identity fields come from ``existing``; the
        owner validator count follows the latest round.
        """
        if existing.identity != incoming.identity:
            raise ConsistencyError(
                f"cannot merge {incoming.identity} into {existing.identity}"
            )
        update = {
            "active_days": existing.active_days + incoming.active_days,
            "registered_days": existing.registered_days + incoming.registered_days,
            "total_active_effective_balance": (
                existing.total_active_effective_balance
                + incoming.total_active_effective_balance
            ),
            "total_registered_effective_balance": (
                existing.total_registered_effective_balance
                + incoming.total_registered_effective_balance
            ),
            "reward": existing.reward + incoming.reward,
            "fee_deduction": existing.fee_deduction + incoming.fee_deduction,
        }
        if isinstance(incoming, OwnerParticipation):
            update["validators"] = incoming.validators
        return existing.model_copy(update=update)

    def add(self, record: P) -> None:
        if self._finalized:
            raise ConsistencyError(f"{self.dimension} totals are already finalized")
        key = record.identity
        if key in self._totals:
            self._totals[key] = self.merge(self._totals[key], record)
        else:
            self._totals[key] = record.model_copy()

    def get(self, identity: str) -> P | None:
        return self._totals.get(identity)

    def snapshot(self) -> dict[str, int]:
        """Identity -> raw wei reward accumulated so far."""
        return {key: total.reward for key, total in self._totals.items()}

    def finalize(self) -> list[ParticipationTotal]:
        """Convert every total to display amounts, exactly once."""
        if self._finalized:
            raise ConsistencyError(f"{self.dimension} totals are already finalized")
        self._finalized = True
        return [ParticipationTotal.from_participation(t) for t in self._totals.values()]

    def __len__(self) -> int:
        return len(self._totals)

    def __contains__(self, identity: object) -> bool:
        return identity in self._totals


class RewardsEngine:
    """
    Computes rewards for every complete round of a plan.

    Example:
        >>> engine = RewardsEngine(plan, source)
        >>> report = engine.run(PerformanceWindow(earliest=..., latest=...))
        >>> report.cumulative_rewards()
        {'0x...': 1234...}
    """

    def __init__(
        self,
        plan: Plan,
        source: ParticipationSource,
        calculator: RewardCalculator | None = None,
    ) -> None:
        self.plan = plan
        self.source = source
        self.calculator = calculator or RewardCalculator()

    def complete_rounds(self, window: PerformanceWindow) -> list[Round]:
        """
        Rounds that are priced and fully covered by performance data.

        Raises:
            PerformanceDataError: If data does not reach back to the first
                round or no round qualifies
        """
        first_round = self.plan.rounds[0]
        if window.earliest > first_round.period.first_day():
            raise PerformanceDataError(
                "validator performance data is not available for the first round "
                f"({first_round.period}, earliest data {window.earliest})"
            )

        rounds = [
            round_
            for round_ in self.plan.rounds
            if round_.is_priced() and window.covers(round_.period)
        ]
        if not rounds:
            raise PerformanceDataError(
                f"no rounds with available performance data (latest data {window.latest})"
            )
        return rounds

    def calculate_round(self, round_: Round) -> RoundResult:
        """
        Enrich one round's participation rows with rewards and fee deductions.

        Raises:
            CalculationError: If the round has no participants or its tier
                or rates cannot be derived
            ConsistencyError: If owner rows disagree with validator rows or
                the network fee address also participates in the round
        """
        period = round_.period
        mechanics = self.plan.mechanics_at(period)
        logger.debug(
            f"Calculating rewards for round {period}",
            extra={
                "period": str(period),
                "min_attestations_per_day": mechanics.criteria.min_attestations_per_day,
                "min_decideds_per_day": mechanics.criteria.min_decideds_per_day,
            },
        )

        validators = list(self.source.validator_participations(period))
        owners = list(self.source.owner_participations(period))
        recipients = list(self.source.recipient_participations(period))
        if not validators:
            raise CalculationError(f"participants must be positive in round {period}")
        for dimension, rows in (
            ("validator", validators),
            ("owner", owners),
            ("recipient", recipients),
        ):
            _check_unique(rows, dimension, period)

        round_days = period.days()
        total_effective_balance = (
            sum(v.total_active_effective_balance for v in validators) // round_days
        )
        try:
            tier = self.plan.tier(period, total_effective_balance)
            rates = self.plan.validator_rewards(period, total_effective_balance)
        except CalculationError as exc:
            raise CalculationError(f"failed to get rewards for round {period}: {exc}") from exc
        network_fee = eth_to_wei(round_.network_fee)

        owner_active_days: dict[str, int] = {}
        for participation in validators:
            self.calculator.apply(participation, round_days, rates.daily, network_fee)
            owner = participation.owner_address
            owner_active_days[owner] = owner_active_days.get(owner, 0) + participation.active_days

        for participation in owners:
            if participation.active_days != owner_active_days.get(participation.owner_address, 0):
                raise ConsistencyError(
                    f"inconsistent active days for owner {participation.owner_address!r} "
                    f"in round {period}"
                )
            self.calculator.apply(participation, round_days, rates.daily, network_fee)

        for participation in recipients:
            self.calculator.apply(participation, round_days, rates.daily, network_fee)

        if mechanics.network_fee_address:
            for dimension, rows, factory in (
                ("owner", owners, OwnerParticipation),
                ("recipient", recipients, RecipientParticipation),
            ):
                entry = _network_fee_entry(rows, mechanics.network_fee_address, factory)
                if entry is None:
                    continue
                # The fee entry must stay the only row of its address
                if any(row.identity == entry.identity for row in rows):
                    raise ConsistencyError(
                        f"network fee address {entry.identity!r} is also a "
                        f"participating {dimension} in round {period}"
                    )
                rows.append(entry)

        summary = RoundSummary(
            period=period,
            validators=len(validators),
            total_effective_balance=gwei_to_eth(total_effective_balance),
            tier=tier.max_effective_balance,
            network_fee=round_.network_fee,
            daily_reward=wei_to_eth(rates.daily),
            monthly_reward=wei_to_eth(rates.monthly),
            annual_reward=wei_to_eth(rates.annual),
        )
        logger.info(
            f"Calculated rewards for round {period}",
            extra=summary.model_dump(mode="json"),
        )

        return RoundResult(
            round=round_,
            tier=tier,
            rates=rates,
            validators=validators,
            owners=owners,
            recipients=recipients,
            summary=summary,
        )

    def run(self, window: PerformanceWindow) -> RewardsReport:
        """
        Calculate every complete round and accumulate cumulative totals.

        Raises:
            RewardsError: Any failure aborts the whole run
        """
        rounds = self.complete_rounds(window)
        by_validator: ParticipationTotals[ValidatorParticipation] = ParticipationTotals("validator")
        by_owner: ParticipationTotals[OwnerParticipation] = ParticipationTotals("owner")
        by_recipient: ParticipationTotals[RecipientParticipation] = ParticipationTotals("recipient")

        results = []
        for round_ in rounds:
            result = self.calculate_round(round_)
            for participation in result.validators:
                by_validator.add(participation)
            for participation in result.owners:
                by_owner.add(participation)
            for participation in result.recipients:
                by_recipient.add(participation)
            result.cumulative_rewards = by_recipient.snapshot()
            results.append(result)

        report = RewardsReport(
            rounds=results,
            total_by_validator=by_validator.finalize(),
            total_by_owner=by_owner.finalize(),
            total_by_recipient=by_recipient.finalize(),
            exclusions=list(self.source.exclusions(results[0].period, results[-1].period)),
        )
        logger.info(
            f"Calculated rewards for {len(results)} rounds",
            extra={
                "first_period": str(results[0].period),
                "last_period": str(results[-1].period),
                "recipients": len(report.total_by_recipient),
                "exclusions": len(report.exclusions),
            },
        )
        return report


def _check_unique(rows: Sequence[Participation], dimension: str, period) -> None:
    seen: set[str] = set()
    for row in rows:
        if row.identity in seen:
            raise ConsistencyError(
                f"duplicate {dimension} {row.identity!r} in round {period}"
            )
        seen.add(row.identity)


def _network_fee_entry(
    rows: Sequence[OwnerParticipation | RecipientParticipation],
    address: str,
    factory: Callable[..., P],
) -> P | None:
    """Payable entry collecting the fee deductions of one dimension, if any."""
    contributors = [row for row in rows if row.fee_deduction > 0]
    total_fee = sum(row.fee_deduction for row in contributors)
    if total_fee <= 0:
        return None

    key_field = "owner_address" if factory is OwnerParticipation else "recipient_address"
    return factory(
        **{key_field: address},
        active_days=sum(row.active_days for row in contributors),
        registered_days=sum(row.registered_days for row in contributors),
        reward=total_fee,
        is_network_fee=True,
    )
