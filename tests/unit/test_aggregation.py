"""
Tests for cumulative totals and the rewards engine.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from sample_data import (
    APRIL,
    APRIL_REWARD_A,
    FEE_ADDRESS,
    MARCH,
    MARCH_DAILY_WEI,
    MARCH_FEE_B,
    MARCH_REWARD_A,
    MARCH_REWARD_B,
    OWNER_A,
    OWNER_B,
    PUBKEY_1,
    PUBKEY_2,
    RECIPIENT_R,
    SAMPLE_PLAN_YAML,
    sample_exclusions,
    sample_rows,
)
from validator_rewards.core.aggregation import ParticipationTotals, RewardsEngine
from validator_rewards.core.amount import Amount
from validator_rewards.core.exceptions import (
    CalculationError,
    ConsistencyError,
    PerformanceDataError,
)
from validator_rewards.core.models import (
    OwnerParticipation,
    PerformanceWindow,
    RecipientParticipation,
    ValidatorParticipation,
)
from validator_rewards.core.plan import parse_plan
from validator_rewards.sources import InMemoryParticipationSource


def window(earliest: date, latest: date) -> PerformanceWindow:
    return PerformanceWindow(earliest=earliest, latest=latest)


def by_identity(rows) -> dict:
    return {row.identity: row for row in rows}


class TestParticipationTotals:
    """Tests for the per-dimension accumulator."""

    def test_merge_sums_counters(self) -> None:
        """Test merge adds days, balances, reward and fee."""
        first = RecipientParticipation(
            recipient_address=OWNER_A,
            active_days=31,
            registered_days=31,
            total_active_effective_balance=100,
            total_registered_effective_balance=120,
            reward=5,
            fee_deduction=1,
        )
        second = RecipientParticipation(
            recipient_address=OWNER_A,
            active_days=30,
            registered_days=30,
            total_active_effective_balance=50,
            total_registered_effective_balance=60,
            reward=7,
            fee_deduction=2,
        )
        merged = ParticipationTotals.merge(first, second)

        assert merged.active_days == 61
        assert merged.registered_days == 61
        assert merged.total_active_effective_balance == 150
        assert merged.total_registered_effective_balance == 180
        assert merged.reward == 12
        assert merged.fee_deduction == 3
        assert first.reward == 5

    def test_merge_keeps_latest_validator_count(self) -> None:
        """Test owner totals report the latest validator count."""
        first = OwnerParticipation(owner_address=OWNER_A, validators=3, active_days=1)
        second = OwnerParticipation(owner_address=OWNER_A, validators=2, active_days=1)
        assert ParticipationTotals.merge(first, second).validators == 2

    def test_merge_rejects_different_identity(self) -> None:
        """Test merging two entities is an error."""
        with pytest.raises(ConsistencyError, match="cannot merge"):
            ParticipationTotals.merge(
                OwnerParticipation(owner_address=OWNER_A),
                OwnerParticipation(owner_address=OWNER_B),
            )

    def test_add_clones_first_record(self) -> None:
        """Test later changes to an added record do not leak into totals."""
        totals = ParticipationTotals("owner")
        record = OwnerParticipation(owner_address=OWNER_A, reward=10)
        totals.add(record)
        record.reward = 99

        assert totals.get(OWNER_A).reward == 10
        assert OWNER_A in totals
        assert len(totals) == 1

    def test_snapshot(self) -> None:
        """Test snapshot maps identities to raw wei."""
        totals = ParticipationTotals("recipient")
        totals.add(RecipientParticipation(recipient_address=OWNER_A, reward=10))
        totals.add(RecipientParticipation(recipient_address=OWNER_A, reward=5))
        totals.add(RecipientParticipation(recipient_address=OWNER_B, reward=1))
        assert totals.snapshot() == {OWNER_A: 15, OWNER_B: 1}

    def test_finalize_converts_once(self) -> None:
        """Test finalize yields display rows and freezes the accumulator."""
        totals = ParticipationTotals("validator")
        totals.add(
            ValidatorParticipation(
                owner_address=OWNER_A,
                recipient_address=OWNER_A,
                public_key=PUBKEY_1,
                total_active_effective_balance=32 * 10**9,
                reward=10**18,
            )
        )
        (total,) = totals.finalize()

        assert total.identity == PUBKEY_1
        assert total.total_active_effective_balance == Amount(32)
        assert total.reward == Amount(1)
        assert total.reward_wei == 10**18

        with pytest.raises(ConsistencyError, match="already finalized"):
            totals.finalize()
        with pytest.raises(ConsistencyError, match="already finalized"):
            totals.add(OwnerParticipation(owner_address=OWNER_A))


class TestCompleteRounds:
    """Tests for round selection against the performance window."""

    def test_priced_and_covered_rounds(self, sample_plan, sample_source, full_window) -> None:
        """Test unpriced rounds are skipped."""
        rounds = RewardsEngine(sample_plan, sample_source).complete_rounds(full_window)
        assert [r.period for r in rounds] == [MARCH, APRIL]

    def test_partially_covered_round_skipped(self, sample_plan, sample_source) -> None:
        """Test a round is complete only when its last day is covered."""
        engine = RewardsEngine(sample_plan, sample_source)
        rounds = engine.complete_rounds(window(date(2024, 3, 1), date(2024, 4, 29)))
        assert [r.period for r in rounds] == [MARCH]

    def test_data_missing_for_first_round(self, sample_plan, sample_source) -> None:
        """Test data must reach back to the first round."""
        engine = RewardsEngine(sample_plan, sample_source)
        with pytest.raises(PerformanceDataError, match="not available for the first round"):
            engine.complete_rounds(window(date(2024, 3, 2), date(2024, 4, 30)))

    def test_no_complete_rounds(self, sample_plan, sample_source) -> None:
        """Test no round fully covered."""
        engine = RewardsEngine(sample_plan, sample_source)
        with pytest.raises(PerformanceDataError, match="no rounds with available performance data"):
            engine.complete_rounds(window(date(2024, 3, 1), date(2024, 3, 30)))

    def test_inverted_window(self) -> None:
        """Test earliest after latest is an invalid state."""
        with pytest.raises(ValidationError, match="invalid state"):
            window(date(2024, 4, 1), date(2024, 3, 1))

    def test_window_covers(self) -> None:
        """Test coverage is inclusive of the latest day."""
        full = window(date(2024, 3, 1), date(2024, 3, 31))
        assert full.covers(MARCH)
        assert not full.covers(APRIL)


class TestCalculateRound:
    """Tests for a single round of the engine."""

    def test_march_rewards(self, sample_plan, sample_source) -> None:
        """Test rewards and fees of every dimension."""
        result = RewardsEngine(sample_plan, sample_source).calculate_round(
            sample_plan.round_at(MARCH)
        )

        validators = by_identity(result.validators)
        assert validators[PUBKEY_1].reward == MARCH_REWARD_A
        assert validators[PUBKEY_1].fee_deduction == 0
        assert validators[PUBKEY_2].reward == MARCH_REWARD_B
        assert validators[PUBKEY_2].fee_deduction == MARCH_FEE_B

        owners = by_identity(result.owners)
        assert owners[OWNER_A].reward == MARCH_REWARD_A
        assert owners[OWNER_B].reward == MARCH_REWARD_B

        recipients = by_identity(result.recipients)
        assert recipients[OWNER_A].reward == MARCH_REWARD_A
        assert recipients[RECIPIENT_R].reward == MARCH_REWARD_B

    def test_summary(self, sample_plan, sample_source) -> None:
        """Test aggregate balance, tier and rates of the round."""
        result = RewardsEngine(sample_plan, sample_source).calculate_round(
            sample_plan.round_at(MARCH)
        )

        assert result.summary.validators == 2
        assert result.summary.total_effective_balance == Amount(96)
        assert result.summary.tier == 30000
        assert result.summary.network_fee == Amount(1)
        assert result.rates.daily == MARCH_DAILY_WEI
        assert result.summary.daily_reward == Amount.from_wei(MARCH_DAILY_WEI)

    def test_network_fee_entries(self, sample_plan, sample_source) -> None:
        """Test fee deductions are paid out to the network fee address."""
        result = RewardsEngine(sample_plan, sample_source).calculate_round(
            sample_plan.round_at(MARCH)
        )

        owner_fee = by_identity(result.owners)[FEE_ADDRESS]
        assert owner_fee.is_network_fee
        assert owner_fee.reward == MARCH_FEE_B
        assert owner_fee.active_days == 31

        recipient_fee = by_identity(result.recipients)[FEE_ADDRESS]
        assert recipient_fee.is_network_fee
        assert recipient_fee.reward == MARCH_FEE_B
        assert recipient_fee.total_active_effective_balance == 0

    def test_no_fee_entries_without_fees(self, sample_plan, sample_source) -> None:
        """Test rounds without fee deductions get no network fee entry."""
        result = RewardsEngine(sample_plan, sample_source).calculate_round(
            sample_plan.round_at(APRIL)
        )
        assert FEE_ADDRESS not in by_identity(result.owners)
        assert FEE_ADDRESS not in by_identity(result.recipients)
        assert by_identity(result.recipients)[OWNER_A].reward == APRIL_REWARD_A

    def test_no_fee_entries_without_address(self, sample_source) -> None:
        """Test mechanics without a fee address keep deductions unpaid."""
        plan = parse_plan(
            SAMPLE_PLAN_YAML.replace(f'    network_fee_address: "{FEE_ADDRESS}"\n', "")
        )
        result = RewardsEngine(plan, sample_source).calculate_round(plan.round_at(MARCH))

        assert FEE_ADDRESS not in by_identity(result.recipients)
        assert by_identity(result.recipients)[RECIPIENT_R].fee_deduction == MARCH_FEE_B

    def test_fee_address_is_participating_owner(self, sample_source) -> None:
        """Test a fee address that also owns validators is rejected."""
        plan = parse_plan(SAMPLE_PLAN_YAML.replace(FEE_ADDRESS, OWNER_B))
        engine = RewardsEngine(plan, sample_source)

        with pytest.raises(
            ConsistencyError,
            match=rf"network fee address '{OWNER_B}' is also a participating owner in round 2024-03",
        ):
            engine.calculate_round(plan.round_at(MARCH))

    def test_fee_address_is_participating_recipient(self, sample_plan) -> None:
        """Test a fee address that also receives rewards is rejected."""
        rows = sample_rows()
        rows["recipients"][MARCH].append(
            RecipientParticipation(recipient_address=FEE_ADDRESS, active_days=1, registered_days=1)
        )
        engine = RewardsEngine(sample_plan, InMemoryParticipationSource(**rows))

        with pytest.raises(ConsistencyError, match="is also a participating recipient"):
            engine.calculate_round(sample_plan.round_at(MARCH))

    def test_no_participants(self, sample_plan) -> None:
        """Test a round without validators is rejected."""
        engine = RewardsEngine(sample_plan, InMemoryParticipationSource())
        with pytest.raises(CalculationError, match="participants must be positive in round 2024-03"):
            engine.calculate_round(sample_plan.round_at(MARCH))

    def test_duplicate_validator(self, sample_plan) -> None:
        """Test duplicate identities within one round."""
        rows = sample_rows()
        rows["validators"][MARCH].append(rows["validators"][MARCH][0].model_copy())
        engine = RewardsEngine(sample_plan, InMemoryParticipationSource(**rows))
        with pytest.raises(ConsistencyError, match="duplicate validator"):
            engine.calculate_round(sample_plan.round_at(MARCH))

    def test_inconsistent_owner_active_days(self, sample_plan) -> None:
        """Test owner rows must agree with their validators."""
        rows = sample_rows()
        rows["owners"][MARCH][0].active_days = 30
        engine = RewardsEngine(sample_plan, InMemoryParticipationSource(**rows))
        with pytest.raises(ConsistencyError, match="inconsistent active days for owner"):
            engine.calculate_round(sample_plan.round_at(MARCH))

    def test_network_exceeds_tiers(self, sample_plan) -> None:
        """Test tier overflow names the round."""
        rows = sample_rows()
        rows["validators"][MARCH][0].total_active_effective_balance = 70000 * 10**9 * 31
        engine = RewardsEngine(sample_plan, InMemoryParticipationSource(**rows))
        with pytest.raises(CalculationError, match="failed to get rewards for round 2024-03"):
            engine.calculate_round(sample_plan.round_at(MARCH))


class TestRun:
    """Tests for a full run over complete rounds."""

    def test_cumulative_totals(self, sample_plan, sample_source, full_window) -> None:
        """Test totals across March and April."""
        report = RewardsEngine(sample_plan, sample_source).run(full_window)

        assert [r.period for r in report.rounds] == [MARCH, APRIL]
        assert report.cumulative_rewards() == {
            OWNER_A: MARCH_REWARD_A + APRIL_REWARD_A,
            RECIPIENT_R: MARCH_REWARD_B,
            FEE_ADDRESS: MARCH_FEE_B,
        }

        recipients = by_identity_totals(report.total_by_recipient)
        assert recipients[OWNER_A].active_days == 61
        assert recipients[OWNER_A].total_active_effective_balance == Amount(32 * 61)
        assert recipients[FEE_ADDRESS].is_network_fee

        owners = by_identity_totals(report.total_by_owner)
        assert owners[OWNER_A].validators == 1
        assert owners[OWNER_B].fee_deduction == Amount.from_wei(MARCH_FEE_B)

        validators = by_identity_totals(report.total_by_validator)
        assert validators[PUBKEY_1].reward_wei == MARCH_REWARD_A + APRIL_REWARD_A

    def test_per_round_cumulative_snapshots(self, sample_plan, sample_source, full_window) -> None:
        """Test each round records recipient totals up to that round."""
        report = RewardsEngine(sample_plan, sample_source).run(full_window)

        march, april = report.rounds
        assert march.cumulative_rewards[OWNER_A] == MARCH_REWARD_A
        assert april.cumulative_rewards[OWNER_A] == MARCH_REWARD_A + APRIL_REWARD_A
        assert april.cumulative_rewards[RECIPIENT_R] == MARCH_REWARD_B

    def test_exclusions_cover_complete_rounds(self, sample_plan, full_window) -> None:
        """Test the report carries exclusions from the first to the last complete round."""
        source = InMemoryParticipationSource(**sample_rows(), exclusions=sample_exclusions())
        report = RewardsEngine(sample_plan, source).run(full_window)

        assert [e.day for e in report.exclusions] == [date(2024, 4, 10), date(2024, 3, 5)]

    def test_rerun_is_identical(self, sample_plan, sample_source, full_window) -> None:
        """Test identical input yields identical output."""
        first = RewardsEngine(sample_plan, sample_source).run(full_window)
        second = RewardsEngine(sample_plan, sample_source).run(full_window)

        assert first.cumulative_rewards() == second.cumulative_rewards()
        assert first.total_by_owner == second.total_by_owner
        assert first.total_by_validator == second.total_by_validator


def by_identity_totals(totals) -> dict:
    return {total.identity: total for total in totals}
