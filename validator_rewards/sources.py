"""
Participation data sources.

The rewards engine consumes already-materialized participation rows per
period. Filtering by activity criteria and applying redirects to compute
recipients is the job of whatever produced the rows; the file source below
reads rows exported by such a producer.
"""

import json
from collections.abc import Mapping, Sequence
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from loguru import logger
from pydantic import ValidationError

from validator_rewards.core.exceptions import PerformanceDataError
from validator_rewards.core.models import (
    Exclusion,
    OwnerParticipation,
    PerformanceWindow,
    RecipientParticipation,
    ValidatorParticipation,
)
from validator_rewards.core.period import Period


if TYPE_CHECKING:
    from validator_rewards.core.plan import Plan


VALIDATORS_FILE = "validators.json"
OWNERS_FILE = "owners.json"
RECIPIENTS_FILE = "recipients.json"
STATE_FILE = "state.json"
EXCLUSIONS_SOURCE_FILE = "exclusions.json"


class ParticipationSource(Protocol):
    """Provider of per-period participation rows."""

    def validator_participations(self, period: Period) -> Sequence[ValidatorParticipation]:
        ...

    def owner_participations(self, period: Period) -> Sequence[OwnerParticipation]:
        ...

    def recipient_participations(self, period: Period) -> Sequence[RecipientParticipation]:
        ...

    def exclusions(self, from_period: Period, to_period: Period) -> Sequence[Exclusion]:
        """Validator days left out of rewards between two periods, inclusive."""
        ...


def _within(exclusion: Exclusion, from_period: Period, to_period: Period) -> bool:
    return from_period.first_day() <= exclusion.day <= to_period.last_day()


class InMemoryParticipationSource:
    """
    Source backed by in-memory rows.

    Each call returns fresh copies so the engine can enrich them without
    touching the stored rows.
    """

    def __init__(
        self,
        validators: Mapping[Period, Sequence[ValidatorParticipation]] | None = None,
        owners: Mapping[Period, Sequence[OwnerParticipation]] | None = None,
        recipients: Mapping[Period, Sequence[RecipientParticipation]] | None = None,
        exclusions: Sequence[Exclusion] | None = None,
    ) -> None:
        self._validators = dict(validators or {})
        self._owners = dict(owners or {})
        self._recipients = dict(recipients or {})
        self._exclusions = list(exclusions or [])

    def validator_participations(self, period: Period) -> list[ValidatorParticipation]:
        return [row.model_copy() for row in self._validators.get(period, [])]

    def owner_participations(self, period: Period) -> list[OwnerParticipation]:
        return [row.model_copy() for row in self._owners.get(period, [])]

    def recipient_participations(self, period: Period) -> list[RecipientParticipation]:
        return [row.model_copy() for row in self._recipients.get(period, [])]

    def exclusions(self, from_period: Period, to_period: Period) -> list[Exclusion]:
        return [e for e in self._exclusions if _within(e, from_period, to_period)]


class FileParticipationSource:
    """
    Source reading JSON exports laid out as ``<root>/<YYYY-MM>/<kind>.json``.

    Validator rows without a ``recipient_address`` get one from the
    redirect tables of the mechanics in effect for the period.
    """

    def __init__(self, root: Path | str, plan: "Plan") -> None:
        self.root = Path(root)
        self.plan = plan

    def _read_rows(self, period: Period, file_name: str) -> list[dict[str, Any]]:
        period_dir = self.root / str(period)
        if not period_dir.is_dir():
            raise PerformanceDataError(
                f"participation data is not available for period {period}: "
                f"{str(period_dir)!r} does not exist"
            )
        path = period_dir / file_name
        try:
            with open(path, encoding="utf-8") as f:
                rows = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise PerformanceDataError(f"failed to read {str(path)!r}: {exc}") from exc

        if not isinstance(rows, list):
            raise PerformanceDataError(f"{str(path)!r} must contain a JSON list")
        logger.debug(f"Read {len(rows)} rows from {path}")
        return rows

    def _parse(self, model, rows: list[dict[str, Any]], period: Period, file_name: str):
        try:
            return [model.model_validate(row) for row in rows]
        except ValidationError as exc:
            raise PerformanceDataError(
                f"invalid row in {file_name} for period {period}: {exc}"
            ) from exc

    def validator_participations(self, period: Period) -> list[ValidatorParticipation]:
        rows = self._parse(
            ValidatorParticipation, self._read_rows(period, VALIDATORS_FILE), period, VALIDATORS_FILE
        )
        mechanics = self.plan.mechanics_at(period)
        for row in rows:
            if row.recipient_address is None:
                row.recipient_address = mechanics.resolve_recipient(
                    row.owner_address, row.public_key
                )
        return rows

    def owner_participations(self, period: Period) -> list[OwnerParticipation]:
        return self._parse(
            OwnerParticipation, self._read_rows(period, OWNERS_FILE), period, OWNERS_FILE
        )

    def recipient_participations(self, period: Period) -> list[RecipientParticipation]:
        return self._parse(
            RecipientParticipation, self._read_rows(period, RECIPIENTS_FILE), period, RECIPIENTS_FILE
        )

    def exclusions(self, from_period: Period, to_period: Period) -> list[Exclusion]:
        """
        Exclusions from ``<root>/exclusions.json`` whose day falls in the range.

        The file is optional; without it no exclusions are reported.
        """
        path = self.root / EXCLUSIONS_SOURCE_FILE
        if not path.exists():
            logger.debug(f"No exclusions at {path}")
            return []
        try:
            with open(path, encoding="utf-8") as f:
                rows = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise PerformanceDataError(f"failed to read {str(path)!r}: {exc}") from exc
        if not isinstance(rows, list):
            raise PerformanceDataError(f"{str(path)!r} must contain a JSON list")

        try:
            exclusions = [Exclusion.model_validate(row) for row in rows]
        except ValidationError as exc:
            raise PerformanceDataError(f"invalid row in {EXCLUSIONS_SOURCE_FILE}: {exc}") from exc
        return sorted(
            (e for e in exclusions if _within(e, from_period, to_period)),
            key=lambda e: (e.day, e.public_key),
        )


def load_performance_window(path: Path | str) -> PerformanceWindow:
    """
    Read the synced performance range from a ``state.json`` document.

    Expected keys: ``earliest_validator_performance`` and
    ``latest_validator_performance`` as ISO dates.

    Raises:
        PerformanceDataError: If the file is missing, incomplete or
            describes an invalid range
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            state = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise PerformanceDataError(f"failed to read state {str(path)!r}: {exc}") from exc

    earliest = state.get("earliest_validator_performance")
    latest = state.get("latest_validator_performance")
    if not earliest or not latest:
        raise PerformanceDataError("validator performance data is not available")

    try:
        return PerformanceWindow(
            earliest=date.fromisoformat(earliest),
            latest=date.fromisoformat(latest),
        )
    except (TypeError, ValueError) as exc:
        raise PerformanceDataError(str(exc)) from exc
