"""
Export of calculated rewards to tab-separated CSV and JSON files.

Layout of an export directory::

    <YYYY-MM>/by-validator.csv      rows of one round
    <YYYY-MM>/by-owner.csv
    <YYYY-MM>/by-recipient.csv
    <YYYY-MM>/cumulative.json       recipient -> wei earned up to the round
    by-validator.csv                rows of every round, with a period column
    by-owner.csv
    by-recipient.csv
    total-by-validator.csv          totals over every round
    total-by-owner.csv
    total-by-recipient.csv
    exclusions.csv                  validator days left out of rewards
    inputs/rewards.json             normalized plan the export was made from
    inputs/rewards.yaml             plan document exactly as it was read
"""

import csv
import json
import shutil
import tempfile
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

from loguru import logger

from validator_rewards.constants import (
    BY_OWNER_FILE,
    BY_RECIPIENT_FILE,
    BY_VALIDATOR_FILE,
    CUMULATIVE_FILE,
    EXCLUSIONS_FILE,
    TOTAL_BY_OWNER_FILE,
    TOTAL_BY_RECIPIENT_FILE,
    TOTAL_BY_VALIDATOR_FILE,
)
from validator_rewards.core.models import (
    Participation,
    ParticipationTotal,
    RewardsReport,
    RoundResult,
)
from validator_rewards.core.units import gwei_to_eth, wei_to_eth
from validator_rewards.types import ParticipationRowDict


if TYPE_CHECKING:
    from validator_rewards.core.plan import Plan


PLAN_EXPORT_PATH = Path("inputs") / "rewards.json"
PLAN_DOCUMENT_PATH = Path("inputs") / "rewards.yaml"

PARTICIPATION_COLUMNS = [
    "active_days",
    "registered_days",
    "total_active_effective_balance",
    "total_registered_effective_balance",
    "reward",
    "fee_deduction",
]
VALIDATOR_COLUMNS = ["owner_address", "recipient_address", "public_key", *PARTICIPATION_COLUMNS]
OWNER_COLUMNS = ["owner_address", "validators", "is_network_fee", *PARTICIPATION_COLUMNS]
RECIPIENT_COLUMNS = ["recipient_address", "is_deployer", "is_network_fee", *PARTICIPATION_COLUMNS]
EXCLUSION_COLUMNS = [
    "day",
    "from_epoch",
    "to_epoch",
    "public_key",
    "start_beacon_status",
    "end_beacon_status",
    "events",
    "exclusion_reason",
]

Record = Union[Participation, ParticipationTotal]


def participation_row(record: Record, columns: Sequence[str]) -> dict[str, Any]:
    """
    Render one participation record (or cumulative total) as a CSV row.

    Per-round records hold raw Gwei-days and wei, totals hold amounts
    already; both end up as 18-digit decimal strings.
    """
    if isinstance(record, Participation):
        common: ParticipationRowDict = {
            "active_days": record.active_days,
            "registered_days": record.registered_days,
            "total_active_effective_balance": str(
                gwei_to_eth(record.total_active_effective_balance)
            ),
            "total_registered_effective_balance": str(
                gwei_to_eth(record.total_registered_effective_balance)
            ),
            "reward": str(wei_to_eth(record.reward)),
            "fee_deduction": str(wei_to_eth(record.fee_deduction)),
        }
    else:
        common = {
            "active_days": record.active_days,
            "registered_days": record.registered_days,
            "total_active_effective_balance": str(record.total_active_effective_balance),
            "total_registered_effective_balance": str(record.total_registered_effective_balance),
            "reward": str(record.reward),
            "fee_deduction": str(record.fee_deduction),
        }

    row: dict[str, Any] = {}
    for column in columns:
        if column in common:
            row[column] = common[column]
            continue
        value = getattr(record, column, None)
        if isinstance(value, bool):
            value = "true" if value else "false"
        row[column] = "" if value is None else value
    return row


def write_csv(path: Path, columns: Sequence[str], rows: Iterable[dict[str, Any]]) -> int:
    """
    Write rows as a tab-separated file with a header line.

    Returns:
        Number of data rows written
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(columns), delimiter="\t")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
            count += 1
    return count


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def export_round(result: RoundResult, directory: Path) -> Path:
    """
    Write the per-round files of one processed round.

    Returns:
        The round directory ``<directory>/<YYYY-MM>``
    """
    round_dir = directory / str(result.period)
    for file_name, columns, records in (
        (BY_VALIDATOR_FILE, VALIDATOR_COLUMNS, result.validators),
        (BY_OWNER_FILE, OWNER_COLUMNS, result.owners),
        (BY_RECIPIENT_FILE, RECIPIENT_COLUMNS, result.recipients),
    ):
        write_csv(
            round_dir / file_name,
            columns,
            (participation_row(record, columns) for record in records),
        )
    write_json(
        round_dir / CUMULATIVE_FILE,
        {address: str(wei) for address, wei in sorted(result.cumulative_rewards.items())},
    )
    return round_dir


def export_report(
    report: RewardsReport,
    plan: "Plan",
    directory: Path,
    plan_document: bytes | None = None,
) -> None:
    """
    Write every file of an export into ``directory``.

    ``plan_document`` is the plan file as read from disk; when given it is
    copied verbatim next to the normalized plan.
    """
    directory.mkdir(parents=True, exist_ok=True)
    for result in report.rounds:
        export_round(result, directory)

    # Every round in a single table per dimension
    for file_name, columns, attribute in (
        (BY_VALIDATOR_FILE, VALIDATOR_COLUMNS, "validators"),
        (BY_OWNER_FILE, OWNER_COLUMNS, "owners"),
        (BY_RECIPIENT_FILE, RECIPIENT_COLUMNS, "recipients"),
    ):
        rows = []
        for result in report.rounds:
            for record in getattr(result, attribute):
                rows.append({"period": str(result.period), **participation_row(record, columns)})
        write_csv(directory / file_name, ["period", *columns], rows)

    for file_name, columns, totals in (
        (TOTAL_BY_VALIDATOR_FILE, VALIDATOR_COLUMNS, report.total_by_validator),
        (TOTAL_BY_OWNER_FILE, OWNER_COLUMNS, report.total_by_owner),
        (TOTAL_BY_RECIPIENT_FILE, RECIPIENT_COLUMNS, report.total_by_recipient),
    ):
        write_csv(
            directory / file_name,
            columns,
            (participation_row(total, columns) for total in totals),
        )

    write_csv(
        directory / EXCLUSIONS_FILE,
        EXCLUSION_COLUMNS,
        (exclusion.model_dump(mode="json") for exclusion in report.exclusions),
    )

    write_json(directory / PLAN_EXPORT_PATH, plan.model_dump(mode="json"))
    if plan_document is not None:
        (directory / PLAN_DOCUMENT_PATH).write_bytes(plan_document)


def publish_report(
    report: RewardsReport,
    plan: "Plan",
    output_root: Path | str,
    network: str,
    plan_document: bytes | None = None,
) -> Path:
    """
    Export into a temporary directory and move it to ``<output_root>/<network>``.

    An existing export for the network is replaced only once the new one
    is complete; a failed export leaves it untouched.

    Returns:
        Path of the published export directory
    """
    output_root = Path(output_root)
    output_root.mkdir(parents=True, exist_ok=True)
    target = output_root / network

    staging = Path(tempfile.mkdtemp(prefix=f".{network}-", dir=output_root))
    try:
        export_report(report, plan, staging, plan_document)
        if target.exists():
            shutil.rmtree(target)
        staging.rename(target)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    logger.info(
        f"Exported rewards to {target}",
        extra={
            "directory": str(target),
            "rounds": len(report.rounds),
            "recipients": len(report.total_by_recipient),
        },
    )
    return target
