"""
Monthly reward periods.

A period is a calendar month in UTC. It scopes every reward round and
serializes as ``YYYY-MM``.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from validator_rewards.constants import PERIOD_FORMAT


_PARSE_ERROR = "period must only specify year and month (e.g. 2006-01)"


@dataclass(frozen=True, order=True)
class Period:
    """Calendar month, ordered by time."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.year <= 9999:
            raise ValueError(f"year out of range: {self.year}")
        if not 1 <= self.month <= 12:
            raise ValueError(f"month out of range: {self.month}")

    @classmethod
    def parse(cls, text: str) -> "Period":
        """
        Parse a ``YYYY-MM`` string.

        Anything that does not round-trip to the same text is rejected,
        which excludes day and time components.

        Example:
            >>> Period.parse("2024-02").days()
            29
        """
        try:
            parsed = datetime.strptime(text, PERIOD_FORMAT)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{_PARSE_ERROR}: {text!r}") from exc
        period = cls(parsed.year, parsed.month)
        if str(period) != text:
            raise ValueError(f"{_PARSE_ERROR}: {text!r}")
        return period

    @classmethod
    def at(cls, moment: datetime | date) -> "Period":
        """Period containing the given instant (aware datetimes in UTC)."""
        if isinstance(moment, datetime) and moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        return cls(moment.year, moment.month)

    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def last_day(self) -> date:
        return date(self.year, self.month, self.days())

    def days(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    def next(self) -> "Period":
        if self.month == 12:
            return Period(self.year + 1, 1)
        return Period(self.year, self.month + 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @classmethod
    def coerce(cls, value: Any) -> "Period":
        if isinstance(value, Period):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        # YAML turns "2024-03-15" into a date; a period never has a day
        raise ValueError(f"{_PARSE_ERROR}: {value!r}")

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.coerce,
            serialization=core_schema.to_string_ser_schema(),
        )
