"""Workday schedule and duration rounding."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
# letters used by the job-log workday notation, Sunday first
WORKDAY_LETTERS = "SMTWHFA"

PRECISIONS = {
    "exact": None,
    "whole": 1,
    "half": 2,
    "third": 3,
    "quarter": 4,
    "sixth": 6,
    "tenth": 10,
    "twelfth": 12,
}
ROUNDING_MODES = ("up", "down", "nearest")
CLOCKS = ("12h", "24h")

_FRACTION_RE = re.compile(r"\A1/(\d+)\Z")


def units_per_hour(precision: str) -> Optional[int]:
    """Number of precision units in one hour; None means no rounding."""

    key = str(precision).strip().lower()
    if key in PRECISIONS:
        return PRECISIONS[key]
    match = _FRACTION_RE.match(key)
    if match and int(match.group(1)) > 0:
        return int(match.group(1))
    raise ValueError(f"invalid precision '{precision}'")


def parse_workdays(serialized: str) -> frozenset[int]:
    """Read ``MTWHF``-style workday letters into Python weekday numbers."""

    days = set()
    for char in serialized.upper():
        index = WORKDAY_LETTERS.find(char)
        if index < 0:
            raise ValueError(f"invalid workday letter '{char}'; expected a subset of {WORKDAY_LETTERS}")
        days.add((index - 1) % 7)
    return frozenset(days)


def serialize_workdays(days: frozenset[int]) -> str:
    return "".join(char for index, char in enumerate(WORKDAY_LETTERS) if (index - 1) % 7 in days)


def weekday_number(name: str) -> int:
    key = name.strip().lower()
    for index, day in enumerate(WEEKDAYS):
        if key == day or (len(key) >= 2 and day.startswith(key)):
            return index
    raise ValueError(f"invalid weekday '{name}'")


@dataclass(frozen=True)
class ScheduleConfig:
    """Expectations about when and how much the user works."""

    workdays: frozenset[int] = field(default_factory=lambda: frozenset(range(5)))
    daily_hours: float = 8.0
    precision: str = "quarter"
    rounding: str = "nearest"
    clock: str = "12h"
    week_start: int = 6
    workday_start: time = time(9, 0)
    pay_period_start: Optional[date] = None
    pay_period_length: int = 14

    def __post_init__(self) -> None:
        object.__setattr__(self, "workdays", frozenset(self.workdays))
        if any(day not in range(7) for day in self.workdays):
            raise ValueError("workdays must be weekday numbers 0-6")
        if not 0 < self.daily_hours <= 24:
            raise ValueError("daily_hours must be positive and at most 24")
        units_per_hour(self.precision)
        if self.rounding not in ROUNDING_MODES:
            raise ValueError(f"invalid rounding mode '{self.rounding}'")
        if self.clock not in CLOCKS:
            raise ValueError(f"invalid clock '{self.clock}'")
        if self.week_start not in range(7):
            raise ValueError("week_start must be a weekday number 0-6")
        if self.pay_period_length < 1:
            raise ValueError("a pay period must have some positive length")

    @property
    def day_length(self) -> timedelta:
        return timedelta(seconds=round(self.daily_hours * 3600))

    def is_workday(self, day: date) -> bool:
        return day.weekday() in self.workdays

    def workday_window(self, day: date) -> tuple[datetime, datetime]:
        start = datetime.combine(day, self.workday_start)
        return start, start + self.day_length

    def round_hours(self, seconds: int) -> float:
        """Convert a duration in whole seconds to hours at the configured precision."""

        units = units_per_hour(self.precision)
        seconds = int(seconds)
        if units is None:
            return seconds / 3600.0
        whole, remainder = divmod(seconds * units, 3600)
        if self.rounding == "up" and remainder:
            whole += 1
        elif self.rounding == "nearest" and 2 * remainder >= 3600:
            whole += 1
        return whole / units
