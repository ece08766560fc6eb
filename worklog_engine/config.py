"""Schedule settings read from the ledger directory's config.toml.

Every value is coerced on its own; a value of the wrong type or out of
range falls back to the ScheduleConfig default instead of failing the load.
"""

from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import Optional
import tomllib

from worklog_engine.schedule import (
    CLOCKS,
    ROUNDING_MODES,
    WEEKDAYS,
    ScheduleConfig,
    parse_workdays,
    units_per_hour,
    weekday_number,
)

_TRUE_WORDS = {"1", "true", "yes", "y", "on"}
_FALSE_WORDS = {"0", "false", "no", "n", "off"}


def _as_float(value, *, default: float) -> float:
    # TOML booleans are ints to Python; "daily_hours = true" is not one hour
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _as_int(value, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, float):
        return int(value) if value.is_integer() else default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def _as_bool(value, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
    return default


def _as_choice(value, choices, *, default: str) -> str:
    if isinstance(value, str) and value.strip().lower() in choices:
        return value.strip().lower()
    return default


def _as_workdays(value, *, default: frozenset[int]) -> frozenset[int]:
    try:
        if isinstance(value, str):
            return parse_workdays(value.strip())
        if isinstance(value, list):
            return frozenset(weekday_number(str(item)) for item in value)
    except ValueError:
        pass
    return default


def _as_weekday(value, *, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < 7:
        return value
    if isinstance(value, str):
        try:
            return weekday_number(value)
        except ValueError:
            pass
    return default


def _as_time(value, *, default: time) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        for fmt in ("%H:%M", "%H:%M:%S", "%I:%M%p", "%I%p"):
            try:
                return datetime.strptime(value.strip().replace(" ", "").upper(), fmt).time()
            except ValueError:
                continue
    return default


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def _as_precision(value, *, default: str) -> str:
    if value is None:
        return default
    try:
        units_per_hour(str(value))
    except ValueError:
        return default
    return str(value).strip().lower()


def load_schedule_toml(path: Path) -> tuple[ScheduleConfig, str]:
    """Load the schedule from config.toml.

    Returns (config, warning). Warning is empty on success. Values that are
    missing or out of range fall back to their defaults.
    """

    if not path.exists():
        return ScheduleConfig(), ""

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        return ScheduleConfig(), f"config.toml parse failed: {exc}"

    schedule = data.get("schedule") if isinstance(data.get("schedule"), dict) else {}
    pay_period = data.get("pay_period") if isinstance(data.get("pay_period"), dict) else {}
    defaults = ScheduleConfig()

    week_start = _as_weekday(schedule.get("week_start"), default=defaults.week_start)
    if "week_start" not in schedule and "sunday_begins_week" in schedule:
        sunday = _as_bool(schedule.get("sunday_begins_week"), default=True)
        week_start = WEEKDAYS.index("sunday") if sunday else WEEKDAYS.index("monday")

    daily_hours = _as_float(schedule.get("daily_hours"), default=defaults.daily_hours)
    if not 0 < daily_hours <= 24:
        daily_hours = defaults.daily_hours

    cfg = ScheduleConfig(
        workdays=_as_workdays(schedule.get("workdays"), default=defaults.workdays),
        daily_hours=daily_hours,
        precision=_as_precision(schedule.get("precision"), default=defaults.precision),
        rounding=_as_choice(schedule.get("rounding"), ROUNDING_MODES, default=defaults.rounding),
        clock=_as_choice(schedule.get("clock"), CLOCKS, default=defaults.clock),
        week_start=week_start,
        workday_start=_as_time(schedule.get("workday_start"), default=defaults.workday_start),
        pay_period_start=_as_date(pay_period.get("start")),
        pay_period_length=max(1, _as_int(pay_period.get("length"), default=defaults.pay_period_length)),
    )

    return cfg, ""
