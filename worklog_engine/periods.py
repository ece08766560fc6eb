"""Resolution of period expressions into half-open time ranges.

Every resolution is relative to an explicit ``now``. Weeks begin on the
configured ``week_start`` weekday and days run from midnight to midnight.

Weekday names follow one fixed rule:

* ``friday`` -- the nearest past Friday, today included;
* ``this friday`` -- the Friday of the current week, which may lie ahead;
* ``last friday`` -- the Friday of the previous week;
* ``next friday`` -- the Friday of the following week.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, time, timedelta
from typing import Optional

from worklog_engine.errors import AmbiguousPeriodExpression, InvalidPeriodExpression
from worklog_engine.schedule import WEEKDAYS, ScheduleConfig
from worklog_engine.schema import Period, midnight

UNITS = ("day", "week", "month", "year", "pay period")

_NUMBER_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}
_MONTHS = tuple(name.lower() for name in calendar.month_name[1:])
_WEEKDAY_NAMES = r"(?:mon|tues?|wed(?:nes)?|thu(?:rs?)?|fri|sat(?:ur)?|sun)(?:day)?"
_MONTH_NAMES = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_COUNT = r"(?P<count>\d+|" + "|".join(_NUMBER_WORDS) + r")"
_UNIT = r"(?P<unit>day|week|month|year|pay period|pp)s?"

_SINGLE_DAY_RE = re.compile(r"\A(?P<word>today|yesterday|tomorrow)\Z")
_EVER_RE = re.compile(r"\A(?:ever|always|all|all time)\Z")
_AGO_RE = re.compile(r"\A" + _COUNT + r" " + _UNIT + r" ago\Z")
_RELATIVE_UNIT_RE = re.compile(r"\A(?P<which>this|last|previous|next) " + _UNIT + r"\Z")
_BARE_PAY_PERIOD_RE = re.compile(r"\A(?:pay period|pp)\Z")
_WEEKDAY_RE = re.compile(r"\A(?:(?P<which>this|last|previous|next) )?(?P<weekday>" + _WEEKDAY_NAMES + r")\Z")
_MONTH_RE = re.compile(
    r"\A(?P<month>" + _MONTH_NAMES + r")(?: (?P<day>\d{1,2})(?:st|nd|rd|th)?)?(?: (?P<year>\d{4}))?\Z"
)
_ISO_RE = re.compile(r"\A(?P<year>\d{4})(?:-(?P<month>\d{1,2})(?:-(?P<day>\d{1,2}))?)?\Z")
_SLASH_RE = re.compile(r"\A(?P<first>\d{1,2})/(?P<second>\d{1,2})/(?P<year>\d{4})\Z")

_SINCE_RE = re.compile(r"\Asince (?P<rest>.+)\Z")
_BEFORE_RE = re.compile(r"\A(?:before|until|till) (?P<rest>.+)\Z")
_AFTER_RE = re.compile(r"\Aafter (?P<rest>.+)\Z")
_FROM_TO_RE = re.compile(r"\Afrom (?P<first>.+?) (?:to|until|till) (?P<second>.+)\Z")
_THROUGH_RE = re.compile(r"\A(?:from )?(?P<first>.+?) (?:through|thru) (?P<second>.+)\Z")

_TIME = r"(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?(?::(?P<second>\d{2}))?\s*(?P<meridian>am|pm|a\.m\.|p\.m\.)?"
_TIME_RE = re.compile(r"\A(?:" + _TIME + r"|(?P<named>noon|midnight))\Z")
_WITH_TIME_RE = re.compile(r"\A(?P<day>.+?)(?P<at> at)? (?P<time>\S+(?: ?(?:am|pm|a\.m\.|p\.m\.))?)\Z")
_SHORT_AGO_RE = re.compile(r"\A" + _COUNT + r" (?P<unit>second|minute|hour)s? ago\Z")
_ISO_T_RE = re.compile(r"(\d{4}-\d{1,2}-\d{1,2})t(\d)")


def normalize(text: str) -> str:
    phrase = " ".join(str(text).lower().replace(",", " ").split())
    return _ISO_T_RE.sub(r"\1 \2", phrase)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length."""

    index = moment.year * 12 + moment.month - 1 + months
    year, month = divmod(index, 12)
    day = min(moment.day, calendar.monthrange(year, month + 1)[1])
    return moment.replace(year=year, month=month + 1, day=day)


def _month_number(name: str) -> int:
    return next(index for index, month in enumerate(_MONTHS, start=1) if month.startswith(name[:3]))


def _weekday_index(name: str) -> int:
    return next(index for index, day in enumerate(WEEKDAYS) if day.startswith(name[:3]))


class PeriodResolver:
    """Parse period expressions and single timestamps relative to ``now``."""

    def __init__(
        self,
        week_start: int = 6,
        pay_period_start: Optional[date] = None,
        pay_period_length: int = 14,
    ) -> None:
        self.week_start = week_start
        self.pay_period_start = pay_period_start
        self.pay_period_length = pay_period_length

    @classmethod
    def for_schedule(cls, schedule: ScheduleConfig) -> "PeriodResolver":
        return cls(
            week_start=schedule.week_start,
            pay_period_start=schedule.pay_period_start,
            pay_period_length=schedule.pay_period_length,
        )

    # -- calendar units ---------------------------------------------------------

    def unit_bounds(self, unit: str, moment: datetime) -> Period:
        """The day, week, month, year or pay period containing ``moment``."""

        day = midnight(moment)
        if unit == "day":
            return Period(day, day + timedelta(days=1))
        if unit == "week":
            start = day - timedelta(days=(day.weekday() - self.week_start) % 7)
            return Period(start, start + timedelta(days=7))
        if unit == "month":
            start = day.replace(day=1)
            return Period(start, add_months(start, 1))
        if unit == "year":
            start = day.replace(month=1, day=1)
            return Period(start, start.replace(year=start.year + 1))
        if unit == "pay period":
            if self.pay_period_start is None:
                raise InvalidPeriodExpression("pay period", "no pay period has been configured")
            anchor = datetime.combine(self.pay_period_start, time())
            offset = (day - anchor).days // self.pay_period_length
            start = anchor + timedelta(days=offset * self.pay_period_length)
            return Period(start, start + timedelta(days=self.pay_period_length))
        raise ValueError(f"unknown unit '{unit}'")

    def shift(self, unit: str, moment: datetime, count: int) -> datetime:
        """Move ``moment`` by ``count`` units."""

        if unit == "day":
            return moment + timedelta(days=count)
        if unit == "week":
            return moment + timedelta(weeks=count)
        if unit == "month":
            return add_months(moment, count)
        if unit == "year":
            return add_months(moment, 12 * count)
        if unit == "pay period":
            return moment + timedelta(days=count * self.pay_period_length)
        raise ValueError(f"unknown unit '{unit}'")

    def partition(self, period: Period, unit: str) -> list[Period]:
        """Split a bounded period at unit boundaries."""

        pieces = []
        cursor = period.start
        while cursor < period.end:
            piece = self.unit_bounds(unit, cursor)
            end = min(piece.end, period.end)
            pieces.append(Period(cursor, end))
            cursor = end
        return pieces

    # -- period expressions -----------------------------------------------------

    def resolve(self, text: str, now: datetime) -> Period:
        """Resolve ``text`` to a half-open period relative to ``now``."""

        phrase = normalize(text)
        if not phrase:
            raise InvalidPeriodExpression(text, "empty expression")
        try:
            return self._resolve(phrase, now)
        except (ValueError, OverflowError) as exc:
            if isinstance(exc, (InvalidPeriodExpression, AmbiguousPeriodExpression)):
                raise
            raise InvalidPeriodExpression(text, str(exc)) from exc

    def _resolve(self, phrase: str, now: datetime) -> Period:
        match = _SINCE_RE.match(phrase)
        if match:
            start = self._resolve(match.group("rest"), now).start
            return Period(start, max(now, start))
        match = _BEFORE_RE.match(phrase)
        if match:
            return Period(Period.MIN, self._resolve(match.group("rest"), now).start)
        match = _AFTER_RE.match(phrase)
        if match:
            return Period(self._resolve(match.group("rest"), now).end, Period.MAX)
        match = _FROM_TO_RE.match(phrase)
        if match:
            first = self._resolve(match.group("first"), now)
            second = self._resolve(match.group("second"), now)
            return self._span(phrase, first.start, second.start)
        match = _THROUGH_RE.match(phrase)
        if match:
            first = self._resolve(match.group("first"), now)
            second = self._resolve(match.group("second"), now)
            return self._span(phrase, first.start, second.end)

        period = self._simple(phrase, now)
        if period is not None:
            return period
        instant = self._instant(phrase, now)
        if instant is not None:
            return Period(instant, instant + timedelta(seconds=1))
        raise InvalidPeriodExpression(phrase)

    @staticmethod
    def _span(phrase: str, start: datetime, end: datetime) -> Period:
        if end < start:
            raise InvalidPeriodExpression(phrase, "the range ends before it begins")
        return Period(start, end)

    def _simple(self, phrase: str, now: datetime) -> Optional[Period]:
        match = _SINGLE_DAY_RE.match(phrase)
        if match:
            offset = {"today": 0, "yesterday": -1, "tomorrow": 1}[match.group("word")]
            return self.unit_bounds("day", now + timedelta(days=offset))
        if _EVER_RE.match(phrase):
            return Period(Period.MIN, Period.MAX)
        if phrase == "now":
            moment = now.replace(microsecond=0)
            return Period(moment, moment + timedelta(seconds=1))

        match = _AGO_RE.match(phrase)
        if match:
            unit = self._unit(match.group("unit"))
            count = self._count(match.group("count"))
            return self.unit_bounds(unit, self.shift(unit, now, -count))

        match = _RELATIVE_UNIT_RE.match(phrase)
        if match:
            unit = self._unit(match.group("unit"))
            offset = {"this": 0, "last": -1, "previous": -1, "next": 1}[match.group("which")]
            return self.unit_bounds(unit, self.shift(unit, self.unit_bounds(unit, now).start, offset))
        if _BARE_PAY_PERIOD_RE.match(phrase):
            return self.unit_bounds("pay period", now)

        match = _WEEKDAY_RE.match(phrase)
        if match:
            return self.unit_bounds("day", self._weekday(match.group("which"), match.group("weekday"), now))

        match = _MONTH_RE.match(phrase)
        if match:
            month = _month_number(match.group("month"))
            day = int(match.group("day") or 1)
            if match.group("year"):
                year = int(match.group("year"))
            else:
                # without a year, the most recent such date not after now
                year = now.year if (month, day) <= (now.month, now.day) else now.year - 1
            unit = "day" if match.group("day") else "month"
            return self.unit_bounds(unit, datetime(year, month, day))

        match = _ISO_RE.match(phrase)
        if match:
            year = int(match.group("year"))
            if match.group("day"):
                return self.unit_bounds("day", datetime(year, int(match.group("month")), int(match.group("day"))))
            if match.group("month"):
                return self.unit_bounds("month", datetime(year, int(match.group("month")), 1))
            return self.unit_bounds("year", datetime(year, 1, 1))

        match = _SLASH_RE.match(phrase)
        if match:
            return self.unit_bounds("day", datetime.combine(self._slash_date(phrase, match), time()))
        return None

    @staticmethod
    def _unit(raw: str) -> str:
        return "pay period" if raw in ("pp", "pay period") else raw

    @staticmethod
    def _count(raw: str) -> int:
        return _NUMBER_WORDS[raw] if raw in _NUMBER_WORDS else int(raw)

    def _weekday(self, which: Optional[str], name: str, now: datetime) -> datetime:
        target = _weekday_index(name)
        today = midnight(now)
        if which is None:
            return today - timedelta(days=(today.weekday() - target) % 7)
        week = self.unit_bounds("week", now).start
        this_one = week + timedelta(days=(target - self.week_start) % 7)
        offset = {"this": 0, "last": -7, "previous": -7, "next": 7}[which]
        return this_one + timedelta(days=offset)

    @staticmethod
    def _slash_date(phrase: str, match: re.Match) -> date:
        first, second, year = int(match.group("first")), int(match.group("second")), int(match.group("year"))
        if first <= 12 and second <= 12 and first != second:
            raise AmbiguousPeriodExpression(
                phrase,
                (
                    date(year, first, second).strftime("%B %d, %Y"),
                    date(year, second, first).strftime("%d %B %Y"),
                ),
            )
        if first > 12:
            return date(year, second, first)
        return date(year, first, second)

    # -- single moments -----------------------------------------------------

    def parse_timestamp(self, text: str, now: datetime) -> datetime:
        """Resolve ``text`` to a single moment, e.g. for an event's explicit start."""

        phrase = normalize(text)
        if not phrase:
            raise InvalidPeriodExpression(text, "empty expression")
        try:
            instant = self._instant(phrase, now)
            if instant is not None:
                return instant
            period = self._resolve(phrase, now)
        except (InvalidPeriodExpression, AmbiguousPeriodExpression):
            raise
        except (ValueError, OverflowError) as exc:
            raise InvalidPeriodExpression(text, str(exc)) from exc
        if period.unbounded_start:
            raise InvalidPeriodExpression(text, "does not name a single moment")
        return period.start

    def _instant(self, phrase: str, now: datetime) -> Optional[datetime]:
        if phrase == "now":
            return now.replace(microsecond=0)
        match = _SHORT_AGO_RE.match(phrase)
        if match:
            count = self._count(match.group("count"))
            delta = timedelta(**{match.group("unit") + "s": count})
            return (now - delta).replace(microsecond=0)

        clock = self._time_of_day(phrase)
        if clock is not None:
            return datetime.combine(now.date(), clock)

        match = _WITH_TIME_RE.match(phrase)
        if match:
            clock = self._time_of_day(match.group("time"), require_marker=not match.group("at"))
            if clock is not None:
                day = self._simple(match.group("day"), now)
                if day is not None and not day.unbounded_start:
                    return datetime.combine(day.start.date(), clock)
        return None

    @staticmethod
    def _time_of_day(raw: str, require_marker: bool = True) -> Optional[time]:
        match = _TIME_RE.match(raw.strip())
        if match is None:
            return None
        if match.group("named"):
            return time(12) if match.group("named") == "noon" else time(0)
        meridian = (match.group("meridian") or "").replace(".", "")
        if require_marker and match.group("minute") is None and not meridian:
            # a bare number is a year or a day, not a time
            return None
        hour = int(match.group("hour"))
        minute = int(match.group("minute") or 0)
        second = int(match.group("second") or 0)
        if meridian:
            if not 1 <= hour <= 12:
                raise InvalidPeriodExpression(raw, "hours run from 1 to 12 on a 12-hour clock")
            hour = hour % 12 + (12 if meridian == "pm" else 0)
        if hour > 23 or minute > 59 or second > 59:
            raise InvalidPeriodExpression(raw, "impossible time of day")
        return time(hour, minute, second)
