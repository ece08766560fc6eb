"""Vacation credit per calendar day."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from worklog_engine.schedule import ScheduleConfig
from worklog_engine.schema import SummaryBlock, VacationInterval

logger = logging.getLogger(__name__)

_KIND_ORDER = {"ordinary": 0, "fixed": 1, "flex": 2}

Span = tuple[datetime, datetime]


def _priority(vacation: VacationInterval):
    # repeating before one-off, narrower before wider, ordinary over fixed over flex
    return (0 if vacation.repeating else 1, vacation.duration, _KIND_ORDER[vacation.kind])


def _overlap(first: Span, second: Span) -> Optional[Span]:
    start = max(first[0], second[0])
    end = min(first[1], second[1])
    if end <= start:
        return None
    return start, end


def uncovered(span: Span, covered: list[Span]) -> list[Span]:
    pieces = [span]
    for taken in covered:
        remaining = []
        for start, end in pieces:
            if taken[1] <= start or end <= taken[0]:
                remaining.append((start, end))
                continue
            if start < taken[0]:
                remaining.append((start, taken[0]))
            if taken[1] < end:
                remaining.append((taken[1], end))
        pieces = remaining
    return pieces


def _seconds(spans: Iterable[Span]) -> int:
    return sum(int((end - start).total_seconds()) for start, end in spans)


class VacationCalendar:
    """Resolve vacation intervals into credited spans on workdays.

    Ordinary vacations, repeating or not, credit their overlap with the day's
    workday window, and fixed vacations their exact span inside that window;
    flex vacations fill whatever part of the daily quota is neither worked
    nor already credited. No moment is credited twice.
    """

    def __init__(self, intervals: Iterable[VacationInterval] = (), schedule: Optional[ScheduleConfig] = None) -> None:
        self.intervals = sorted(intervals, key=_priority)
        self.schedule = schedule or ScheduleConfig()

    def __bool__(self) -> bool:
        return bool(self.intervals)

    def _instances(self, vacation: VacationInterval, day: date) -> list[Span]:
        if not vacation.repeating:
            return [(vacation.start, vacation.end)]
        if not vacation.active_on(day):
            return []

        if vacation.repetition == "annual":
            anchors = [(day.year - 1, vacation.start.month), (day.year, vacation.start.month)]
        else:
            previous = date(day.year, day.month, 1) - timedelta(days=1)
            anchors = [(previous.year, previous.month), (day.year, day.month)]

        spans = []
        for year, month in anchors:
            try:
                start = vacation.start.replace(year=year, month=month)
            except ValueError:
                # no February 29th, or no 31st, this time round
                continue
            spans.append((start, start + vacation.duration))
        return spans

    def blocks_on(self, day: date, worked: timedelta = timedelta(0)) -> list[SummaryBlock]:
        """Vacation credited on ``day`` as summary blocks, in chronological order."""

        if not self.intervals or not self.schedule.is_workday(day):
            return []

        window = self.schedule.workday_window(day)
        covered: list[Span] = []
        blocks: list[SummaryBlock] = []

        def credit(vacation: VacationInterval, spans: list[Span]) -> None:
            for start, end in spans:
                covered.append((start, end))
                blocks.append(
                    SummaryBlock(
                        start=start,
                        end=end,
                        tags=vacation.tags,
                        description=vacation.description,
                        raw_duration=end - start,
                        vacation=True,
                    )
                )

        for vacation in self.intervals:
            for instance in self._instances(vacation, day):
                span = _overlap(instance, window)
                if span is None:
                    continue
                pieces = uncovered(span, covered)
                if vacation.kind == "flex":
                    budget = int(self.schedule.day_length.total_seconds()) - int(worked.total_seconds()) - _seconds(covered)
                    pieces = self._trim(pieces, budget)
                credit(vacation, pieces)

        blocks.sort(key=lambda block: block.start)
        if blocks:
            logger.debug("credited %d vacation block(s) on %s", len(blocks), day)
        return blocks

    @staticmethod
    def _trim(pieces: list[Span], budget: int) -> list[Span]:
        trimmed = []
        for start, end in pieces:
            if budget <= 0:
                break
            length = min(budget, int((end - start).total_seconds()))
            trimmed.append((start, start + timedelta(seconds=length)))
            budget -= length
        return trimmed

    def credit_on(self, day: date, worked: timedelta = timedelta(0)) -> timedelta:
        return sum((block.raw_duration for block in self.blocks_on(day, worked)), timedelta(0))

    def hours_on(self, day: date, worked: timedelta = timedelta(0)) -> float:
        """Vacation hours credited for ``day``; zero on non-workdays."""

        return self.credit_on(day, worked).total_seconds() / 3600.0

    def seconds_after(self, day: date, instant: datetime, worked: timedelta = timedelta(0)) -> int:
        """Seconds of vacation credited on ``day`` at or after ``instant``."""

        total = 0
        for block in self.blocks_on(day, worked):
            if block.end > instant:
                total += int((block.end - max(block.start, instant)).total_seconds())
        return total
