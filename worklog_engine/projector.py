"""Project when an hour quota will be met."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from worklog_engine.errors import NoWorkdaysConfigured
from worklog_engine.event_log import EventLog
from worklog_engine.schedule import ScheduleConfig
from worklog_engine.schema import Period, SummaryBlock, midnight
from worklog_engine.summarizer import clamp_period, days_in, summarize
from worklog_engine.vacation import VacationCalendar, uncovered

logger = logging.getLogger(__name__)


def _already_reached(blocks: list[SummaryBlock], target_hours: float) -> Optional[datetime]:
    """Earliest moment the running total of ``blocks`` reached ``target_hours``."""

    target = round(target_hours * 3600)
    total = 0
    for block in sorted(blocks, key=lambda block: block.start):
        seconds = round(block.rounded_hours * 3600)
        if total + seconds >= target:
            if block.vacation:
                return block.start
            needed = timedelta(seconds=target - total)
            return min(block.start + needed, block.end)
        total += seconds
    return None


def quota_hours(scope: Period, now: datetime, log: EventLog, schedule: ScheduleConfig) -> float:
    """One daily quota for every workday of ``scope`` up to the end of today, and never less than one."""

    tomorrow = midnight(now) + timedelta(days=1)
    counted = scope.intersect(Period(Period.MIN, tomorrow))
    workdays = 0
    if counted is not None:
        workdays = sum(1 for day in days_in(clamp_period(counted, log, now)) if schedule.is_workday(day))
    return schedule.daily_hours * max(1, workdays)


def when(
    target_hours: float,
    now: datetime,
    scope: Period,
    log: EventLog,
    calendar: VacationCalendar,
    schedule: ScheduleConfig,
) -> datetime:
    """Return the earliest moment the worked plus credited hours in ``scope`` reach ``target_hours``.

    Time already logged, up to the end of today, is taken from the
    summarizer. Any remaining deficit is worked off in the future parts of
    workday windows; vacation on future workdays is credited at once and
    does not use up clock time.
    """

    if not schedule.workdays:
        raise NoWorkdaysConfigured("no workdays are configured; nothing can be projected")

    tomorrow = midnight(now) + timedelta(days=1)
    counted = scope.intersect(Period(Period.MIN, tomorrow))
    blocks: list[SummaryBlock] = []
    logged = 0.0
    if counted is not None:
        report = summarize(counted, log, calendar, schedule, now)
        blocks = report.blocks
        logged = report.total_hours

    deficit = round((target_hours - logged) * 3600)
    if deficit <= 0:
        if target_hours <= 0:
            return now
        reached = _already_reached(blocks, target_hours)
        return reached if reached is not None else now

    logger.debug("projecting %d second(s) still to work from %s", deficit, now)
    worked_today = sum(
        (block.raw_duration for block in blocks if not block.vacation and block.day == now.date()), timedelta(0)
    )

    day = now.date()
    while True:
        if schedule.is_workday(day):
            first = day == now.date()
            window_start, window_end = schedule.workday_window(day)
            vacation = calendar.blocks_on(day, worked_today if first else timedelta(0))
            if not first:
                for block in vacation:
                    deficit -= int(block.raw_duration.total_seconds())
                    if deficit <= 0:
                        return block.start
            cursor = now if first else window_start
            if cursor < window_end:
                busy = [(block.start, block.end) for block in vacation]
                for start, end in uncovered((cursor, window_end), busy):
                    available = int((end - start).total_seconds())
                    if deficit <= available:
                        return start + timedelta(seconds=deficit)
                    deficit -= available
            logger.debug("%s leaves %d second(s) to work", day, deficit)
        day += timedelta(days=1)
