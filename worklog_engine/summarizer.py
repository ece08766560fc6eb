"""Turn log entries into per-day, rounded summary blocks."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from worklog_engine.event_log import EventLog
from worklog_engine.filters import TagFilter
from worklog_engine.schedule import ScheduleConfig
from worklog_engine.schema import DaySummary, Period, SummaryBlock, SummaryReport, TimedEvent, midnight
from worklog_engine.vacation import VacationCalendar

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def clamp_period(period: Period, log: EventLog, now: datetime) -> Period:
    """Replace unbounded edges with the first logged day and the later of the last entry and now."""

    start, end = period.start, period.end
    if period.unbounded_start:
        first = log.first_entry()
        start = midnight(first.start if first is not None else now)
    if period.unbounded_end:
        last = log.last_time
        end = midnight(max(last, now) if last is not None else now) + ONE_DAY
    return Period(start, max(start, end))


def days_in(period: Period) -> list[date]:
    if period.end <= period.start:
        return []
    day = period.start.date()
    last = (period.end - timedelta(microseconds=1)).date()
    days = []
    while day <= last:
        days.append(day)
        day += ONE_DAY
    return days


def _selected(entry, tag_filter: Optional[TagFilter]) -> bool:
    return tag_filter is None or tag_filter.matches(entry)


def split_event(event: TimedEvent, period: Period, now: datetime) -> list[SummaryBlock]:
    """Clip ``event`` to ``period`` and cut it at every midnight it crosses."""

    end = event.end if event.end is not None else max(now, event.start)
    start = max(event.start, period.start)
    stop = min(end, period.end)
    if stop < start or (stop == start and not period.contains(start)):
        return []

    blocks = []
    cursor = start
    while True:
        piece_end = min(stop, midnight(cursor) + ONE_DAY)
        blocks.append(
            SummaryBlock(
                start=cursor,
                end=piece_end,
                tags=event.tags,
                description=event.description,
                raw_duration=piece_end - cursor,
                ongoing=event.is_open and piece_end == end,
                continues_before=cursor > event.start,
                continues_after=piece_end < end,
            )
        )
        if piece_end >= stop:
            return blocks
        cursor = piece_end


def merge_blocks(blocks: Iterable[SummaryBlock]) -> list[SummaryBlock]:
    """Join contiguous same-day blocks that share tags and description."""

    merged: list[SummaryBlock] = []
    for block in blocks:
        previous = merged[-1] if merged else None
        if (
            previous is not None
            and not previous.vacation
            and not block.vacation
            and previous.end == block.start
            and previous.day == block.day
            and previous.tags == block.tags
            and previous.description == block.description
        ):
            merged[-1] = replace(
                previous,
                end=block.end,
                raw_duration=previous.raw_duration + block.raw_duration,
                ongoing=block.ongoing,
                continues_after=block.continues_after,
            )
        else:
            merged.append(block)
    return merged


def _worked_by_day(blocks: Iterable[SummaryBlock]) -> dict[date, timedelta]:
    worked: dict[date, timedelta] = defaultdict(timedelta)
    for block in blocks:
        worked[block.day] += block.raw_duration
    return worked


def summarize(
    period: Period,
    log: EventLog,
    calendar: VacationCalendar,
    schedule: ScheduleConfig,
    now: datetime,
    *,
    notes: bool = False,
    include_empty: bool = False,
    merge: bool = True,
    tag_filter: Optional[TagFilter] = None,
) -> SummaryReport:
    """Summarize ``period`` of ``log``.

    Events are clipped to the period (open events to ``now``), split at
    midnight, merged, credited with vacation on workdays, and each block is
    rounded at the schedule's precision before the totals are added up. With
    ``notes`` set, only the notes in the period are returned.
    """

    span = clamp_period(period, log, now)
    report = SummaryReport(period=span)

    if notes:
        report.notes = [note for note in log.range(span, events=False) if _selected(note, tag_filter)]
        return report

    blocks: list[SummaryBlock] = []
    for event in log.range(span, notes=False):
        if _selected(event, tag_filter):
            blocks.extend(split_event(event, span, now))
    if merge:
        blocks = merge_blocks(blocks)

    worked = _worked_by_day(blocks)
    for day in days_in(span):
        for block in calendar.blocks_on(day, worked.get(day, timedelta(0))):
            if not _selected(block, tag_filter):
                continue
            clipped = span.intersect(block.span)
            if clipped is None:
                continue
            blocks.append(replace(block, start=clipped.start, end=clipped.end, raw_duration=clipped.end - clipped.start))

    by_day: dict[date, list[SummaryBlock]] = defaultdict(list)
    for block in sorted(blocks, key=lambda block: (block.start, block.vacation)):
        block.rounded_hours = schedule.round_hours(int(block.raw_duration.total_seconds()))
        by_day[block.day].append(block)

    days = days_in(span) if include_empty else sorted(by_day)
    report.days = [DaySummary(day, by_day.get(day, [])) for day in days]

    by_tag: dict[str, float] = defaultdict(float)
    for block in report.blocks:
        report.total_hours += block.rounded_hours
        if block.vacation:
            report.vacation_hours += block.rounded_hours
        if not block.tags:
            report.untagged_hours += block.rounded_hours
        for tag in block.tags:
            by_tag[tag] += block.rounded_hours
    report.by_tag = dict(by_tag)

    logger.debug("summarized %d block(s) over %s - %s", len(report.blocks), span.start, span.end)
    return report
