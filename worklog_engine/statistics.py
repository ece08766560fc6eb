"""Aggregate summaries over calendar sub-periods, and inventory the log."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

import numpy as np

from worklog_engine.event_log import EventLog
from worklog_engine.filters import TagFilter
from worklog_engine.periods import PeriodResolver
from worklog_engine.schedule import ScheduleConfig
from worklog_engine.schema import Period, StatsReport
from worklog_engine.summarizer import clamp_period, summarize
from worklog_engine.vacation import VacationCalendar

logger = logging.getLogger(__name__)

GRANULARITIES = ("day", "week", "month", "year")


def statistics(
    span: Period,
    granularity: str,
    log: EventLog,
    calendar: VacationCalendar,
    schedule: ScheduleConfig,
    now: datetime,
    tag_filter: Optional[TagFilter] = None,
    resolver: Optional[PeriodResolver] = None,
) -> StatsReport:
    """Summarize ``span`` one ``granularity`` unit at a time and aggregate the results."""

    if granularity not in GRANULARITIES:
        raise ValueError(f"invalid granularity '{granularity}'; expected one of {', '.join(GRANULARITIES)}")

    resolver = resolver or PeriodResolver.for_schedule(schedule)
    bounded = clamp_period(span, log, now)
    report = StatsReport(span=bounded, granularity=granularity)

    by_tag: dict[str, float] = defaultdict(float)
    logged_days: set[date] = set()
    for piece in resolver.partition(bounded, granularity):
        summary = summarize(piece, log, calendar, schedule, now, tag_filter=tag_filter)
        report.per_period.append((piece, summary.total_hours))
        for tag, hours in summary.by_tag.items():
            by_tag[tag] += hours
        logged_days.update(block.day for block in summary.blocks if not block.vacation)

    hours = np.asarray([hours for _, hours in report.per_period], dtype=float)
    if hours.size:
        report.total_hours = float(hours.sum())
        report.mean_hours_per_period = float(np.mean(hours))
        report.max_hours_per_period = float(hours.max())
    report.by_tag = dict(by_tag)
    report.logged_days = len(logged_days)
    if logged_days:
        report.mean_hours_per_day = report.total_hours / len(logged_days)

    logger.debug("aggregated %d %s period(s)", len(report.per_period), granularity)
    return report


@dataclass
class LogInventory:
    lines: int = 0
    events: int = 0
    notes: int = 0
    comments: int = 0
    blanks: int = 0
    event_tags: set[str] = field(default_factory=set)
    note_tags: set[str] = field(default_factory=set)
    first: Optional[datetime] = None
    last: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "lines": self.lines,
            "events": self.events,
            "notes": self.notes,
            "comments": self.comments,
            "blanks": self.blanks,
            "event_tags": sorted(self.event_tags),
            "note_tags": sorted(self.note_tags),
            "first": self.first,
            "last": self.last,
        }


def log_inventory(log: EventLog) -> LogInventory:
    """Count what the log file holds, line by line."""

    inventory = LogInventory(lines=len(log.lines))
    for line in log.lines:
        if line.kind == "comment":
            inventory.comments += 1
        elif line.kind == "blank":
            inventory.blanks += 1
        elif line.kind == "event":
            inventory.events += 1
            inventory.event_tags.update(line.tags)
        elif line.kind == "note":
            inventory.notes += 1
            inventory.note_tags.update(line.tags)
    limits = log.limiting_timestamps()
    if limits is not None:
        inventory.first, inventory.last = limits
    return inventory
