"""Entry point for callers: a ledger directory, with timestamps as epoch seconds."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from worklog_engine.config import load_schedule_toml
from worklog_engine.filters import TagFilter
from worklog_engine.locks import DEFAULT_TIMEOUT
from worklog_engine.periods import PeriodResolver
from worklog_engine.projector import quota_hours, when
from worklog_engine.schedule import ScheduleConfig
from worklog_engine.schema import (
    ClosedEvent,
    LogEntry,
    Note,
    OpenEvent,
    Period,
    StatsReport,
    SummaryReport,
    VacationInterval,
    from_epoch,
    to_epoch,
)
from worklog_engine.statistics import LogInventory, log_inventory, statistics
from worklog_engine.store import LogStore, VacationStore
from worklog_engine.summarizer import summarize
from worklog_engine.vacation import VacationCalendar

logger = logging.getLogger(__name__)

LOG_NAME = "log"
VACATION_NAME = "vacation"
CONFIG_NAME = "config.toml"

PeriodLike = Union[str, Period, dict, tuple]


class Ledger:
    """The log, vacation and config files kept together in one directory.

    Periods may be given as expressions ("last week"), as ``Period`` values,
    or as ``(start, end)`` epoch pairs / ``{"start": ..., "end": ...}`` dicts
    where ``None`` leaves that edge open.
    """

    def __init__(
        self,
        directory,
        schedule: Optional[ScheduleConfig] = None,
        lock_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.directory = Path(directory)
        self.config_warning = ""
        if schedule is None:
            schedule, warning = load_schedule_toml(self.directory / CONFIG_NAME)
            if warning:
                logger.warning("%s; using default schedule", warning)
                self.config_warning = warning
        self.schedule = schedule
        self.resolver = PeriodResolver.for_schedule(schedule)
        self.log_store = LogStore(self.directory / LOG_NAME, lock_timeout=lock_timeout)
        self.vacation_store = VacationStore(self.directory / VACATION_NAME)

    def calendar(self) -> VacationCalendar:
        return VacationCalendar(self.vacation_store.load(), self.schedule)

    def _period(self, value: PeriodLike, now: int) -> Period:
        if isinstance(value, Period):
            return value
        if isinstance(value, str):
            return self.resolver.resolve(value, from_epoch(now))
        if isinstance(value, dict):
            value = (value.get("start"), value.get("end"))
        start, end = value
        return Period(
            Period.MIN if start is None else from_epoch(start),
            Period.MAX if end is None else from_epoch(end),
        )

    # -- periods --------------------------------------------------------------

    def resolve_period(self, text: str, now: int) -> dict:
        return self.resolver.resolve(text, from_epoch(now)).as_dict()

    def parse_timestamp(self, text: str, now: int) -> int:
        return to_epoch(self.resolver.parse_timestamp(text, from_epoch(now)))

    # -- mutation -------------------------------------------------------------

    def append_event(
        self,
        start: int,
        tags: Iterable[str] = (),
        description: str = "",
        end: Optional[int] = None,
        note: bool = False,
    ) -> LogEntry:
        moment = from_epoch(start)
        if note:
            entry = Note(moment, frozenset(tags), description)
        elif end is not None:
            entry = ClosedEvent(moment, from_epoch(end), frozenset(tags), description)
        else:
            entry = OpenEvent(moment, frozenset(tags), description)
        return self.log_store.append(entry)

    def resume(self, now: int, tag_filter: Optional[TagFilter] = None) -> Optional[OpenEvent]:
        return self.log_store.resume(from_epoch(now), tag_filter)

    def close_open(self, now: int) -> ClosedEvent:
        return self.log_store.close(from_epoch(now))

    def add_vacation(self, vacation: VacationInterval) -> None:
        self.vacation_store.add(vacation)

    def truncate(self, cutoff: int) -> list[LogEntry]:
        return self.log_store.truncate(from_epoch(cutoff))

    def validate(self) -> None:
        self.log_store.validate()

    # -- queries --------------------------------------------------------------

    def summarize(self, period: PeriodLike, now: int, **flags) -> SummaryReport:
        return summarize(
            self._period(period, now),
            self.log_store.snapshot(),
            self.calendar(),
            self.schedule,
            from_epoch(now),
            **flags,
        )

    def when(self, target_hours: Optional[float], now: int, scope: Optional[PeriodLike] = None) -> int:
        """Epoch second at which ``target_hours`` will have been reached in ``scope`` (default: today).

        Without a target, the quota is one day's hours for each workday of
        the scope up to today.
        """

        period = self._period("today" if scope is None else scope, now)
        log = self.log_store.snapshot()
        moment_now = from_epoch(now)
        target = quota_hours(period, moment_now, log, self.schedule) if target_hours is None else target_hours
        moment = when(target, moment_now, period, log, self.calendar(), self.schedule)
        return to_epoch(moment)

    def statistics(
        self,
        span: PeriodLike,
        granularity: str,
        now: int,
        tag_filter: Optional[TagFilter] = None,
    ) -> StatsReport:
        return statistics(
            self._period(span, now),
            granularity,
            self.log_store.snapshot(),
            self.calendar(),
            self.schedule,
            from_epoch(now),
            tag_filter=tag_filter,
            resolver=self.resolver,
        )

    def inventory(self) -> LogInventory:
        return log_inventory(self.log_store.snapshot())
