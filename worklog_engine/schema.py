"""Core data schema for ledger entries, vacations and reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Union


def from_epoch(seconds: float) -> datetime:
    """Convert epoch seconds to a naive local timestamp at second precision."""

    return datetime.fromtimestamp(int(seconds))


def to_epoch(moment: datetime) -> int:
    """Convert a naive local timestamp to epoch seconds."""

    return int(moment.timestamp())


def midnight(moment: datetime) -> datetime:
    return datetime(moment.year, moment.month, moment.day)


def _tags(tags) -> frozenset[str]:
    cleaned = frozenset(tags or ())
    if any(not isinstance(tag, str) or not tag.strip() or "\n" in tag or "\r" in tag for tag in cleaned):
        raise ValueError("tags must be non-empty single-line strings")
    return cleaned


def _description(text: Optional[str]) -> str:
    text = text or ""
    if "\n" in text or "\r" in text:
        raise ValueError("descriptions must fit on a single line")
    return text


@dataclass(frozen=True)
class ClosedEvent:
    """A finished stretch of work."""

    start: datetime
    end: datetime
    tags: frozenset[str] = frozenset()
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", _tags(self.tags))
        object.__setattr__(self, "description", _description(self.description))
        if self.end < self.start:
            raise ValueError("an event cannot end before it starts")

    is_note = False
    is_open = False

    def duration(self, now: Optional[datetime] = None) -> timedelta:
        return self.end - self.start


@dataclass(frozen=True)
class OpenEvent:
    """A started activity whose end is implicitly the current moment."""

    start: datetime
    tags: frozenset[str] = frozenset()
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", _tags(self.tags))
        object.__setattr__(self, "description", _description(self.description))

    is_note = False
    is_open = True

    @property
    def end(self) -> None:
        return None

    def duration(self, now: datetime) -> timedelta:
        return max(timedelta(0), now - self.start)

    def closed_at(self, end: datetime) -> ClosedEvent:
        return ClosedEvent(self.start, end, self.tags, self.description)


@dataclass(frozen=True)
class Note:
    """A zero-duration remark."""

    at: datetime
    tags: frozenset[str] = frozenset()
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", _tags(self.tags))
        object.__setattr__(self, "description", _description(self.description))

    is_note = True
    is_open = False

    @property
    def start(self) -> datetime:
        return self.at

    @property
    def end(self) -> datetime:
        return self.at

    def duration(self, now: Optional[datetime] = None) -> timedelta:
        return timedelta(0)


LogEntry = Union[ClosedEvent, OpenEvent, Note]
TimedEvent = Union[ClosedEvent, OpenEvent]


VACATION_KINDS = ("ordinary", "flex", "fixed")
VACATION_REPETITIONS = ("never", "annual", "monthly")


@dataclass(frozen=True)
class VacationInterval:
    """A vacation span, possibly recurring annually or monthly."""

    start: datetime
    end: datetime
    description: str = ""
    tags: frozenset[str] = frozenset()
    kind: str = "ordinary"
    repetition: str = "never"
    effective_from: Optional[datetime] = None
    effective_until: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", _tags(self.tags))
        object.__setattr__(self, "description", _description(self.description))
        if self.kind not in VACATION_KINDS:
            raise ValueError(f"invalid vacation kind '{self.kind}'")
        if self.repetition not in VACATION_REPETITIONS:
            raise ValueError(f"invalid vacation repetition '{self.repetition}'")
        if self.end <= self.start:
            raise ValueError("a vacation must end after it starts")
        if self.kind != "ordinary" and self.repeating:
            raise ValueError("fixed and flex vacation records cannot repeat")

    @property
    def repeating(self) -> bool:
        return self.repetition != "never"

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def active_on(self, day: date) -> bool:
        """Whether a repeating rule is in force on ``day``."""

        if self.effective_from is not None and day < self.effective_from.date():
            return False
        if self.effective_until is not None and day >= self.effective_until.date():
            return False
        return True


@dataclass(frozen=True)
class Period:
    """Half-open time range ``[start, end)``."""

    start: datetime
    end: datetime

    MIN = datetime.min
    MAX = datetime.max

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("a period cannot end before it starts")

    @property
    def unbounded_start(self) -> bool:
        return self.start == datetime.min

    @property
    def unbounded_end(self) -> bool:
        return self.end == datetime.max

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def intersect(self, other: "Period") -> Optional["Period"]:
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if end <= start:
            return None
        return Period(start, end)

    def as_dict(self) -> dict:
        return {
            "start": None if self.unbounded_start else to_epoch(self.start),
            "end": None if self.unbounded_end else to_epoch(self.end),
        }


@dataclass
class SummaryBlock:
    """A same-day slice of an event or vacation, ready for display."""

    start: datetime
    end: datetime
    tags: frozenset[str]
    description: str
    raw_duration: timedelta
    rounded_hours: float = 0.0
    vacation: bool = False
    ongoing: bool = False
    continues_before: bool = False
    continues_after: bool = False

    @property
    def span(self) -> Period:
        return Period(self.start, self.end)

    @property
    def day(self) -> date:
        return self.start.date()

    def as_dict(self) -> dict:
        return {
            "start": to_epoch(self.start),
            "end": to_epoch(self.end),
            "tags": sorted(self.tags),
            "description": self.description,
            "raw_hours": self.raw_duration.total_seconds() / 3600.0,
            "hours": self.rounded_hours,
            "vacation": self.vacation,
            "ongoing": self.ongoing,
        }


@dataclass
class DaySummary:
    day: date
    blocks: list[SummaryBlock] = field(default_factory=list)

    @property
    def total_hours(self) -> float:
        return sum(block.rounded_hours for block in self.blocks)


@dataclass
class SummaryReport:
    """Aggregated result of a summary query."""

    period: Period
    days: list[DaySummary] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)
    total_hours: float = 0.0
    by_tag: dict[str, float] = field(default_factory=dict)
    untagged_hours: float = 0.0
    vacation_hours: float = 0.0

    @property
    def blocks(self) -> list[SummaryBlock]:
        return [block for day in self.days for block in day.blocks]

    def as_dict(self) -> dict:
        return {
            "period": self.period.as_dict(),
            "days": [
                {
                    "day": day.day.isoformat(),
                    "hours": day.total_hours,
                    "blocks": [block.as_dict() for block in day.blocks],
                }
                for day in self.days
            ],
            "notes": [
                {"time": to_epoch(note.at), "tags": sorted(note.tags), "description": note.description}
                for note in self.notes
            ],
            "total_hours": self.total_hours,
            "by_tag": dict(sorted(self.by_tag.items())),
            "untagged_hours": self.untagged_hours,
            "vacation_hours": self.vacation_hours,
        }


@dataclass
class StatsReport:
    """Per-sub-period aggregation of summary results."""

    span: Period
    granularity: str
    total_hours: float = 0.0
    by_tag: dict[str, float] = field(default_factory=dict)
    per_period: list[tuple[Period, float]] = field(default_factory=list)
    logged_days: int = 0
    mean_hours_per_day: float = 0.0
    mean_hours_per_period: float = 0.0
    max_hours_per_period: float = 0.0

    def as_dict(self) -> dict:
        return {
            "span": self.span.as_dict(),
            "granularity": self.granularity,
            "total_hours": self.total_hours,
            "by_tag": dict(sorted(self.by_tag.items())),
            "per_period": [{**period.as_dict(), "hours": hours} for period, hours in self.per_period],
            "logged_days": self.logged_days,
            "mean_hours_per_day": self.mean_hours_per_day,
            "mean_hours_per_period": self.mean_hours_per_period,
            "max_hours_per_period": self.max_hours_per_period,
        }
