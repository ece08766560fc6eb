"""Append-only, time-ordered log of events and notes."""

from __future__ import annotations

import heapq
import logging
from bisect import bisect_left
from datetime import datetime
from typing import Iterable, Iterator, Optional

from worklog_engine.adapters.log_adapter import LogLine, format_done, format_entry, parse_lines
from worklog_engine.errors import CorruptLog, InvalidEnd, NoOpenEvent, OpenEventConflict, OverlappingEvent
from worklog_engine.schema import ClosedEvent, LogEntry, Note, OpenEvent, Period, TimedEvent

logger = logging.getLogger(__name__)


class LogRange:
    """Restartable view over the entries of a log overlapping a period."""

    def __init__(self, log: "EventLog", period: Period, events: bool = True, notes: bool = True) -> None:
        self._log = log
        self.period = period
        self._events = events
        self._notes = notes

    def __iter__(self) -> Iterator[LogEntry]:
        streams = []
        if self._events:
            streams.append(self._log._events_overlapping(self.period))
        if self._notes:
            streams.append(self._log._notes_within(self.period))
        return heapq.merge(*streams, key=lambda entry: entry.start)


class EventLog:
    """In-memory model of the log file.

    The raw line stream is kept alongside the derived event and note lists so
    that ``validate`` can point at the offending line. Mutations queue the
    lines they produce; the caller persists them with ``take_pending``.
    """

    def __init__(self, lines: Optional[list[LogLine]] = None) -> None:
        self._pending: list[str] = []
        self._load(lines or [])

    @classmethod
    def from_lines(cls, texts: Iterable[str]) -> "EventLog":
        return cls(parse_lines(texts))

    def _load(self, lines: list[LogLine]) -> None:
        self._lines = list(lines)
        self._events: list[TimedEvent] = []
        self._notes: list[Note] = []
        self._last_time: Optional[datetime] = None

        pending: Optional[LogLine] = None
        for line in self._lines:
            if not line.timed:
                continue
            if self._last_time is None or line.time > self._last_time:
                self._last_time = line.time
            if line.kind == "note":
                self._notes.append(Note(line.time, line.tags, line.description))
            elif line.kind == "done":
                if pending is not None:
                    self._events.append(self._closed(pending, line.time))
                    pending = None
            else:
                # an event line ends any event still open
                if pending is not None:
                    self._events.append(self._closed(pending, line.time))
                pending = line
        if pending is not None:
            self._events.append(OpenEvent(pending.time, pending.tags, pending.description))
        self._reindex()

    @staticmethod
    def _closed(line: LogLine, end: datetime) -> ClosedEvent:
        # out-of-order ends are reported by validate(), not here
        return ClosedEvent(line.time, max(end, line.time), line.tags, line.description)

    def _reindex(self) -> None:
        self._event_starts = [event.start for event in self._events]
        self._note_times = [note.at for note in self._notes]

    def _push_lines(self, texts: list[str]) -> None:
        self._lines.extend(parse_lines(texts, start=len(self._lines)))
        self._pending.extend(texts)

    # -- inspection ---------------------------------------------------------

    @property
    def lines(self) -> tuple[LogLine, ...]:
        return tuple(self._lines)

    @property
    def events(self) -> tuple[TimedEvent, ...]:
        return tuple(self._events)

    @property
    def notes(self) -> tuple[Note, ...]:
        return tuple(self._notes)

    @property
    def open_event(self) -> Optional[OpenEvent]:
        if self._events and isinstance(self._events[-1], OpenEvent):
            return self._events[-1]
        return None

    @property
    def last_time(self) -> Optional[datetime]:
        return self._last_time

    def __len__(self) -> int:
        return len(self._events) + len(self._notes)

    def first_entry(self) -> Optional[LogEntry]:
        candidates = [entries[0] for entries in (self._events, self._notes) if entries]
        return min(candidates, key=lambda entry: entry.start, default=None)

    def last_event(self) -> Optional[TimedEvent]:
        return self._events[-1] if self._events else None

    def last_note(self) -> Optional[Note]:
        return self._notes[-1] if self._notes else None

    def limiting_timestamps(self) -> Optional[tuple[datetime, datetime]]:
        first = self.first_entry()
        if first is None:
            return None
        return first.start, self._last_time

    def take_pending(self) -> list[str]:
        pending, self._pending = self._pending, []
        return pending

    # -- mutation -----------------------------------------------------------

    def append(self, entry: LogEntry) -> LogEntry:
        """Record a new event or note at the end of the log."""

        if not entry.is_note and self.open_event is not None:
            raise OpenEventConflict(
                f"'{self.open_event.description}' is still open; close it before adding another event"
            )
        if self._last_time is not None and entry.start < self._last_time:
            raise OverlappingEvent(f"{entry.start} precedes the last recorded moment {self._last_time}")

        self._push_lines(format_entry(entry))
        if entry.is_note:
            self._notes.append(entry)
        else:
            self._events.append(entry)
        self._last_time = entry.end if entry.end is not None else entry.start
        self._reindex()
        logger.debug("appended %s at %s", type(entry).__name__, entry.start)
        return entry

    def close(self, end: datetime) -> ClosedEvent:
        """Set the end of the open event."""

        current = self.open_event
        if current is None:
            raise NoOpenEvent("there is no open event to close")
        if end < current.start:
            raise InvalidEnd(f"{end} precedes the start of the open event, {current.start}")
        if self._last_time is not None and end < self._last_time:
            raise InvalidEnd(f"{end} precedes the last recorded moment {self._last_time}")

        closed = current.closed_at(end)
        self._push_lines([format_done(end)])
        self._events[-1] = closed
        self._last_time = end
        logger.debug("closed event started at %s at %s", closed.start, end)
        return closed

    def resume(self, now: datetime, tag_filter=None) -> Optional[OpenEvent]:
        """Reopen the most recent closed event (matching the filter) as a new event."""

        if self.open_event is not None:
            raise OpenEventConflict(f"'{self.open_event.description}' is still open")
        for event in reversed(self._events):
            if tag_filter is None or tag_filter.matches(event):
                return self.append(OpenEvent(now, event.tags, event.description))
        return None

    def truncate(self, cutoff: datetime) -> list[LogEntry]:
        """Drop entries that ended strictly before ``cutoff``; returns what was removed."""

        def expired(entry: LogEntry) -> bool:
            moment = entry.start if entry.end is None else entry.end
            return moment < cutoff

        removed = [entry for entry in heapq.merge(self._events, self._notes, key=lambda e: e.start) if expired(entry)]
        if not removed:
            return []

        self._events = [event for event in self._events if not expired(event)]
        self._notes = [note for note in self._notes if not expired(note)]
        self._pending = []
        self._load(parse_lines(self.to_lines()))
        logger.debug("truncated %d entries before %s", len(removed), cutoff)
        return removed

    # -- queries --------------------------------------------------------------

    def seek(self, moment: datetime) -> int:
        """Index of the first event starting at or after ``moment``."""

        return bisect_left(self._event_starts, moment)

    def range(self, period: Period, events: bool = True, notes: bool = True) -> LogRange:
        return LogRange(self, period, events=events, notes=notes)

    def _events_overlapping(self, period: Period) -> Iterator[TimedEvent]:
        index = self.seek(period.start)
        if index > 0:
            previous = self._events[index - 1]
            # an event that ends exactly at the boundary merely abuts the period
            if previous.end is None or previous.end > period.start:
                index -= 1
        while index < len(self._events) and self._events[index].start < period.end:
            yield self._events[index]
            index += 1

    def _notes_within(self, period: Period) -> Iterator[Note]:
        index = bisect_left(self._note_times, period.start)
        while index < len(self._notes) and self._notes[index].at < period.end:
            yield self._notes[index]
            index += 1

    # -- consistency ----------------------------------------------------------

    def validate(self) -> None:
        """Walk the raw lines checking the ordering and open-event invariants."""

        previous: Optional[datetime] = None
        open_since: Optional[LogLine] = None
        for line in self._lines:
            if not line.timed:
                continue
            if previous is not None and line.time < previous:
                raise CorruptLog(line.number, f"timestamp {line.time} precedes the preceding timestamp {previous}")
            if line.kind == "event":
                open_since = line
            elif line.kind == "done":
                if open_since is None:
                    raise CorruptLog(line.number, "DONE line without an open event")
                open_since = None
            previous = line.time

    def to_lines(self) -> list[str]:
        """Serialize the normalized log: events with explicit DONE lines, notes interleaved."""

        def event_lines() -> Iterator[tuple[datetime, str]]:
            for event in self._events:
                texts = format_entry(event)
                yield event.start, texts[0]
                if event.end is not None:
                    yield event.end, texts[1]

        def note_lines() -> Iterator[tuple[datetime, str]]:
            for note in self._notes:
                yield note.at, format_entry(note)[0]

        return [text for _, text in heapq.merge(event_lines(), note_lines(), key=lambda pair: pair[0])]
