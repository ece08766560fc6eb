"""Line codec for the plain-text work log."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from worklog_engine.errors import MalformedLogLine
from worklog_engine.schema import ClosedEvent, LogEntry, Note, OpenEvent

TIMESTAMP_PATTERN = (
    r"\s*(?P<year>\d{4})\s+(?P<month>\d{1,2})\s+(?P<day>\d{1,2})"
    r"\s+(?P<hour>\d{1,2})\s+(?P<minute>\d{1,2})\s+(?P<second>\d{1,2})\s*"
)
TAGS_PATTERN = r"(?:\\.|[^:<\\])*"

_ITEM_RE = re.compile(
    r"\A"
    + TIMESTAMP_PATTERN
    + r"(?:(?P<done>:DONE\s*)|(?P<separator>:|<NOTE>)(?P<tags>"
    + TAGS_PATTERN
    + r"):(?P<description>.*))\Z"
)
_COMMENT_RE = re.compile(r"\A\s*#")

DONE_MARKER = ":DONE"
NOTE_MARKER = "<NOTE>"
_ESCAPED = {":", "<", "\\", " "}


@dataclass(frozen=True)
class LogLine:
    """One physical line of the log, classified."""

    kind: str
    number: int
    time: Optional[datetime] = None
    tags: frozenset[str] = frozenset()
    description: str = ""
    text: str = ""

    @property
    def timed(self) -> bool:
        return self.time is not None


def parse_timestamp_fields(match: re.Match, line_number: int, line: str) -> datetime:
    try:
        return datetime(
            int(match.group("year")),
            int(match.group("month")),
            int(match.group("day")),
            int(match.group("hour")),
            int(match.group("minute")),
            int(match.group("second")),
        )
    except ValueError as exc:
        raise MalformedLogLine(line_number, line, f"impossible timestamp ({exc})") from exc


def format_timestamp(moment: datetime) -> str:
    return (
        f"{moment.year:04} {moment.month:>2} {moment.day:>2} "
        f"{moment.hour:>2} {moment.minute:>2} {moment.second:>2}"
    )


def parse_tags(raw: str) -> frozenset[str]:
    """Split an escaped, space-delimited tag list into a set of tags."""

    tags: set[str] = set()
    current: list[str] = []
    escaped = False
    for char in raw:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == " ":
            if current:
                tags.add("".join(current))
            current = []
        else:
            current.append(char)
    if current:
        tags.add("".join(current))
    return frozenset(tags)


def format_tags(tags: Iterable[str]) -> str:
    return " ".join(
        "".join("\\" + char if char in _ESCAPED else char for char in tag) for tag in sorted(tags)
    )


def _parse_line(line: str, line_number: int) -> LogLine:
    line = line.rstrip("\r\n")
    if not line.strip():
        return LogLine("blank", line_number, text=line)
    if _COMMENT_RE.match(line):
        return LogLine("comment", line_number, text=line)

    match = _ITEM_RE.match(line)
    if match is None:
        raise MalformedLogLine(line_number, line)

    time = parse_timestamp_fields(match, line_number, line)
    if match.group("done"):
        return LogLine("done", line_number, time=time, text=line)

    kind = "note" if match.group("separator") == NOTE_MARKER else "event"
    return LogLine(
        kind,
        line_number,
        time=time,
        tags=parse_tags(match.group("tags")),
        description=match.group("description"),
        text=line,
    )


def parse_lines(lines: Iterable[str], start: int = 0) -> list[LogLine]:
    """Classify raw lines; line numbers are zero-based offsets into the file."""

    return [_parse_line(line, number) for number, line in enumerate(lines, start=start)]


def parse(file_path: str) -> list[LogLine]:
    """Parse a log file into classified lines."""

    with open(file_path, encoding="utf-8") as handle:
        return parse_lines(handle)


def format_done(moment: datetime) -> str:
    return format_timestamp(moment) + DONE_MARKER


def format_entry(entry: LogEntry) -> list[str]:
    """Render an entry as the log lines that record it."""

    if isinstance(entry, Note):
        return [f"{format_timestamp(entry.at)}{NOTE_MARKER}{format_tags(entry.tags)}:{entry.description}"]

    head = f"{format_timestamp(entry.start)}:{format_tags(entry.tags)}:{entry.description}"
    if isinstance(entry, ClosedEvent):
        return [head, format_done(entry.end)]
    if isinstance(entry, OpenEvent):
        return [head]
    raise TypeError(f"cannot format {type(entry).__name__}")
