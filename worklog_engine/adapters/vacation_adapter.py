"""Line codec for vacation records."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Iterable, Optional

from worklog_engine.adapters.log_adapter import TAGS_PATTERN, format_tags, format_timestamp, parse_tags
from worklog_engine.errors import MalformedLogLine
from worklog_engine.schema import VACATION_KINDS, VACATION_REPETITIONS, VacationInterval

_TIMESTAMP = r"\s*\d{4}(?:\s+\d{1,2}){5}\s*"
_VACATION_RE = re.compile(
    r"\A(?P<start>" + _TIMESTAMP + r"):(?P<end>" + _TIMESTAMP + r")"
    r":(?P<kind>[012])(?P<repetition>[012])"
    r":(?P<tags>" + TAGS_PATTERN + r")"
    r":(?P<description>(?:\\.|[^:\\])*)"
    r"(?::(?P<effective_from>" + _TIMESTAMP + r")?:(?P<effective_until>" + _TIMESTAMP + r")?)?\Z"
)
_SKIP_RE = re.compile(r"\A\s*(?:#.*)?\Z")

_KIND_CODES = {"ordinary": "0", "flex": "1", "fixed": "2"}
_REPETITION_CODES = {"never": "0", "annual": "1", "monthly": "2"}


def _timestamp(raw: Optional[str], line_number: int, line: str) -> Optional[datetime]:
    if raw is None:
        return None
    try:
        return datetime(*(int(part) for part in raw.split()))
    except ValueError as exc:
        raise MalformedLogLine(line_number, line, f"impossible timestamp ({exc})") from exc


def _unescape(text: str) -> str:
    return re.sub(r"\\(.)", r"\1", text)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace(":", "\\:")


def _parse_row(line: str, line_number: int) -> Optional[VacationInterval]:
    line = line.rstrip("\r\n")
    if _SKIP_RE.match(line):
        return None

    match = _VACATION_RE.match(line)
    if match is None:
        raise MalformedLogLine(line_number, line, "unexpected vacation record format")

    kind = VACATION_KINDS[int(match.group("kind"))]
    repetition = VACATION_REPETITIONS[int(match.group("repetition"))]
    try:
        return VacationInterval(
            start=_timestamp(match.group("start"), line_number, line),
            end=_timestamp(match.group("end"), line_number, line),
            description=_unescape(match.group("description")),
            tags=parse_tags(match.group("tags")),
            kind=kind,
            repetition=repetition,
            effective_from=_timestamp(match.group("effective_from"), line_number, line),
            effective_until=_timestamp(match.group("effective_until"), line_number, line),
        )
    except MalformedLogLine:
        raise
    except ValueError as exc:
        raise MalformedLogLine(line_number, line, str(exc)) from exc


def parse_lines(lines: Iterable[str]) -> list[VacationInterval]:
    vacations: list[VacationInterval] = []
    for line_number, line in enumerate(lines):
        vacation = _parse_row(line, line_number)
        if vacation is not None:
            vacations.append(vacation)
    return vacations


def parse(file_path: str) -> list[VacationInterval]:
    """Parse a vacation file into vacation intervals."""

    with open(file_path, encoding="utf-8") as handle:
        return parse_lines(handle)


def format_vacation(vacation: VacationInterval) -> str:
    line = ":".join(
        [
            format_timestamp(vacation.start),
            format_timestamp(vacation.end),
            _KIND_CODES[vacation.kind] + _REPETITION_CODES[vacation.repetition],
            format_tags(vacation.tags),
            _escape(vacation.description),
        ]
    )
    if vacation.effective_from is not None or vacation.effective_until is not None:
        line += ":" + (format_timestamp(vacation.effective_from) if vacation.effective_from else "")
        line += ":" + (format_timestamp(vacation.effective_until) if vacation.effective_until else "")
    return line
