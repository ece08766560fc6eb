"""File-backed log and vacation storage."""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from worklog_engine.adapters import vacation_adapter
from worklog_engine.adapters.log_adapter import parse_lines
from worklog_engine.event_log import EventLog
from worklog_engine.filters import TagFilter
from worklog_engine.locks import DEFAULT_TIMEOUT, exclusive_lock, lock_path_for, shared_lock
from worklog_engine.schema import ClosedEvent, LogEntry, OpenEvent, VacationInterval

logger = logging.getLogger(__name__)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""


class LogStore:
    """The log file, read as a whole and mutated under an exclusive lock."""

    def __init__(self, path, lock_timeout: float = DEFAULT_TIMEOUT) -> None:
        self.path = Path(path)
        self.lock_timeout = lock_timeout

    @property
    def lock_path(self) -> Path:
        return lock_path_for(self.path)

    def _load(self) -> tuple[EventLog, str]:
        text = _read_text(self.path)
        # records end at "\n" only; str.splitlines would also break on form feeds and the like
        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()
        return EventLog(parse_lines(lines)), text

    def snapshot(self) -> EventLog:
        with shared_lock(self.lock_path, self.lock_timeout):
            log, _ = self._load()
        return log

    @contextmanager
    def _mutating(self) -> Iterator[EventLog]:
        with exclusive_lock(self.lock_path, self.lock_timeout):
            log, text = self._load()
            yield log
            lines = log.take_pending()
            if not lines:
                return
            prefix = "\n" if text and not text.endswith("\n") else ""
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(prefix + "".join(line + "\n" for line in lines))
            logger.debug("wrote %d line(s) to %s", len(lines), self.path)

    def append(self, entry: LogEntry) -> LogEntry:
        with self._mutating() as log:
            return log.append(entry)

    def close(self, end: datetime) -> ClosedEvent:
        with self._mutating() as log:
            return log.close(end)

    def resume(self, now: datetime, tag_filter: Optional[TagFilter] = None) -> Optional[OpenEvent]:
        with self._mutating() as log:
            return log.resume(now, tag_filter)

    def truncate(self, cutoff: datetime) -> list[LogEntry]:
        """Drop entries that ended before ``cutoff`` and rewrite the file in one step."""

        with exclusive_lock(self.lock_path, self.lock_timeout):
            log, _ = self._load()
            log.validate()
            removed = log.truncate(cutoff)
            if removed:
                self._replace(log.to_lines())
                logger.info("removed %d entries before %s from %s", len(removed), cutoff, self.path)
            return removed

    def _replace(self, lines: list[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=self.path.name + ".", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write("".join(line + "\n" for line in lines))
            os.replace(temp_name, self.path)
        except BaseException:
            os.unlink(temp_name)
            raise

    def validate(self) -> None:
        self.snapshot().validate()


class VacationStore:
    """The vacation file; a missing file means no vacations."""

    def __init__(self, path) -> None:
        self.path = Path(path)

    def load(self) -> list[VacationInterval]:
        if not self.path.exists():
            return []
        return vacation_adapter.parse(str(self.path))

    def add(self, vacation: VacationInterval) -> None:
        text = _read_text(self.path)
        prefix = "\n" if text and not text.endswith("\n") else ""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(prefix + vacation_adapter.format_vacation(vacation) + "\n")
