"""Error taxonomy for the ledger engine."""

from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    """Base class for every error raised by the engine."""

    retryable = False


class MalformedLogLine(LedgerError, ValueError):
    """A stored record could not be parsed."""

    def __init__(self, line_number: int, text: str, reason: str = "unexpected line format") -> None:
        self.line_number = line_number
        self.text = text
        self.reason = reason
        super().__init__(f"Line {line_number}: {reason}: {text!r}")


class OverlappingEvent(LedgerError):
    """An entry would start before the last recorded moment of the log."""


class OpenEventConflict(OverlappingEvent):
    """A timed event was added while another event is still open."""


class NoOpenEvent(LedgerError):
    """There is no open event to close."""


class InvalidEnd(LedgerError):
    """A close time precedes the start of the open event."""


class InvalidPeriodExpression(LedgerError, ValueError):
    def __init__(self, text: str, reason: Optional[str] = None) -> None:
        self.text = text
        message = f"could not parse '{text}' as a time expression"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class AmbiguousPeriodExpression(LedgerError, ValueError):
    def __init__(self, text: str, readings: tuple[str, ...] = ()) -> None:
        self.text = text
        self.readings = readings
        message = f"'{text}' is ambiguous"
        if readings:
            message += f"; it could mean {' or '.join(readings)}"
        super().__init__(message)


class CorruptLog(LedgerError):
    """The stored log violates an ordering invariant."""

    def __init__(self, line_number: int, reason: str) -> None:
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Line {line_number}: {reason}")


class LockContention(LedgerError):
    """The log lock could not be acquired in time."""

    retryable = True


class NoWorkdaysConfigured(LedgerError):
    """A projection needs at least one workday."""
