from datetime import datetime

import pytest

from worklog_engine.adapters.log_adapter import format_entry, parse as parse_log, parse_lines
from worklog_engine.adapters.vacation_adapter import format_vacation, parse as parse_vacation
from worklog_engine.adapters import vacation_adapter
from worklog_engine.errors import MalformedLogLine
from worklog_engine.schema import ClosedEvent, Note, OpenEvent, VacationInterval


def test_log_parse_classifies_lines(tmp_path):
    path = tmp_path / "log"
    path.write_text(
        "# started tracking\n"
        "2024  3 13  8 55  0:e o:email\n"
        "2024  3 13  9 35  0:DONE\n"
        "\n"
        "2024  3 13  9 40  0<NOTE>o:remember the filing\n",
        encoding="utf-8",
    )
    lines = parse_log(str(path))
    assert [line.kind for line in lines] == ["comment", "event", "done", "blank", "note"]
    assert lines[1].time == datetime(2024, 3, 13, 8, 55)
    assert lines[1].tags == frozenset({"e", "o"})
    assert lines[1].description == "email"
    assert lines[4].description == "remember the filing"


def test_log_parse_accepts_single_spaced_timestamps():
    lines = parse_lines(["2024 3 13 9 0 0::untagged work"])
    assert lines[0].kind == "event"
    assert lines[0].tags == frozenset()
    assert lines[0].description == "untagged work"


def test_log_parse_invalid_line(tmp_path):
    path = tmp_path / "log"
    path.write_text("2024  3 13  9  0  0:a:ok\nnot a log line\n", encoding="utf-8")
    with pytest.raises(ValueError) as excinfo:
        parse_log(str(path))
    assert excinfo.value.line_number == 1


def test_log_parse_impossible_timestamp():
    with pytest.raises(MalformedLogLine):
        parse_lines(["2024 13  1  0  0  0:a:bad month"])


def test_event_round_trip_with_escaped_tags():
    event = ClosedEvent(
        datetime(2024, 1, 2, 3, 4, 5),
        datetime(2024, 1, 2, 4, 0, 0),
        frozenset({"a:b", "c d", "x<y", "back\\slash"}),
        "desc: with a colon",
    )
    first, done = parse_lines(format_entry(event))
    assert first.time == event.start
    assert first.tags == event.tags
    assert first.description == event.description
    assert done.kind == "done"
    assert done.time == event.end


def test_open_event_and_note_format_as_single_lines():
    assert format_entry(OpenEvent(datetime(2024, 1, 2, 9), frozenset({"b", "a"}), "x")) == ["2024  1  2  9  0  0:a b:x"]
    assert format_entry(Note(datetime(2024, 1, 2, 9), frozenset(), "hi")) == ["2024  1  2  9  0  0<NOTE>:hi"]


def test_vacation_round_trip():
    vacation = VacationInterval(
        start=datetime(2024, 12, 24),
        end=datetime(2024, 12, 26),
        description="holiday: family",
        tags=frozenset({"vac"}),
        kind="ordinary",
        repetition="annual",
        effective_from=datetime(2024, 1, 1),
    )
    assert vacation_adapter.parse_lines([format_vacation(vacation)]) == [vacation]


def test_vacation_parse_skips_comments_and_reads_kinds(tmp_path):
    path = tmp_path / "vacation"
    path.write_text(
        "# days off\n"
        "2024  7  1  9  0  0:2024  7  1 13  0  0:20:dentist:half day\n"
        "2024  8  1  0  0  0:2024  8  3  0  0  0:10::flexible\n",
        encoding="utf-8",
    )
    vacations = parse_vacation(str(path))
    assert [vacation.kind for vacation in vacations] == ["fixed", "flex"]
    assert vacations[0].tags == frozenset({"dentist"})
    assert not vacations[1].repeating


def test_vacation_parse_malformed(tmp_path):
    path = tmp_path / "vacation"
    path.write_text("2024  7  1  9  0  0:oops\n", encoding="utf-8")
    with pytest.raises(ValueError):
        parse_vacation(str(path))


def test_years_before_1000_are_zero_padded():
    event = ClosedEvent(datetime(999, 5, 6, 7, 8, 9), datetime(999, 5, 6, 8, 0, 0), frozenset({"old"}), "ancient")
    lines = format_entry(event)
    assert lines[0].startswith("0999  5  6  7  8  9")
    first, done = parse_lines(lines)
    assert (first.time, done.time) == (event.start, event.end)

    vacation = VacationInterval(datetime(999, 7, 1), datetime(999, 7, 8), "summer")
    assert vacation_adapter.parse_lines([format_vacation(vacation)]) == [vacation]


def test_year_zero_is_malformed():
    with pytest.raises(MalformedLogLine):
        parse_lines(["0000  1  1  0  0  0:a:no such year"])
