from datetime import datetime

import pytest

from worklog_engine.event_log import EventLog
from worklog_engine.filters import TagFilter
from worklog_engine.schedule import ScheduleConfig
from worklog_engine.schema import ClosedEvent, Period
from worklog_engine.statistics import log_inventory, statistics
from worklog_engine.vacation import VacationCalendar

NOW = datetime(2024, 3, 13, 18)
WEEK = Period(datetime(2024, 3, 10), datetime(2024, 3, 17))


def _at(day, hour, minute=0):
    return datetime(2024, 3, day, hour, minute)


def _week_log():
    log = EventLog()
    log.append(ClosedEvent(_at(11, 9), _at(11, 11), {"a"}, "monday"))
    log.append(ClosedEvent(_at(12, 9), _at(12, 12), {"a", "b"}, "tuesday"))
    log.append(ClosedEvent(_at(13, 9), _at(13, 10, 30), {"b"}, "wednesday"))
    return log


def _stats(log, span=WEEK, granularity="day", **kwargs):
    schedule = ScheduleConfig(precision="exact")
    return statistics(span, granularity, log, VacationCalendar([], schedule), schedule, NOW, **kwargs)


def test_daily_statistics_over_a_week():
    report = _stats(_week_log())
    assert len(report.per_period) == 7
    assert [hours for _, hours in report.per_period] == [0.0, 2.0, 3.0, 1.5, 0.0, 0.0, 0.0]
    assert report.total_hours == pytest.approx(6.5)
    assert report.by_tag == {"a": 5.0, "b": 4.5}
    assert report.logged_days == 3
    assert report.mean_hours_per_day == pytest.approx(6.5 / 3)
    assert report.mean_hours_per_period == pytest.approx(6.5 / 7)
    assert report.max_hours_per_period == 3.0


def test_weekly_granularity_and_filter():
    report = _stats(_week_log(), granularity="week", tag_filter=TagFilter(all_tags={"b"}))
    assert len(report.per_period) == 1
    assert report.total_hours == pytest.approx(4.5)
    assert report.logged_days == 2


def test_unbounded_span_and_empty_log():
    report = _stats(EventLog(), Period(Period.MIN, Period.MAX))
    assert report.total_hours == 0.0
    assert report.logged_days == 0
    assert report.mean_hours_per_day == 0.0


def test_invalid_granularity():
    with pytest.raises(ValueError):
        _stats(_week_log(), granularity="fortnight")


def test_log_inventory_counts_lines():
    log = EventLog.from_lines(
        [
            "# my log",
            "2024 3 13 9 0 0:a b:first",
            "",
            "2024 3 13 9 30 0<NOTE>n:remark",
            "2024 3 13 10 0 0:DONE",
        ]
    )
    inventory = log_inventory(log)
    assert (inventory.lines, inventory.events, inventory.notes) == (5, 1, 1)
    assert (inventory.comments, inventory.blanks) == (1, 1)
    assert inventory.event_tags == {"a", "b"}
    assert inventory.note_tags == {"n"}
    assert inventory.first == _at(13, 9)
    assert inventory.last == _at(13, 10)
    assert log_inventory(EventLog()).first is None
