from datetime import datetime

import pytest

from worklog_engine.errors import NoWorkdaysConfigured
from worklog_engine.event_log import EventLog
from worklog_engine.projector import quota_hours, when
from worklog_engine.schedule import ScheduleConfig
from worklog_engine.schema import ClosedEvent, OpenEvent, Period, VacationInterval
from worklog_engine.vacation import VacationCalendar


def _at(hour, minute=0, day=13):
    return datetime(2024, 3, day, hour, minute)


def _today(day=13):
    return Period(datetime(2024, 3, day), datetime(2024, 3, day + 1))


def _when(target, now, log, vacations=(), schedule=None, scope=None):
    schedule = schedule or ScheduleConfig()
    calendar = VacationCalendar(vacations, schedule)
    return when(target, now, scope or _today(now.day), log, calendar, schedule)


def test_already_satisfied_returns_earliest_instant():
    log = EventLog()
    log.append(ClosedEvent(_at(2), _at(10), set(), "early start"))
    assert _when(8, _at(12), log) == _at(10)
    assert _when(4, _at(12), log) == _at(6)


def test_remaining_hours_are_worked_from_now():
    log = EventLog()
    log.append(ClosedEvent(_at(9), _at(12), {"a"}, "morning"))
    assert _when(8, _at(12), log) == _at(17)
    assert _when(6, _at(12), log) == _at(15)


def test_open_event_counts_up_to_now():
    log = EventLog()
    log.append(OpenEvent(_at(9), set(), "working"))
    assert _when(8, _at(13), log) == _at(17)


def test_deficit_spills_into_the_next_workday():
    log = EventLog()
    log.append(ClosedEvent(_at(9), _at(12), set(), "morning"))
    assert _when(8, _at(15), log) == _at(12, day=14)


def test_non_workdays_are_skipped():
    saturday = datetime(2024, 3, 16, 10)
    assert _when(2, saturday, EventLog()) == datetime(2024, 3, 18, 11)


def test_vacation_day_is_satisfied_at_its_start():
    vacation = VacationInterval(datetime(2024, 3, 13), datetime(2024, 3, 14), "day off")
    assert _when(8, _at(8), EventLog(), [vacation]) == _at(9)


def test_future_vacation_is_credited_without_clock_time():
    monday_off = VacationInterval(datetime(2024, 3, 18), datetime(2024, 3, 19), "day off")
    friday_evening = datetime(2024, 3, 15, 17)
    assert _when(8, friday_evening, EventLog(), [monday_off]) == datetime(2024, 3, 18, 9)
    assert _when(10, friday_evening, EventLog(), [monday_off]) == datetime(2024, 3, 19, 11)


def test_partial_vacation_leaves_the_rest_of_the_day_to_work():
    afternoon_off = VacationInterval(datetime(2024, 3, 14, 13), datetime(2024, 3, 14, 17), "dentist", kind="fixed")
    evening = _at(17)
    assert _when(6, evening, EventLog(), [afternoon_off]) == _at(11, day=14)
    assert _when(10, evening, EventLog(), [afternoon_off]) == _at(11, day=15)


def test_no_workdays_configured():
    with pytest.raises(NoWorkdaysConfigured):
        _when(8, _at(12), EventLog(), schedule=ScheduleConfig(workdays=frozenset()))


def test_quota_counts_workdays_up_to_today():
    schedule = ScheduleConfig()
    log = EventLog()
    log.append(ClosedEvent(_at(9, day=7), _at(10, day=7), set(), "last thursday"))
    week = Period(datetime(2024, 3, 10), datetime(2024, 3, 17))
    assert quota_hours(week, _at(9), log, schedule) == 24.0
    weekend = Period(datetime(2024, 3, 9), datetime(2024, 3, 11))
    assert quota_hours(weekend, _at(9), log, schedule) == 8.0
    since_first_entry = Period(Period.MIN, Period.MAX)
    assert quota_hours(since_first_entry, _at(9), log, schedule) == 8.0 * 5
