from datetime import date, datetime, time

import pytest

from worklog_engine.schedule import ScheduleConfig, parse_workdays, serialize_workdays, units_per_hour


def test_quarter_down_rounding():
    schedule = ScheduleConfig(precision="quarter", rounding="down")
    assert schedule.round_hours(6 * 60) == 0.0
    assert schedule.round_hours(23 * 60) == 0.25


def test_nearest_rounds_half_units_up():
    schedule = ScheduleConfig(precision="quarter", rounding="nearest")
    assert schedule.round_hours(7 * 60 + 30) == 0.25
    assert schedule.round_hours(7 * 60 + 29) == 0.0


def test_up_rounding_and_exact_precision():
    assert ScheduleConfig(precision="quarter", rounding="up").round_hours(60) == 0.25
    assert ScheduleConfig(precision="exact").round_hours(40 * 60) == pytest.approx(2 / 3)
    assert ScheduleConfig(precision="1/5", rounding="down").round_hours(13 * 60) == 0.2


def test_units_per_hour():
    assert units_per_hour("tenth") == 10
    assert units_per_hour("1/5") == 5
    assert units_per_hour("exact") is None
    with pytest.raises(ValueError):
        units_per_hour("fortnight")


def test_workday_letters():
    assert parse_workdays("MTWHF") == frozenset(range(5))
    assert parse_workdays("sa") == frozenset({5, 6})
    assert serialize_workdays(frozenset(range(5))) == "MTWHF"
    with pytest.raises(ValueError):
        parse_workdays("MX")


def test_workday_window_and_lookup():
    schedule = ScheduleConfig(daily_hours=7.5, workday_start=time(8, 30))
    assert schedule.is_workday(date(2024, 3, 13))
    assert not schedule.is_workday(date(2024, 3, 16))
    assert schedule.workday_window(date(2024, 3, 13)) == (datetime(2024, 3, 13, 8, 30), datetime(2024, 3, 13, 16, 0))


def test_invalid_schedule_values():
    with pytest.raises(ValueError):
        ScheduleConfig(daily_hours=0)
    with pytest.raises(ValueError):
        ScheduleConfig(rounding="sideways")
    with pytest.raises(ValueError):
        ScheduleConfig(workdays={7})
