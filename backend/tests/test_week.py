from datetime import date

from app.services.planner.week import WeekSchedule, normalize_day
from factories import FRIDAY, MONDAY, WEEK_STARTS


def test_normalize_day():
    assert normalize_day("monday") == "Monday"
    assert normalize_day("TUE") == "Tuesday"
    assert normalize_day(" Sunday ") == "Sunday"
    assert normalize_day("tu") is None
    assert normalize_day("Funday") is None
    assert normalize_day(None) is None
    assert normalize_day(1) is None
    assert normalize_day(True) is None


def test_monday_start_is_calendar_order():
    week = WeekSchedule.starting(MONDAY)
    assert week.days == ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def test_friday_start_rotates():
    week = WeekSchedule.starting(FRIDAY)
    assert week.days[0] == "Friday"
    assert week.days[-1] == "Thursday"
    assert week.position("Monday") == 3
    assert week.is_earlier("Friday", "Monday")
    assert not week.is_earlier("Monday", "Friday")
    assert week.gap("Friday", "Monday") == 3
    assert week.date_of("Monday") == date(2026, 10, 19)


def test_every_start_is_a_rotation():
    for start in WEEK_STARTS:
        week = WeekSchedule.starting(start)
        assert sorted(week.days) == sorted(WeekSchedule.starting(MONDAY).days)
        assert week.position(week.days[0]) == 0
        assert week.date_of(week.days[0]) == start


def test_weekend_is_calendar_based():
    assert WeekSchedule.is_weekend("Saturday")
    assert WeekSchedule.is_weekend("sun")
    assert not WeekSchedule.is_weekend("Friday")
