"""Unit tests for the recurrence rule and template transitions"""

import pytest
from datetime import date
from smartspend_scheduler.domain.exceptions import InvalidIntervalError
from smartspend_scheduler.domain.models import ActiveRecurrence, Interval, Terminated
from smartspend_scheduler.domain.recurrence import advance, next_date, parse_interval, plan_occurrences


@pytest.mark.parametrize(
    "current, interval, expected",
    [
        (date(2024, 1, 1), Interval.DAILY, date(2024, 1, 2)),
        (date(2024, 12, 31), Interval.DAILY, date(2025, 1, 1)),
        (date(2024, 3, 1), Interval.WEEKLY, date(2024, 3, 8)),
        (date(2024, 1, 1), Interval.MONTHLY, date(2024, 2, 1)),
        (date(2024, 1, 31), Interval.MONTHLY, date(2024, 2, 29)),  # clamped, leap year
        (date(2023, 1, 31), Interval.MONTHLY, date(2023, 2, 28)),
        (date(2024, 12, 15), Interval.MONTHLY, date(2025, 1, 15)),
        (date(2024, 2, 29), Interval.YEARLY, date(2025, 2, 28)),
        (date(2024, 6, 1), Interval.YEARLY, date(2025, 6, 1)),
    ],
)
def test_next_date(current, interval, expected):
    """Test each interval step, including month-length clamping"""
    assert next_date(current, interval) == expected


def test_next_date_rejects_unknown_interval():
    """Test a non-Interval value is a programming error"""
    with pytest.raises(ValueError):
        next_date(date(2024, 1, 1), "fortnightly")


def test_parse_interval():
    """Test stored tags parse, unknown tags raise a domain error"""
    assert parse_interval("weekly") is Interval.WEEKLY
    with pytest.raises(InvalidIntervalError):
        parse_interval("fortnightly")
    with pytest.raises(InvalidIntervalError):
        parse_interval(None)


def test_advance_without_end_date():
    """Test active recurrence moves to the next occurrence"""
    state = ActiveRecurrence(Interval.MONTHLY, date(2024, 1, 1))

    assert advance(state, date(2024, 1, 1)) == ActiveRecurrence(Interval.MONTHLY, date(2024, 2, 1))


def test_advance_terminates_past_end_date():
    """Test next occurrence beyond end date terminates the recurrence"""
    state = ActiveRecurrence(Interval.WEEKLY, date(2024, 3, 1), end_date=date(2024, 3, 10))

    assert advance(state, date(2024, 3, 8)) == Terminated()


def test_advance_keeps_occurrence_on_end_date():
    """Test an occurrence falling exactly on the end date is still scheduled"""
    state = ActiveRecurrence(Interval.WEEKLY, date(2024, 3, 1), end_date=date(2024, 3, 8))

    assert advance(state, date(2024, 3, 1)) == ActiveRecurrence(
        Interval.WEEKLY, date(2024, 3, 8), end_date=date(2024, 3, 8)
    )


def test_advance_terminated_is_an_error():
    """Test terminated recurrences can never produce again"""
    with pytest.raises(ValueError):
        advance(Terminated(), date(2024, 1, 1))


def test_plan_single_occurrence_anchored_on_today():
    """Test default plan: one occurrence dated today, next anchored on today"""
    state = ActiveRecurrence(Interval.WEEKLY, date(2024, 3, 1))

    plan = plan_occurrences(state, date(2024, 3, 8))

    assert plan.occurrences == [date(2024, 3, 8)]
    assert plan.final_state == ActiveRecurrence(Interval.WEEKLY, date(2024, 3, 15))


def test_plan_drain_backlog():
    """Test draining materializes every missed occurrence on its own date"""
    state = ActiveRecurrence(Interval.WEEKLY, date(2024, 3, 1))

    plan = plan_occurrences(state, date(2024, 3, 20), drain_backlog=True)

    assert plan.occurrences == [date(2024, 3, 1), date(2024, 3, 8), date(2024, 3, 15)]
    assert plan.final_state == ActiveRecurrence(Interval.WEEKLY, date(2024, 3, 22))


def test_plan_drain_backlog_stops_at_end_date():
    """Test draining stops once the recurrence terminates"""
    state = ActiveRecurrence(Interval.WEEKLY, date(2024, 3, 1), end_date=date(2024, 3, 10))

    plan = plan_occurrences(state, date(2024, 3, 9), drain_backlog=True)

    assert plan.occurrences == [date(2024, 3, 1), date(2024, 3, 8)]
    assert plan.final_state == Terminated()
