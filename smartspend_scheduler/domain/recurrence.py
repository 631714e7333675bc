"""Recurrence rule and recurring-template state transitions"""

from datetime import date, timedelta
from typing import List

from dateutil.relativedelta import relativedelta

from smartspend_scheduler.domain.exceptions import InvalidIntervalError
from smartspend_scheduler.domain.models import (
    ActiveRecurrence,
    Interval,
    RecurrencePlan,
    RecurrenceState,
    Terminated,
)


def next_date(current: date, interval: Interval) -> date:
    """
    Compute the occurrence following ``current``.

    Monthly and yearly steps keep the day-of-month and clamp it to the length
    of the target month (Jan 31 -> Feb 29 in 2024, Feb 29 -> Feb 28 next year).

    Raises:
        ValueError: If ``interval`` is not an Interval
    """
    if interval == Interval.DAILY:
        return current + timedelta(days=1)
    if interval == Interval.WEEKLY:
        return current + timedelta(days=7)
    if interval == Interval.MONTHLY:
        return current + relativedelta(months=1)
    if interval == Interval.YEARLY:
        return current + relativedelta(years=1)
    raise ValueError(f"Invalid interval: {interval!r}")


def parse_interval(raw: str | None) -> Interval:
    """Convert a stored interval tag into an Interval"""
    try:
        return Interval(raw)
    except ValueError as e:
        raise InvalidIntervalError(f"Invalid recurring interval: {raw!r}") from e


def advance(state: RecurrenceState, occurred_on: date) -> RecurrenceState:
    """
    Move an active recurrence past an occurrence dated ``occurred_on``.

    Returns Terminated when the following occurrence would fall after the end
    date. Terminated is final: advancing it is a programming error.
    """
    if isinstance(state, Terminated):
        raise ValueError("Cannot advance a terminated recurrence")

    following = next_date(occurred_on, state.interval)
    if state.end_date is not None and following > state.end_date:
        return Terminated()
    return ActiveRecurrence(
        interval=state.interval,
        next_occurrence=following,
        end_date=state.end_date,
    )


def plan_occurrences(state: RecurrenceState, today: date, drain_backlog: bool = False) -> RecurrencePlan:
    """
    Decide which occurrences a due template materializes in this run.

    Default: a single occurrence dated ``today``, with the next occurrence
    anchored on ``today``. Missed intervals collapse into that one occurrence.

    With ``drain_backlog``: every scheduled occurrence up to and including
    ``today`` is materialized on its own date, stopping early when the
    recurrence terminates.
    """
    if isinstance(state, Terminated):
        raise ValueError("Cannot plan occurrences for a terminated recurrence")

    if not drain_backlog:
        return RecurrencePlan(occurrences=[today], final_state=advance(state, today))

    occurrences: List[date] = []
    current: RecurrenceState = state
    while isinstance(current, ActiveRecurrence) and current.next_occurrence <= today:
        occurred_on = current.next_occurrence
        occurrences.append(occurred_on)
        current = advance(current, occurred_on)

    return RecurrencePlan(occurrences=occurrences, final_state=current)
