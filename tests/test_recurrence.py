# tests/test_recurrence.py

from datetime import date, datetime, timedelta

import pytest

from taskpulse.utils.db.models import IntervalUnit, NotRecurring, RecurrenceType, Recurring
from taskpulse.utils.error_handler import RecurrenceConfigError
from taskpulse.utils.recurrence import (
    advance_occurrence, advance_task, is_elapsed, is_timed, needs_advancement, next_occurrence,
)

from .fakes import NOW, daily, make_task

START = datetime(2025, 3, 10, 9, 0)


@pytest.mark.parametrize("rule, expected", [
    (Recurring(RecurrenceType.HOURLY), datetime(2025, 3, 10, 10, 0)),
    (Recurring(RecurrenceType.DAILY, interval=2), datetime(2025, 3, 12, 9, 0)),
    (Recurring(RecurrenceType.WEEKLY), datetime(2025, 3, 17, 9, 0)),
    (Recurring(RecurrenceType.MONTHLY), datetime(2025, 4, 10, 9, 0)),
    (Recurring(RecurrenceType.YEARLY), datetime(2026, 3, 10, 9, 0)),
    (Recurring(RecurrenceType.CUSTOM, 15, IntervalUnit.MINUTE), datetime(2025, 3, 10, 9, 15)),
    (Recurring(RecurrenceType.CUSTOM, 3, IntervalUnit.HOUR), datetime(2025, 3, 10, 12, 0)),
    (Recurring(RecurrenceType.CUSTOM, 3, IntervalUnit.DAY), datetime(2025, 3, 13, 9, 0)),
    (Recurring(RecurrenceType.CUSTOM, 2, IntervalUnit.WEEK), datetime(2025, 3, 24, 9, 0)),
    (Recurring(RecurrenceType.CUSTOM, 2, IntervalUnit.MONTH), datetime(2025, 5, 10, 9, 0)),
    (Recurring(RecurrenceType.CUSTOM, 2, IntervalUnit.YEAR), datetime(2027, 3, 10, 9, 0)),
])
def test_next_occurrence_adds_one_interval(rule, expected):
    assert next_occurrence(START, rule) == expected


def test_fixed_types_ignore_a_stray_unit():
    rule = Recurring(RecurrenceType.DAILY, interval=1, unit=IntervalUnit.MONTH)
    assert next_occurrence(START, rule) == START + timedelta(days=1)


@pytest.mark.parametrize("current, rule, expected", [
    (datetime(2025, 1, 31, 9, 0), Recurring(RecurrenceType.MONTHLY), datetime(2025, 2, 28, 9, 0)),
    (datetime(2024, 1, 31, 9, 0), Recurring(RecurrenceType.MONTHLY), datetime(2024, 2, 29, 9, 0)),
    (datetime(2024, 2, 29, 9, 0), Recurring(RecurrenceType.YEARLY), datetime(2025, 2, 28, 9, 0)),
])
def test_month_and_year_steps_clamp_to_month_end(current, rule, expected):
    assert next_occurrence(current, rule) == expected


@pytest.mark.parametrize("rule", [
    Recurring(RecurrenceType.CUSTOM, interval=2, unit=None),
    Recurring(RecurrenceType.DAILY, interval=0),
    Recurring(RecurrenceType.WEEKLY, interval=-1),
    NotRecurring(),
])
def test_unusable_rules_are_rejected(rule):
    with pytest.raises(RecurrenceConfigError):
        next_occurrence(START, rule)


def test_is_elapsed_date_only_stays_current_all_day():
    midnight = datetime(2025, 6, 10, 0, 0)
    assert is_elapsed(midnight, NOW, timed=True)
    assert not is_elapsed(midnight, NOW, timed=False)
    assert is_elapsed(midnight - timedelta(days=1), NOW, timed=False)


def test_advance_occurrence_steps_at_least_once():
    upcoming = NOW + timedelta(hours=1)
    assert advance_occurrence(upcoming, daily(), NOW) == upcoming + timedelta(days=1)


def test_catch_up_after_400_days_lands_on_first_future_occurrence():
    now = datetime(2025, 6, 10, 10, 0)
    due = datetime(2025, 6, 10, 9, 0) - timedelta(days=400)

    nxt = advance_occurrence(due, daily(), now)

    assert nxt == datetime(2025, 6, 11, 9, 0)
    assert nxt >= now
    assert nxt - timedelta(days=1) < now


def test_date_only_catch_up_stops_at_today():
    now = datetime(2025, 6, 10, 10, 0)
    due = datetime(2025, 6, 10, 0, 0) - timedelta(days=400)
    assert advance_occurrence(due, daily(), now, timed=False) == datetime(2025, 6, 10, 0, 0)


def test_fast_forward_matches_repeated_addition():
    rule = Recurring(RecurrenceType.HOURLY, interval=7)
    due = datetime(2025, 1, 1, 0, 0)
    now = datetime(2025, 1, 3, 5, 30)

    expected = due + timedelta(hours=7)
    while expected < now:
        expected += timedelta(hours=7)

    assert advance_occurrence(due, rule, now) == expected == datetime(2025, 1, 3, 8, 0)


def test_monthly_catch_up_feeds_each_step_back():
    # Jan 31 clamps to Feb 29, and every later step keeps the 29th.
    due = datetime(2024, 1, 31, 9, 0)
    now = datetime(2025, 6, 10, 10, 0)
    assert advance_occurrence(due, Recurring(RecurrenceType.MONTHLY), now) == datetime(2025, 6, 29, 9, 0)


def test_needs_advancement():
    assert not needs_advancement(make_task(due_date=date(2025, 6, 1)), NOW)
    assert not needs_advancement(make_task(recurrence=daily()), NOW)
    assert not needs_advancement(make_task(recurrence=daily(), due_date=NOW.date()), NOW)
    assert needs_advancement(make_task(recurrence=daily(), due_date=NOW.date(), completed=True), NOW)
    assert needs_advancement(
        make_task(recurrence=daily(), due_date=NOW.date(), due_time="08:59"), NOW)


def test_advance_task_completed_timed_occurrence():
    task = make_task(recurrence=daily(), due_date=NOW.date(), due_time="09:00",
                     completed=True, missed_count=2)

    assert advance_task(task, NOW) is True
    assert task.due_date == date(2025, 6, 11)
    assert task.due_time == "09:00"
    assert task.completed is False
    assert task.missed_count == 0


def test_advance_task_date_only_keeps_time_unset():
    task = make_task(recurrence=daily(), due_date=date(2025, 6, 9))

    assert advance_task(task, NOW) is True
    assert task.due_date == NOW.date()
    assert task.due_time is None


def test_advance_task_sub_daily_sets_a_due_time():
    task = make_task(recurrence=Recurring(RecurrenceType.HOURLY), due_date=NOW.date(), completed=True)

    assert advance_task(task, datetime(2025, 6, 10, 9, 30)) is True
    assert task.due_date == NOW.date()
    assert task.due_time == "10:00"


def test_advance_task_leaves_pending_occurrence_alone():
    task = make_task(recurrence=daily(), due_date=NOW.date(), due_time="18:00")
    assert advance_task(task, NOW) is False
    assert task.due_time == "18:00"


def test_series_ends_after_end_date():
    end = datetime(2025, 6, 10, 23, 59, 59)
    task = make_task(recurrence=daily(end_date=end), due_date=NOW.date(), due_time="09:00",
                     completed=True)

    assert advance_task(task, NOW) is True
    assert isinstance(task.recurrence, NotRecurring)
    assert task.due_date == NOW.date()
    assert task.completed is True
    assert advance_task(task, NOW) is False


def test_occurrence_on_end_date_is_still_scheduled():
    end = datetime(2025, 6, 11, 23, 59, 59)
    task = make_task(recurrence=daily(end_date=end), due_date=NOW.date(), due_time="09:00",
                     completed=True)

    advance_task(task, NOW)

    assert task.is_recurring
    assert task.due_date == date(2025, 6, 11)


def test_advance_task_raises_for_custom_without_unit():
    task = make_task(recurrence=Recurring(RecurrenceType.CUSTOM, interval=2),
                     due_date=date(2025, 6, 1))
    with pytest.raises(RecurrenceConfigError):
        advance_task(task, NOW)


@pytest.mark.parametrize("task, expected", [
    (make_task(recurrence=daily(), due_date=NOW.date()), False),
    (make_task(recurrence=daily(), due_date=NOW.date(), due_time="08:00"), True),
    (make_task(recurrence=Recurring(RecurrenceType.HOURLY), due_date=NOW.date()), True),
    (make_task(recurrence=Recurring(RecurrenceType.CUSTOM, 15, IntervalUnit.MINUTE),
               due_date=NOW.date()), True),
    (make_task(recurrence=Recurring(RecurrenceType.CUSTOM, 2), due_date=NOW.date()), False),
    (make_task(due_date=NOW.date()), False),
])
def test_is_timed(task, expected):
    assert is_timed(task) is expected


def test_pending_hourly_task_without_time_rolls_forward_during_the_day():
    task = make_task(recurrence=Recurring(RecurrenceType.HOURLY), due_date=NOW.date())
    now = datetime(2025, 6, 10, 9, 30)

    assert needs_advancement(task, now)
    assert advance_task(task, now) is True
    assert task.due_date == NOW.date()
    assert task.due_time == "10:00"
    assert advance_task(task, now) is False
