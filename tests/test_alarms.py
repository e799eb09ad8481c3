# tests/test_alarms.py

from datetime import date, datetime, timedelta

import pytest

from taskpulse.utils.alarms import TOAST_TITLE, AlarmTrigger, find_due_alarms
from taskpulse.utils.clock import FixedClock

from .fakes import BrokenDispatcher, RecordingDispatcher, daily, make_task

TODAY = date(2025, 6, 10)


def at(hour, minute):
    return datetime(TODAY.year, TODAY.month, TODAY.day, hour, minute)


@pytest.fixture
def alarm_task():
    return make_task(title="Call the dentist", due_date=TODAY, due_time="14:30", alarm_set=True)


def test_alarm_at_due_time_fires_exactly_once(alarm_task):
    dispatcher = RecordingDispatcher()
    trigger = AlarmTrigger(dispatcher, FixedClock(at(14, 30)))

    fired = trigger.check([alarm_task])
    again = trigger.check([alarm_task])

    assert fired == [alarm_task]
    assert again == []
    assert dispatcher.toasts == [(TOAST_TITLE, "It's time for: Call the dentist")]
    assert dispatcher.notifications == [("Task Reminder", "It's time for: Call the dentist")]
    assert len(dispatcher.sounds) == 1


def test_alarm_two_minutes_late_does_not_fire(alarm_task):
    dispatcher = RecordingDispatcher()
    trigger = AlarmTrigger(dispatcher, FixedClock(at(14, 32)))

    assert trigger.check([alarm_task]) == []
    assert dispatcher.toasts == []


@pytest.mark.parametrize("hour, minute", [(14, 29), (14, 31)])
def test_alarm_fires_within_one_minute(alarm_task, hour, minute):
    assert find_due_alarms([alarm_task], at(hour, minute)) == [alarm_task]


def test_find_due_alarms_skips_tasks_that_cannot_ring(alarm_task):
    now = at(14, 30)
    silent = make_task(due_date=TODAY, due_time="14:30", alarm_set=False)
    finished = make_task(due_date=TODAY, due_time="14:30", alarm_set=True, completed=True)
    tomorrow = make_task(due_date=TODAY + timedelta(days=1), due_time="14:30", alarm_set=True)
    untimed = make_task(due_date=TODAY, alarm_set=True)

    assert find_due_alarms([silent, finished, tomorrow, untimed, alarm_task], now) == [alarm_task]


def test_next_occurrence_of_a_repeating_task_rings_again():
    task = make_task(due_date=TODAY, due_time="07:00", alarm_set=True, recurrence=daily())
    clock = FixedClock(at(7, 0))
    dispatcher = RecordingDispatcher()
    trigger = AlarmTrigger(dispatcher, clock)

    trigger.check([task])
    task.due_date = TODAY + timedelta(days=1)
    clock.advance(days=1)
    trigger.check([task])

    assert len(dispatcher.toasts) == 2


def test_disabled_notifications_suppress_alarms(alarm_task):
    dispatcher = RecordingDispatcher()
    trigger = AlarmTrigger(dispatcher, FixedClock(at(14, 30)))

    assert trigger.check([alarm_task], enabled=False) == []
    assert dispatcher.toasts == []
    assert dispatcher.permission_requests == 0


def test_without_permission_only_the_toast_is_shown(alarm_task):
    dispatcher = RecordingDispatcher(permission=False)
    other = make_task(title="Take pills", due_date=TODAY, due_time="14:30", alarm_set=True)
    trigger = AlarmTrigger(dispatcher, FixedClock(at(14, 30)))

    trigger.check([alarm_task, other])

    assert len(dispatcher.toasts) == 2
    assert dispatcher.notifications == []
    assert dispatcher.permission_requests == 1


def test_no_sound_when_sound_is_disabled(alarm_task):
    dispatcher = RecordingDispatcher()
    AlarmTrigger(dispatcher, FixedClock(at(14, 30)), sound=None).check([alarm_task])
    assert dispatcher.sounds == []


def test_dispatcher_failure_does_not_escape(alarm_task):
    trigger = AlarmTrigger(BrokenDispatcher(), FixedClock(at(14, 30)))
    assert trigger.check([alarm_task]) == [alarm_task]
