# tests/test_reconciler.py

from datetime import date, datetime, timedelta

from taskpulse.utils import reconciler
from taskpulse.utils.db.models import RecurrenceType, Recurring
from taskpulse.utils.reconciler import (
    detect_missed, reconcile_task, reconcile_tasks, record_completion,
)

from .fakes import NOW, daily, make_task

YESTERDAY = NOW.date() - timedelta(days=1)


def test_complete_then_reconcile_rolls_daily_task_to_tomorrow(store, clock):
    task = store.add_task({
        "title": "Stretch",
        "due_date": NOW.date(),
        "due_time": "09:00",
        "recurrence": daily(),
    })

    store.toggle_task_completion(task.id)
    store.reconcile()

    after = store.get_task_by_id(task.id)
    assert after.due_date == date(2025, 6, 11)
    assert after.due_time == "09:00"
    assert after.completed is False
    assert after.missed_count == 0
    assert len(after.completion_history) == 1
    assert after.completion_history[0].date == NOW


def test_missed_yesterday_counts_once():
    task = make_task(recurrence=daily(), due_date=YESTERDAY)
    now = datetime(2025, 6, 10, 8, 0)

    first = reconcile_tasks([task], now)
    second = reconcile_tasks(first.tasks, now)

    assert first.tasks[0].missed_count == 1
    assert first.tasks[0].due_date == NOW.date()
    assert second.tasks[0].missed_count == 1
    assert second.changed == []


def test_timed_miss_is_counted_and_advanced():
    task = make_task(recurrence=daily(), due_date=YESTERDAY, due_time="09:00")

    result = reconcile_tasks([task], datetime(2025, 6, 10, 8, 0))

    updated = result.tasks[0]
    assert updated.missed_count == 1
    assert updated.due_date == NOW.date()
    assert updated.due_time == "09:00"


def test_completed_yesterday_is_not_a_miss():
    task = make_task(recurrence=daily(), due_date=YESTERDAY, completed=True)
    updated, changed = reconcile_task(task, NOW)
    assert changed
    assert updated.missed_count == 0
    assert updated.completed is False


def test_only_yesterday_is_inspected():
    task = make_task(recurrence=daily(), due_date=NOW.date() - timedelta(days=3))
    updated, changed = reconcile_task(task, NOW)
    assert changed
    assert updated.due_date == NOW.date()
    assert updated.missed_count == 0


def test_detect_missed_ignores_non_recurring():
    task = make_task(due_date=YESTERDAY)
    assert detect_missed(task, NOW.date()) is False
    assert task.missed_count == 0


def test_missed_count_survives_until_advancement():
    task = make_task(recurrence=daily(), due_date=NOW.date(), missed_count=3)
    updated, changed = reconcile_task(task, NOW)
    assert not changed
    assert updated.missed_count == 3


def test_reconcile_task_does_not_touch_its_input():
    task = make_task(recurrence=daily(), due_date=YESTERDAY)
    reconcile_task(task, NOW)
    assert task.due_date == YESTERDAY
    assert task.missed_count == 0


def test_second_pass_at_same_instant_changes_nothing():
    tasks = [
        make_task(title="lapsed", recurrence=daily(), due_date=YESTERDAY),
        make_task(title="done", recurrence=daily(), due_date=NOW.date(), due_time="08:00",
                  completed=True),
        make_task(title="weekly", recurrence=Recurring(RecurrenceType.WEEKLY),
                  due_date=date(2025, 5, 1), due_time="07:30"),
        make_task(title="one-off", due_date=date(2025, 5, 1)),
    ]

    first = reconcile_tasks(tasks, NOW)
    second = reconcile_tasks(first.tasks, NOW)

    assert len(first.changed) == 3
    assert second.changed == []
    assert [t.to_dict() for t in second.tasks] == [t.to_dict() for t in first.tasks]


def test_non_recurring_overdue_task_passes_through():
    task = make_task(due_date=date(2025, 1, 1), due_time="09:00")
    result = reconcile_tasks([task], NOW)
    assert result.tasks == [task]
    assert not result.has_changes


def test_misconfigured_task_is_skipped_without_stopping_the_pass():
    broken = make_task(title="broken", due_date=YESTERDAY,
                       recurrence=Recurring(RecurrenceType.CUSTOM, interval=2))
    fine = make_task(title="fine", recurrence=daily(), due_date=YESTERDAY)

    result = reconcile_tasks([broken, fine], NOW)

    assert result.skipped == [broken.id]
    assert result.changed == [fine.id]
    assert result.tasks[0] is broken
    assert result.tasks[0].due_date == YESTERDAY
    assert result.tasks[1].due_date == NOW.date()


def test_unexpected_error_is_isolated_to_its_task(monkeypatch):
    bad = make_task(title="bad", recurrence=daily(), due_date=YESTERDAY)
    good = make_task(title="good", recurrence=daily(), due_date=YESTERDAY)
    real_advance = reconciler.advance_task

    def flaky_advance(task, now):
        if task.id == bad.id:
            raise RuntimeError("boom")
        return real_advance(task, now)

    monkeypatch.setattr(reconciler, "advance_task", flaky_advance)
    result = reconcile_tasks([bad, good], NOW)

    assert result.skipped == [bad.id]
    assert result.changed == [good.id]


def test_record_completion_appends_one_entry():
    task = make_task(recurrence=daily(), due_date=NOW.date())
    record_completion(task, NOW)
    record_completion(task, NOW + timedelta(minutes=5))

    assert [rec.date for rec in task.completion_history] == [NOW, NOW + timedelta(minutes=5)]
    assert all(rec.completed for rec in task.completion_history)
    assert task.last_completed == NOW + timedelta(minutes=5)
