# taskpulse/utils/db/report_repository.py
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Set

import pandas as pd

from taskpulse.utils.db.models import Task
from taskpulse.utils.error_handler import RecurrenceConfigError
from taskpulse.utils.recurrence import SUB_DAILY_UNITS, resolve_step, step_delta

logger = logging.getLogger(__name__)

COMPLETED = "completed"
MISSED = "missed"
PENDING = "pending"
NOT_DUE = "not-due"
NOT_APPLICABLE = "not-applicable"


def completion_rate(completed: int, missed: int) -> int:
    """Whole percent of completed over completed + missed; 100 when nothing was due."""
    total = completed + missed
    if total == 0:
        return 100
    return round(completed / total * 100)


def get_recurring_tasks_report(tasks: List[Task]) -> Dict[str, Any]:
    """
    Recurring tasks with misses (most missed first) and the overall completion rate.
    """
    recurring = [t for t in tasks if t.is_recurring]
    missed_tasks = sorted(
        (t for t in recurring if t.missed_count > 0),
        key=lambda t: t.missed_count, reverse=True)
    completions = sum(
        sum(1 for rec in t.completion_history if rec.completed) for t in recurring)
    misses = sum(t.missed_count for t in recurring)
    return {
        "missed_tasks": missed_tasks,
        "completion_rate": completion_rate(completions, misses),
    }


def todays_remaining(tasks: List[Task], today: date) -> List[Task]:
    return [t for t in tasks if t.is_recurring and t.due_date == today and not t.completed]


def occurrence_dates(task: Task, start: date, end: date) -> Set[date]:
    """
    Calendar days in [start, end] on which the task's rule has an occurrence,
    walking out from the current due instant in both directions.
    """
    if not task.is_recurring or task.due_date is None:
        return set()
    unit, interval = resolve_step(task.recurrence)
    if unit in SUB_DAILY_UNITS:
        return {start + timedelta(days=i) for i in range((end - start).days + 1)}

    delta = step_delta(unit, interval)
    anchor = task.due_instant()
    days = set()
    inst = anchor
    while inst.date() >= start:
        if inst.date() <= end:
            days.add(inst.date())
        inst = inst - delta
    inst = anchor + delta
    while inst.date() <= end:
        if inst.date() >= start:
            days.add(inst.date())
        inst = inst + delta
    return days


def day_status(task: Task, day: date, today: date, due_days: Set[date]) -> str:
    if task.created_at is not None and task.created_at.date() > day:
        return NOT_APPLICABLE
    if any(rec.completed and rec.date.date() == day for rec in task.completion_history):
        return COMPLETED
    if day in due_days:
        return MISSED if day < today else PENDING
    return NOT_DUE


def completion_grid(tasks: List[Task], today: date, days: int = 10) -> pd.DataFrame:
    """
    One row per recurring task, one column per day (oldest first, ISO dates)
    holding a status, plus the task's completion rate over the window.
    """
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    rows = []
    for task in tasks:
        if not task.is_recurring:
            continue
        try:
            due_days = occurrence_dates(task, window[0], window[-1])
        except RecurrenceConfigError as e:
            logger.warning(f"completion_grid: task {task.id} has no usable rule: {e}")
            due_days = set()
        statuses = {d.isoformat(): day_status(task, d, today, due_days) for d in window}
        done = sum(1 for s in statuses.values() if s == COMPLETED)
        missed = sum(1 for s in statuses.values() if s == MISSED)
        rows.append({
            "task_id": task.id,
            "title": task.title,
            **statuses,
            "completion_rate": completion_rate(done, missed),
        })

    columns = ["task_id", "title"] + [d.isoformat() for d in window] + ["completion_rate"]
    return pd.DataFrame(rows, columns=columns)
