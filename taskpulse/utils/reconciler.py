# taskpulse/utils/reconciler.py
'''
Completion tracking, missed-occurrence detection and the reconciliation pass
that ties them to occurrence advancement.
'''
import copy
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from taskpulse.utils.db.models import CompletionRecord, Task
from taskpulse.utils.error_handler import RecurrenceConfigError
from taskpulse.utils.recurrence import advance_task

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    tasks: List[Task] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed)


def record_completion(task: Task, now: datetime) -> None:
    """
    Stamp an incomplete -> complete transition on the task.
    Appends one history entry and sets last_completed; the due date is left
    for the next reconciliation pass to roll forward.
    """
    task.completion_history.append(CompletionRecord(date=now, completed=True))
    task.last_completed = now


def detect_missed(task: Task, today: date,
                  snapshot: Optional[Tuple[Optional[date], bool]] = None) -> bool:
    """
    Count a miss when a recurring task's occurrence was due yesterday and is
    still incomplete. Only yesterday is inspected; older gaps are not counted.
    - snapshot: (due_date, completed) as they stood before advancement, so a
      lapsed occurrence is still recognised after the task has been rolled forward.
    Returns True if missed_count was incremented.
    """
    if not task.is_recurring:
        return False
    due_date, completed = snapshot if snapshot is not None else (task.due_date, task.completed)
    if completed or due_date is None:
        return False
    if due_date != today - timedelta(days=1):
        return False
    task.missed_count += 1
    logger.info(f"Task {task.id} missed its occurrence on {due_date.isoformat()} "
                f"(missed_count={task.missed_count})")
    return True


def reconcile_task(task: Task, now: datetime) -> Tuple[Task, bool]:
    """Advance then miss-check a copy of one task. Returns (task, changed)."""
    working = copy.deepcopy(task)
    snapshot = (working.due_date, working.completed)
    advanced = advance_task(working, now)
    missed = detect_missed(working, now.date(), snapshot)
    return working, advanced or missed


def reconcile_tasks(tasks: List[Task], now: datetime) -> ReconcileResult:
    """
    One reconciliation pass over the whole collection.
    - Non-recurring tasks pass through untouched.
    - A task whose rule is misconfigured, or whose processing raises, is
      left as it was and does not stop the rest of the pass.
    Running it twice at the same instant changes nothing the second time.
    """
    result = ReconcileResult()
    for task in tasks:
        if not task.is_recurring:
            result.tasks.append(task)
            continue
        try:
            updated, changed = reconcile_task(task, now)
        except RecurrenceConfigError as e:
            logger.warning(f"Skipping task {task.id} ({task.title!r}): {e}")
            result.skipped.append(task.id)
            result.tasks.append(task)
            continue
        except Exception:
            logger.exception(f"Unexpected error reconciling task {task.id}")
            result.skipped.append(task.id)
            result.tasks.append(task)
            continue

        result.tasks.append(updated)
        if changed:
            result.changed.append(task.id)

    if result.changed:
        logger.info(f"Reconciliation changed {len(result.changed)} task(s)")
    return result
