# taskpulse/utils/recurrence.py
'''
Recurrence arithmetic for repeating tasks.

- next_occurrence: one step of a rule (pure).
- advance_occurrence: step until the occurrence is no longer in the past.
- advance_task: roll a task onto its next occurrence in place.
'''
import logging
from datetime import datetime, time, timedelta
from typing import Tuple, Union

from dateutil.relativedelta import relativedelta

from taskpulse.utils.db.models import (
    FIXED_TYPE_UNITS, IntervalUnit, NotRecurring, RecurrenceType, Recurring, Task,
)
from taskpulse.utils.error_handler import RecurrenceConfigError

logger = logging.getLogger(__name__)

_FIXED_STEPS = {
    IntervalUnit.MINUTE: timedelta(minutes=1),
    IntervalUnit.HOUR: timedelta(hours=1),
    IntervalUnit.DAY: timedelta(days=1),
    IntervalUnit.WEEK: timedelta(weeks=1),
}

SUB_DAILY_UNITS = (IntervalUnit.MINUTE, IntervalUnit.HOUR)


def resolve_step(rule: Recurring) -> Tuple[IntervalUnit, int]:
    """
    Return (unit, interval) for a rule.
    Raises RecurrenceConfigError when the rule cannot produce a later instant:
    custom without a unit, or an interval that is not a positive integer.
    """
    if not isinstance(rule, Recurring):
        raise RecurrenceConfigError("Task is not recurring")
    if rule.type == RecurrenceType.CUSTOM:
        if rule.unit is None:
            raise RecurrenceConfigError("Custom recurrence has no interval unit")
        unit = rule.unit
    else:
        unit = FIXED_TYPE_UNITS[rule.type]

    interval = rule.interval
    if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
        raise RecurrenceConfigError(f"Recurrence interval must be positive, got {interval!r}")
    return unit, interval


def step_delta(unit: IntervalUnit, interval: int) -> Union[timedelta, relativedelta]:
    if unit in _FIXED_STEPS:
        return _FIXED_STEPS[unit] * interval
    if unit == IntervalUnit.MONTH:
        return relativedelta(months=interval)
    return relativedelta(years=interval)


def next_occurrence(current_due: datetime, rule: Recurring) -> datetime:
    """
    Add one interval of the rule's unit to current_due.
    Month and year steps clamp to the last valid day (Jan 31 + 1 month -> Feb 28/29).
    """
    unit, interval = resolve_step(rule)
    return current_due + step_delta(unit, interval)


def is_elapsed(instant: datetime, now: datetime, timed: bool = True) -> bool:
    """
    A timed occurrence has elapsed once its instant is before now.
    A date-only occurrence stays current for its whole day.
    """
    if timed:
        return instant < now
    return instant.date() < now.date()


def advance_occurrence(current_due: datetime, rule: Recurring, now: datetime,
                       timed: bool = True) -> datetime:
    """
    Apply the rule at least once, then keep applying it while the result is
    still in the past. Returns the first occurrence that is not elapsed.
    """
    unit, interval = resolve_step(rule)
    delta = step_delta(unit, interval)
    nxt = current_due + delta
    if not is_elapsed(nxt, now, timed):
        return nxt

    if isinstance(delta, timedelta):
        # Fixed-length steps: jump straight to the first step at or after the cutoff.
        cutoff = now if timed else datetime.combine(now.date(), time(0, 0))
        steps = (cutoff - nxt) // delta
        nxt = nxt + delta * steps
        if nxt < cutoff:
            nxt = nxt + delta
        return nxt

    while is_elapsed(nxt, now, timed):
        nxt = nxt + delta
    return nxt


def is_timed(task: Task) -> bool:
    """A task runs on the clock when it has a due time or repeats more often than daily."""
    if task.due_time is not None:
        return True
    rule = task.recurrence
    if not isinstance(rule, Recurring):
        return False
    unit = rule.unit if rule.type == RecurrenceType.CUSTOM else FIXED_TYPE_UNITS.get(rule.type)
    return unit in SUB_DAILY_UNITS


def needs_advancement(task: Task, now: datetime) -> bool:
    """Completed occurrences and lapsed occurrences both roll forward."""
    if not task.is_recurring or task.due_date is None:
        return False
    if task.completed:
        return True
    return is_elapsed(task.due_instant(), now, timed=is_timed(task))


def advance_task(task: Task, now: datetime) -> bool:
    """
    Move a recurring task onto its next pending occurrence, in place.
    - Clears completed, resets missed_count, rewrites due_date (and due_time when timed).
    - If the next occurrence falls after the rule's end_date the series ends:
      the task becomes NotRecurring and keeps its last occurrence.
    Returns True if the task changed. Raises RecurrenceConfigError for bad rules.
    """
    if not needs_advancement(task, now):
        return False

    rule = task.recurrence
    timed = is_timed(task)
    nxt = advance_occurrence(task.due_instant(), rule, now, timed=timed)

    if rule.end_date is not None and nxt > rule.end_date:
        logger.info(f"Recurrence for task {task.id} ended on {rule.end_date.isoformat()}")
        task.recurrence = NotRecurring()
        task.missed_count = 0
        return True

    logger.info(
        f"Advanced task {task.id} from {task.due_instant().isoformat()} to {nxt.isoformat()}")
    task.due_date = nxt.date()
    if timed:
        task.due_time = nxt.strftime("%H:%M")
    task.completed = False
    task.missed_count = 0
    return True

