# taskpulse/utils/alarms.py
'''
Alarm trigger: finds tasks whose reminder time has come and hands them to
an alert dispatcher.
'''
import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from taskpulse.utils.db.models import Task, parse_time_of_day
from taskpulse.utils.notifications import DEFAULT_SOUND

logger = logging.getLogger(__name__)

REMINDER_TITLE = "Task Reminder"
TOAST_TITLE = f"⏰ {REMINDER_TITLE}"


def minutes_of_day(hour: int, minute: int) -> int:
    return hour * 60 + minute


def find_due_alarms(tasks: Iterable[Task], now: datetime, tolerance_minutes: int = 1) -> List[Task]:
    """
    Tasks with an alarm due today, a due time within tolerance of now, and not completed.
    """
    today = now.date()
    now_minutes = minutes_of_day(now.hour, now.minute)
    due = []
    for task in tasks:
        if not task.alarm_set or task.completed or task.due_date != today:
            continue
        at = parse_time_of_day(task.due_time)
        if at is None:
            continue
        if abs(now_minutes - minutes_of_day(at.hour, at.minute)) <= tolerance_minutes:
            due.append(task)
    return due


def reminder_body(task: Task) -> str:
    return f"It's time for: {task.title}"


class AlarmTrigger:
    """
    Fires reminders through a dispatcher.
    Remembers the occurrence (due_date, due_time) it last fired for each task,
    so one occurrence produces one reminder however often check() runs.
    """

    def __init__(self, dispatcher, clock, tolerance_minutes: int = 1,
                 sound: Optional[str] = DEFAULT_SOUND):
        self.dispatcher = dispatcher
        self.clock = clock
        self.tolerance_minutes = tolerance_minutes
        self.sound = sound
        self._fired: Dict[str, Tuple[date, str]] = {}
        self._permission: Optional[bool] = None

    def permission_granted(self) -> bool:
        if self._permission is None:
            try:
                self._permission = bool(self.dispatcher.request_permission())
            except Exception as e:
                logger.warning(f"Notification permission request failed: {e}")
                self._permission = False
        return self._permission

    def check(self, tasks: List[Task], enabled: bool = True) -> List[Task]:
        """Scan once. Returns the tasks a reminder was fired for."""
        if not enabled:
            return []
        now = self.clock.now()
        fired = []
        for task in find_due_alarms(tasks, now, self.tolerance_minutes):
            key = (task.due_date, task.due_time)
            if self._fired.get(task.id) == key:
                continue
            self._fired[task.id] = key
            self.fire(task)
            fired.append(task)

        live = {t.id for t in tasks}
        for task_id in [tid for tid in self._fired if tid not in live]:
            del self._fired[task_id]
        return fired

    def fire(self, task: Task) -> None:
        body = reminder_body(task)
        logger.info(f"Reminder for task {task.id}: {task.title}")
        try:
            self.dispatcher.toast(TOAST_TITLE, body)
            if self.permission_granted():
                self.dispatcher.notify(REMINDER_TITLE, body)
            if self.sound:
                self.dispatcher.play_sound(self.sound)
        except Exception as e:
            logger.error(f"Alert dispatcher failed for task {task.id}: {e}", exc_info=True)
