# taskpulse/utils/db/task_repository.py
'''
TaskStore: the in-memory task collection and its mutation API.

Every mutation is persisted immediately through the storage gateway and then
announced to change listeners (the scheduler's on-change trigger).
'''
import copy
import logging
import uuid
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from taskpulse.utils.clock import SystemClock
from taskpulse.utils.db.models import (
    Task, UserPreferences, ViewFilter, get_task_fields,
    preferences_from_row, preferences_to_row, task_from_row, task_to_row,
)
from taskpulse.utils.db.storage import PREFERENCES_KEY, TASKS_KEY
from taskpulse.utils.error_handler import TaskNotFoundError, ValidationError, validate_task_data
from taskpulse.utils.reconciler import ReconcileResult, reconcile_tasks, record_completion

logger = logging.getLogger(__name__)

# Fields only the store itself writes.
READ_ONLY_FIELDS = ("completion_history", "last_completed", "created_at")


class TaskStore:
    def __init__(self, storage, clock=None,
                 default_preferences: Optional[UserPreferences] = None):
        self.storage = storage
        self.clock = clock or SystemClock()
        self._default_preferences = default_preferences or UserPreferences()
        self._tasks: Dict[str, Task] = {}
        self.preferences = UserPreferences(**self._default_preferences.asdict())
        self._listeners: List[Callable[[], None]] = []
        self.load()

    # ── persistence ─────────────────────────────────────────────────────

    def load(self) -> None:
        """Read tasks and preferences. Missing or corrupt documents start empty."""
        rows = self.storage.load(TASKS_KEY)
        if rows is not None and not isinstance(rows, list):
            logger.warning(f"Stored tasks are not a list ({type(rows).__name__}); starting empty")
            rows = None
        self._tasks = {}
        for row in rows or []:
            task = task_from_row(row)
            if task is None:
                continue
            if task.id in self._tasks:
                logger.warning(f"Duplicate task id {task.id}; keeping the first record")
                continue
            self._tasks[task.id] = task

        self.preferences = preferences_from_row(
            self.storage.load(PREFERENCES_KEY), self._default_preferences)
        logger.debug(f"Loaded {len(self._tasks)} task(s)")

    def save(self) -> None:
        self.storage.save(TASKS_KEY, [task_to_row(t) for t in self._tasks.values()])

    def _commit(self) -> None:
        self.save()
        self._notify()

    # ── change listeners ────────────────────────────────────────────────

    def add_listener(self, callback: Callable[[], None]) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                logger.exception("Task change listener failed")

    # ── queries ─────────────────────────────────────────────────────────

    def get_all_tasks(self) -> List[Task]:
        return [copy.deepcopy(t) for t in self._tasks.values()]

    def get_task_by_id(self, task_id: str) -> Optional[Task]:
        task = self._tasks.get(task_id)
        return copy.deepcopy(task) if task else None

    def resolve_id(self, id_or_prefix: str) -> str:
        """Full id for an id or a unique id prefix."""
        if id_or_prefix in self._tasks:
            return id_or_prefix
        matches = [tid for tid in self._tasks if tid.startswith(id_or_prefix)]
        if not matches:
            raise TaskNotFoundError(id_or_prefix)
        if len(matches) > 1:
            raise ValidationError(f"Task id prefix {id_or_prefix!r} is ambiguous")
        return matches[0]

    def query_tasks(self, view: Optional[ViewFilter] = None,
                    show_completed: Optional[bool] = None,
                    today: Optional[date] = None) -> List[Task]:
        """
        Filtered view of the collection:
        - today: due today (recurring tasks due today always shown)
        - upcoming: due after today, or no due date
        - all: everything
        Completed tasks are hidden when show_completed is false.
        """
        view = ViewFilter(view) if view is not None else self.preferences.default_view
        if show_completed is None:
            show_completed = self.preferences.show_completed_tasks
        today = today or self.clock.today()

        result = []
        for task in self._tasks.values():
            if view == ViewFilter.TODAY:
                if task.due_date != today:
                    continue
                if task.completed and not show_completed and not task.is_recurring:
                    continue
            elif view == ViewFilter.UPCOMING:
                if task.due_date is not None and task.due_date <= today:
                    continue
                if task.completed and not show_completed:
                    continue
            elif task.completed and not show_completed:
                continue
            result.append(copy.deepcopy(task))
        return result

    # ── mutations ───────────────────────────────────────────────────────

    def add_task(self, task_data: Dict[str, Any]) -> Task:
        """Validate, assign id and created_at, persist. Returns the new task."""
        data = validate_task_data(dict(task_data))
        unknown = set(data) - set(get_task_fields())
        if unknown:
            raise ValidationError(f"Unknown task field(s): {', '.join(sorted(unknown))}")
        for name in READ_ONLY_FIELDS:
            data.pop(name, None)
        completed = bool(data.pop("completed", False))

        task = Task(id=str(uuid.uuid4()), created_at=self.clock.now(), **data)
        if completed:
            task.completed = True
            record_completion(task, self.clock.now())
        self._tasks[task.id] = task
        logger.info(f"Added task {task.id}: {task.title}")
        self._commit()
        return copy.deepcopy(task)

    def update_task(self, task_id: str, updates: Dict[str, Any]) -> Task:
        """
        Apply field updates. id, completion history and timestamps cannot be set;
        setting completed from false to true is recorded like a toggle.
        """
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        if not updates:
            return copy.deepcopy(task)

        data = dict(updates)
        blocked = set(data) & ({"id"} | set(READ_ONLY_FIELDS))
        if blocked:
            raise ValidationError(f"Field(s) cannot be updated: {', '.join(sorted(blocked))}")
        unknown = set(data) - set(get_task_fields())
        if unknown:
            raise ValidationError(f"Unknown task field(s): {', '.join(sorted(unknown))}")
        data = validate_task_data(data, partial=True)

        was_completed = task.completed
        for key, value in data.items():
            setattr(task, key, value)
        if task.missed_count < 0:
            task.missed_count = 0
        if task.completed and not was_completed:
            record_completion(task, self.clock.now())
        logger.info(f"Updated task {task_id}: {', '.join(sorted(data))}")
        self._commit()
        return copy.deepcopy(task)

    def delete_task(self, task_id: str) -> Optional[Task]:
        """Remove a task. Unknown ids are a no-op returning None."""
        task = self._tasks.pop(task_id, None)
        if task is None:
            logger.debug(f"delete_task: no task {task_id}")
            return None
        logger.info(f"Deleted task {task_id}")
        self._commit()
        return task

    def toggle_task_completion(self, task_id: str) -> Task:
        """
        Flip completed. Incomplete -> complete appends a history entry and
        stamps last_completed; complete -> incomplete appends nothing.
        """
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        task.completed = not task.completed
        if task.completed:
            record_completion(task, self.clock.now())
        logger.info(f"Task {task_id} marked {'complete' if task.completed else 'incomplete'}")
        self._commit()
        return copy.deepcopy(task)

    def reconcile(self, now: Optional[datetime] = None) -> ReconcileResult:
        """
        Run one reconciliation pass and persist the outcome as a single write.
        Listeners are not notified, so the on-change trigger cannot re-enter.
        """
        now = now or self.clock.now()
        result = reconcile_tasks(list(self._tasks.values()), now)
        if result.has_changes:
            self._tasks = {t.id: t for t in result.tasks}
            self.save()
        return result

    # ── preferences ─────────────────────────────────────────────────────

    def get_preferences(self) -> UserPreferences:
        return copy.deepcopy(self.preferences)

    def update_preferences(self, **changes) -> UserPreferences:
        """Set preference fields by name and persist immediately."""
        prefs = copy.deepcopy(self.preferences)
        for key, value in changes.items():
            if not hasattr(prefs, key):
                raise ValidationError(f"Unknown preference: {key}")
            if key == "default_view":
                try:
                    value = ViewFilter(value)
                except ValueError:
                    raise ValidationError("default_view must be one of: today, upcoming, all")
            else:
                value = bool(value)
            setattr(prefs, key, value)
        self.preferences = prefs
        self.storage.save(PREFERENCES_KEY, preferences_to_row(prefs))
        logger.info(f"Preferences updated: {', '.join(sorted(changes))}")
        return copy.deepcopy(prefs)
