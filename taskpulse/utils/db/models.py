# taskpulse/utils/db/models.py
from enum import Enum
import logging
import re
from typing import Any, Dict, List, Optional, Union
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from datetime import date, datetime, time

logger = logging.getLogger(__name__)

TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class BaseModel:
    def asdict(self) -> dict:
        """
        Convert dataclass to dict, but keep raw types (Enum, datetime) for internal use.
        """
        return asdict(self)

    def to_dict(self) -> dict:
        """
        Convert dataclass to JSON-serializable dict:
         - Enum fields → their .value
         - datetime/date fields → ISO-format strings
         - Nested dataclasses: converted recursively
        """
        result = {}
        for f in fields(self.__class__):
            result[f.name] = _plain(getattr(self, f.name))
        return result

    def __repr__(self):
        cname = self.__class__.__name__
        fields_str = ', '.join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"{cname}({fields_str})"


def _plain(val: Any) -> Any:
    if val is None:
        return None
    if isinstance(val, Enum):
        return val.value
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    if hasattr(val, "to_dict") and callable(val.to_dict):
        return val.to_dict()
    if is_dataclass(val):
        return {f.name: _plain(getattr(val, f.name)) for f in fields(val)}
    if isinstance(val, list):
        return [_plain(item) for item in val]
    return val


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RecurrenceType(Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class IntervalUnit(Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


# Unit implied by each fixed recurrence type.
FIXED_TYPE_UNITS = {
    RecurrenceType.HOURLY: IntervalUnit.HOUR,
    RecurrenceType.DAILY: IntervalUnit.DAY,
    RecurrenceType.WEEKLY: IntervalUnit.WEEK,
    RecurrenceType.MONTHLY: IntervalUnit.MONTH,
    RecurrenceType.YEARLY: IntervalUnit.YEAR,
}


class ViewFilter(Enum):
    TODAY = "today"
    UPCOMING = "upcoming"
    ALL = "all"


@dataclass(frozen=True)
class NotRecurring:
    pass


@dataclass(frozen=True)
class Recurring:
    type: RecurrenceType
    interval: int = 1
    unit: Optional[IntervalUnit] = None
    end_date: Optional[datetime] = None


Recurrence = Union[NotRecurring, Recurring]


@dataclass
class CompletionRecord(BaseModel):
    date: datetime = None
    completed: bool = True


@dataclass
class Task(BaseModel):
    id: str = None
    title: str = ""
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    category: Optional[str] = None
    completed: bool = False
    last_completed: Optional[datetime] = None
    completion_history: List[CompletionRecord] = field(default_factory=list)
    due_date: Optional[date] = None
    due_time: Optional[str] = None
    alarm_set: bool = False
    created_at: Optional[datetime] = None
    recurrence: Recurrence = field(default_factory=NotRecurring)
    missed_count: int = 0

    @property
    def is_recurring(self) -> bool:
        return isinstance(self.recurrence, Recurring)

    def due_instant(self) -> Optional[datetime]:
        """Due date combined with due time (midnight when no time is set)."""
        if self.due_date is None:
            return None
        return datetime.combine(self.due_date, parse_time_of_day(self.due_time) or time(0, 0))


@dataclass
class UserPreferences(BaseModel):
    default_view: ViewFilter = ViewFilter.TODAY
    show_completed_tasks: bool = True
    enable_notifications: bool = True
    night_mode: bool = False


@dataclass
class CounterEntry(BaseModel):
    date: datetime = None
    count: int = 1


@dataclass
class Counter(BaseModel):
    id: str = None
    name: str = ""
    count: int = 0
    created_at: Optional[datetime] = None
    history: List[CounterEntry] = field(default_factory=list)


@dataclass
class NoteSection(BaseModel):
    id: str = None
    title: str = ""
    content: str = ""


@dataclass
class Note(BaseModel):
    id: str = None
    title: str = ""
    content: str = ""
    sections: List[NoteSection] = field(default_factory=list)
    created_at: Optional[datetime] = None


def get_task_fields() -> List[str]:
    # Exclude 'id' (assigned once at creation, immutable)
    return [f.name for f in fields(Task) if f.name != "id"]


# ───────────────────────────────────────────────────────────────────────────────
# Value parsing shared by the *_from_row helpers
# ───────────────────────────────────────────────────────────────────────────────

def parse_time_of_day(value: Optional[str]) -> Optional[time]:
    """Parse a 24-hour 'HH:MM' string; returns None when unset or malformed."""
    if not value:
        return None
    m = TIME_RE.match(str(value).strip())
    if not m:
        return None
    return time(int(m.group(1)), int(m.group(2)))


def parse_datetime_value(val: Any) -> Optional[datetime]:
    """
    Parse stored instants. Accepts naive ISO strings, ISO strings with an offset
    or trailing 'Z' (converted to local wall time), and datetime objects.
    """
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        dt = val
    elif isinstance(val, date):
        return datetime.combine(val, time(0, 0))
    else:
        text = str(val).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def parse_date_value(val: Any) -> Optional[date]:
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    text = str(val).strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return parse_datetime_value(text).date()


def _parse_end_date(val: Any) -> Optional[datetime]:
    # A bare date means "through the end of that day".
    if isinstance(val, str) and len(val.strip()) == 10:
        return datetime.combine(date.fromisoformat(val.strip()), time(23, 59, 59))
    return parse_datetime_value(val)


def _safe(parser, val, name: str, default=None):
    try:
        return parser(val)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {name}: {val!r}; using {default!r}")
        return default


def _list_field(row: Dict[str, Any], key: str) -> List[Any]:
    val = row.get(key)
    if val is None:
        return []
    if not isinstance(val, list):
        logger.warning(f"Invalid value for {key}: {val!r}; using []")
        return []
    return val


def _parse_unit(val: Any) -> Optional[IntervalUnit]:
    if not val:
        return None
    text = str(val).strip().lower()
    if text.endswith("s"):
        text = text[:-1]
    return IntervalUnit(text)


# ───────────────────────────────────────────────────────────────────────────────
# Task <-> stored JSON record
# ───────────────────────────────────────────────────────────────────────────────

def recurrence_from_row(row: Dict[str, Any]) -> Recurrence:
    """
    Collapse the stored recurrence fields into the tagged union.
    Legacy names ('recurring', 'frequency', 'recurringFrequencyValue',
    'recurringFrequencyUnit') are accepted for records written by older versions.
    """
    is_recurring = row.get("isRecurring", row.get("recurring", False))
    if not is_recurring:
        return NotRecurring()

    raw_type = row.get("recurringType") or row.get("frequency")
    try:
        rtype = RecurrenceType(str(raw_type).lower())
    except ValueError:
        # Left as custom-without-unit so the advancer rejects it instead of guessing.
        logger.warning(
            f"Unknown recurrence type {raw_type!r} on task {row.get('id')}; it will not advance")
        rtype = RecurrenceType.CUSTOM

    raw_interval = row.get("recurringInterval", row.get("recurringFrequencyValue"))
    if raw_interval is None:
        interval = 1
    else:
        interval = _safe(int, raw_interval, "recurringInterval", default=0)

    raw_unit = row.get("recurringIntervalUnit", row.get("recurringFrequencyUnit"))
    unit = _safe(_parse_unit, raw_unit, "recurringIntervalUnit")
    end_date = _safe(_parse_end_date, row.get("recurringEndDate"), "recurringEndDate")

    return Recurring(type=rtype, interval=interval, unit=unit, end_date=end_date)


def task_from_row(row: Dict[str, Any]) -> Optional[Task]:
    """
    Build a Task from its stored JSON record.
    Returns None for records missing an id or title; bad field values fall back
    to their defaults.
    """
    if not isinstance(row, dict):
        logger.warning(f"Skipping non-object task record: {row!r}")
        return None
    task_id = row.get("id")
    title = row.get("title")
    title = title.strip() if isinstance(title, str) else ""
    if not task_id or not title:
        logger.warning(f"Skipping task record without id/title: {row!r}")
        return None

    history = []
    for entry in _list_field(row, "completionHistory"):
        when = _safe(parse_datetime_value, entry.get("date") if isinstance(entry, dict) else None,
                     "completionHistory.date")
        if when is None:
            continue
        history.append(CompletionRecord(date=when, completed=bool(entry.get("completed", True))))

    due_time = row.get("dueTime") or None
    if due_time is not None and parse_time_of_day(due_time) is None:
        logger.warning(f"Invalid dueTime {due_time!r} on task {task_id}; dropping it")
        due_time = None

    missed = _safe(int, row.get("missedCount", 0) or 0, "missedCount", default=0)

    return Task(
        id=str(task_id),
        title=title,
        description=row.get("description") or None,
        priority=_safe(Priority, row.get("priority", "medium"), "priority", default=Priority.MEDIUM),
        category=row.get("category") or None,
        completed=bool(row.get("completed", False)),
        last_completed=_safe(parse_datetime_value, row.get("lastCompleted"), "lastCompleted"),
        completion_history=history,
        due_date=_safe(parse_date_value, row.get("dueDate"), "dueDate"),
        due_time=due_time,
        alarm_set=bool(row.get("alarmSet", False)),
        created_at=_safe(parse_datetime_value, row.get("createdAt"), "createdAt"),
        recurrence=recurrence_from_row(row),
        missed_count=max(0, missed),
    )


def task_to_row(task: Task) -> Dict[str, Any]:
    """Serialize a Task to its stored JSON record (camelCase keys)."""
    row: Dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "priority": task.priority.value,
        "category": task.category,
        "completed": task.completed,
        "lastCompleted": _plain(task.last_completed),
        "completionHistory": [
            {"date": _plain(rec.date), "completed": rec.completed}
            for rec in task.completion_history
        ],
        "dueDate": _plain(task.due_date),
        "dueTime": task.due_time,
        "alarmSet": task.alarm_set,
        "createdAt": _plain(task.created_at),
        "isRecurring": task.is_recurring,
    }
    rec = task.recurrence
    if isinstance(rec, Recurring):
        row.update({
            "recurringType": rec.type.value,
            "recurringInterval": rec.interval,
            "recurringIntervalUnit": rec.unit.value if rec.unit else None,
            "recurringEndDate": _plain(rec.end_date),
            "missedCount": task.missed_count,
        })
    return row


# ───────────────────────────────────────────────────────────────────────────────
# Preferences, counters, notes
# ───────────────────────────────────────────────────────────────────────────────

def preferences_from_row(row: Optional[Dict[str, Any]],
                         defaults: Optional[UserPreferences] = None) -> UserPreferences:
    base = defaults or UserPreferences()
    if not isinstance(row, dict):
        return UserPreferences(**base.asdict())
    return UserPreferences(
        default_view=_safe(ViewFilter, row.get("defaultView", base.default_view.value),
                           "defaultView", default=base.default_view),
        show_completed_tasks=bool(row.get("showCompletedTasks", base.show_completed_tasks)),
        enable_notifications=bool(row.get("enableNotifications", base.enable_notifications)),
        night_mode=bool(row.get("nightMode", base.night_mode)),
    )


def preferences_to_row(prefs: UserPreferences) -> Dict[str, Any]:
    return {
        "defaultView": prefs.default_view.value,
        "showCompletedTasks": prefs.show_completed_tasks,
        "enableNotifications": prefs.enable_notifications,
        "nightMode": prefs.night_mode,
    }


def counter_from_row(row: Dict[str, Any]) -> Optional[Counter]:
    if not isinstance(row, dict) or not row.get("id"):
        return None
    history = []
    for entry in _list_field(row, "history"):
        if not isinstance(entry, dict):
            logger.warning(f"Skipping counter history entry {entry!r}")
            continue
        when = _safe(parse_datetime_value, entry.get("date"), "history.date")
        if when is not None:
            history.append(CounterEntry(date=when, count=_safe(int, entry.get("count", 1), "count", 1)))
    return Counter(
        id=str(row["id"]),
        name=row.get("name", ""),
        count=_safe(int, row.get("count", 0), "count", default=0),
        created_at=_safe(parse_datetime_value, row.get("createdAt"), "createdAt"),
        history=history,
    )


def counter_to_row(counter: Counter) -> Dict[str, Any]:
    return {
        "id": counter.id,
        "name": counter.name,
        "count": counter.count,
        "createdAt": _plain(counter.created_at),
        "history": [{"date": _plain(e.date), "count": e.count} for e in counter.history],
    }


def note_from_row(row: Dict[str, Any]) -> Optional[Note]:
    if not isinstance(row, dict) or not row.get("id"):
        return None
    sections = [
        NoteSection(id=str(s["id"]), title=s.get("title", ""), content=s.get("content", ""))
        for s in _list_field(row, "sections")
        if isinstance(s, dict) and s.get("id")
    ]
    return Note(
        id=str(row["id"]),
        title=row.get("title", ""),
        content=row.get("content", ""),
        sections=sections,
        created_at=_safe(parse_datetime_value, row.get("createdAt"), "createdAt"),
    )


def note_to_row(note: Note) -> Dict[str, Any]:
    return {
        "id": note.id,
        "title": note.title,
        "content": note.content,
        "sections": [{"id": s.id, "title": s.title, "content": s.content} for s in note.sections],
        "createdAt": _plain(note.created_at),
    }
