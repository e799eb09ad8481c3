# taskpulse/utils/shared_utils.py
'''
Date/time parsing for command-line input and formatting for display.
'''

from datetime import date, datetime, timedelta
import re
from typing import Optional

from dateutil.relativedelta import relativedelta

from taskpulse.utils.db.models import (
    FIXED_TYPE_UNITS, NotRecurring, RecurrenceType, Recurring, Task, parse_time_of_day,
)


def parse_date_string(date_string: str, today: Optional[date] = None) -> date:
    """
    Parses a smart or relative date string into a date.
    Supports:
    - 'today', 'tomorrow', 'yesterday'
    - '1d', '2w', '1mn', '1y' (offsets forward from today, combinable: '1w2d')
    - '4/5', '4/5/25', '4/5/2025'
    - '2025-04-05'
    """
    if today is None:
        today = date.today()

    ds = date_string.strip().lower()
    if ds == 'today':
        return today
    if ds == 'tomorrow':
        return today + timedelta(days=1)
    if ds == 'yesterday':
        return today - timedelta(days=1)

    if re.fullmatch(r'(\d+(y|mn|w|d))+', ds):
        delta = relativedelta()
        for value, unit in re.findall(r'(\d+)(y|mn|w|d)', ds):
            value = int(value)
            if unit == 'y':
                delta += relativedelta(years=value)
            elif unit == 'mn':
                delta += relativedelta(months=value)
            elif unit == 'w':
                delta += relativedelta(weeks=value)
            else:
                delta += relativedelta(days=value)
        return today + delta

    try:
        return date.fromisoformat(ds)
    except ValueError:
        pass

    for fmt in ("%m/%d", "%m/%d/%y", "%m/%d/%Y"):
        try:
            parsed = datetime.strptime(ds, fmt)
        except ValueError:
            continue
        # Fill in missing year if needed
        if fmt == "%m/%d":
            parsed = parsed.replace(year=today.year)
        return parsed.date()

    raise ValueError(f"Could not parse date: '{date_string}'")


def parse_time_string(time_string: str) -> str:
    """
    Normalise '9:05', '09:05', '9:05pm', '9pm' into 24-hour 'HH:MM'.
    """
    ts = time_string.strip().lower().replace(" ", "")
    m = re.fullmatch(r'(\d{1,2})(?::(\d{2}))?(am|pm)?', ts)
    if not m:
        raise ValueError(f"Could not parse time: '{time_string}'")
    hour = int(m.group(1))
    minute = int(m.group(2) or 0)
    suffix = m.group(3)
    if suffix:
        if not 1 <= hour <= 12:
            raise ValueError(f"Invalid 12-hour time: '{time_string}'")
        hour = hour % 12 + (12 if suffix == "pm" else 0)
    elif m.group(2) is None:
        raise ValueError(f"Time needs minutes or am/pm: '{time_string}'")
    if hour > 23 or minute > 59:
        raise ValueError(f"Time out of range: '{time_string}'")
    return f"{hour:02d}:{minute:02d}"


def format_time_12h(hhmm: Optional[str]) -> str:
    """'14:30' -> '2:30 PM'; empty string when unset."""
    t = parse_time_of_day(hhmm)
    if t is None:
        return ""
    suffix = "PM" if t.hour >= 12 else "AM"
    hour = t.hour % 12 or 12
    return f"{hour}:{t.minute:02d} {suffix}"


def format_due(task: Task, today: Optional[date] = None) -> str:
    if task.due_date is None:
        return "-"
    today = today or date.today()
    if task.due_date == today:
        label = "Today"
    elif task.due_date == today + timedelta(days=1):
        label = "Tomorrow"
    elif task.due_date == today - timedelta(days=1):
        label = "Yesterday"
    else:
        label = task.due_date.strftime("%b %d, %Y")
    if task.due_time:
        label += f" {format_time_12h(task.due_time)}"
    return label


def format_recurrence(rule) -> str:
    """'daily', 'every 2 weeks', 'every 3 days (custom)', ... for display."""
    if isinstance(rule, NotRecurring) or rule is None:
        return "-"
    if not isinstance(rule, Recurring):
        return str(rule)
    if rule.type == RecurrenceType.CUSTOM:
        if rule.unit is None:
            return "custom (no unit)"
        text = f"every {rule.interval} {rule.unit.value}{'s' if rule.interval != 1 else ''}"
    elif rule.interval == 1:
        text = rule.type.value
    else:
        text = f"every {rule.interval} {FIXED_TYPE_UNITS[rule.type].value}s"
    if rule.end_date is not None:
        text += f" until {rule.end_date.strftime('%Y-%m-%d')}"
    return text
