# taskpulse/utils/error_handler.py
"""
Centralized error handling and validation for taskpulse.
"""
import logging
from functools import wraps
from typing import Any, Dict, Optional
from rich.console import Console
import typer

from taskpulse.utils.db.models import (
    NotRecurring, Priority, RecurrenceType, Recurring, parse_date_value, parse_time_of_day,
)

console = Console()
logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    """Raised when data validation fails."""
    pass


class RecurrenceConfigError(ValueError):
    """Raised when a recurring task's rule cannot produce a next occurrence."""
    pass


class StorageError(Exception):
    """Raised when persisting state fails."""
    pass


class TaskNotFoundError(KeyError):
    """Raised when an operation targets a task id that does not exist."""

    def __str__(self):
        return f"No task with id {self.args[0]!r}" if self.args else "Task not found"


def handle_store_errors(operation_name: str):
    """Decorator for consistent storage error handling."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except (typer.Exit, typer.Abort):
                raise
            except StorageError as e:
                logger.error(f"{operation_name} - Storage error: {e}")
                console.print(f"[red]Could not save changes in {operation_name}[/red]")
                raise
            except OSError as e:
                logger.error(f"{operation_name} - I/O error: {e}")
                console.print(f"[red]Storage error in {operation_name}[/red]")
                raise StorageError(f"Storage operation failed: {e}")
            except ValidationError as e:
                logger.warning(f"{operation_name} - Validation error: {e}")
                console.print(f"[red]Validation error: {e}[/red]")
                raise
            except Exception as e:
                logger.error(f"{operation_name} - Unexpected error: {e}", exc_info=True)
                console.print(f"[red]Unexpected error in {operation_name}[/red]")
                raise
        return wrapper
    return decorator


def validate_recurrence(rule: Any) -> None:
    """Reject recurrence rules the advancer could never apply."""
    if not isinstance(rule, Recurring):
        return
    if not isinstance(rule.interval, int) or rule.interval <= 0:
        raise ValidationError("Recurrence interval must be a positive integer")
    if rule.type == RecurrenceType.CUSTOM and rule.unit is None:
        raise ValidationError("Custom recurrence requires an interval unit")


def validate_task_data(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate and sanitize task data before store operations.
    - partial=True validates only the keys present (used for updates).
    """
    if not data:
        raise ValidationError("Task data cannot be empty")

    # Title validation
    if not partial or "title" in data:
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("Task title is required")
        if len(title) > 200:
            raise ValidationError("Task title cannot exceed 200 characters")
        data["title"] = title

    # Priority validation
    if "priority" in data and data["priority"] is None:
        data.pop("priority")
    if data.get("priority") is not None and not isinstance(data["priority"], Priority):
        try:
            data["priority"] = Priority(str(data["priority"]).lower())
        except ValueError:
            raise ValidationError("Priority must be one of: low, medium, high")

    # Time validation
    if data.get("due_time"):
        if parse_time_of_day(data["due_time"]) is None:
            raise ValidationError("Due time must be a 24-hour HH:MM string")
    elif "due_time" in data:
        data["due_time"] = None

    # Date validation
    if isinstance(data.get("due_date"), str):
        try:
            data["due_date"] = parse_date_value(data["due_date"])
        except ValueError:
            raise ValidationError(f"Invalid due date: {data['due_date']}")

    if "recurrence" in data:
        if data["recurrence"] is None:
            data["recurrence"] = NotRecurring()
        validate_recurrence(data["recurrence"])

    # String field sanitization
    for field in ["description", "category"]:
        if field in data:
            data[field] = sanitize_string(data[field])

    return data


def sanitize_string(value: Any, max_length: int = 500) -> Optional[str]:
    """Sanitize and truncate string values."""
    if value is None:
        return None

    sanitized = str(value).strip()
    if not sanitized:
        return None

    if len(sanitized) > max_length:
        logger.warning(f"Truncating string from {len(sanitized)} to {max_length} characters")
        sanitized = sanitized[:max_length]

    return sanitized
