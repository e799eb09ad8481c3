# taskpulse/commands/task_module.py
'''
Taskpulse Task Management Module
Create, list, modify, complete and delete tasks, including repeating tasks
that roll forward to their next occurrence.
'''
from datetime import date, datetime, time
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from taskpulse.commands import report
from taskpulse.commands.utils.shared_options import (
    alarm_option, category_option, desc_option, due_option, every_option, priority_option,
    recur_option, show_completed_option, time_option, unit_option, until_option, view_option,
)
from taskpulse.utils.db import build_task_store
from taskpulse.utils.db.models import (
    IntervalUnit, NotRecurring, Priority, RecurrenceType, Recurring, Task, ViewFilter,
    get_task_fields,
)
from taskpulse.utils.error_handler import TaskNotFoundError, ValidationError, handle_store_errors
from taskpulse.utils.shared_utils import (
    format_due, format_recurrence, format_time_12h, parse_date_string, parse_time_string,
)

app = typer.Typer(help="Create and manage your tasks.")

console = Console()

SHORT_ID = 8


def _store():
    return build_task_store()


def _fail(message) -> None:
    console.print(f"[bold red]❌ Error[/bold red]: {message}")
    raise typer.Exit(code=1)


def short_id(task_id: str) -> str:
    return task_id[:SHORT_ID]


def priority_color(priority: Priority) -> str:
    return {Priority.HIGH: "bold red", Priority.MEDIUM: "yellow", Priority.LOW: "green"}.get(priority, "white")


def build_recurrence(recur: Optional[str], every: Optional[int], unit: Optional[str],
                     until: Optional[str], today: date, base=None):
    """
    Turn the recurrence options into a rule.
    - base: the task's current rule, so `modify --every 2` keeps type and unit.
    - recur 'none' removes recurrence.
    """
    if recur is None and every is None and unit is None and until is None:
        return base if base is not None else NotRecurring()
    if recur is not None and recur.strip().lower() in ("none", "off", "no"):
        return NotRecurring()

    current = base if isinstance(base, Recurring) else None
    if recur is None and current is None:
        raise ValidationError("--every, --unit and --until need --recur")

    if recur is not None:
        try:
            rtype = RecurrenceType(recur.strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unknown recurrence '{recur}'. Use one of: "
                + ", ".join(r.value for r in RecurrenceType))
    else:
        rtype = current.type

    if unit is not None:
        try:
            unit_enum = IntervalUnit(unit.strip().lower().rstrip("s"))
        except ValueError:
            raise ValidationError(
                f"Unknown unit '{unit}'. Use one of: " + ", ".join(u.value for u in IntervalUnit))
    else:
        unit_enum = current.unit if current else None

    interval = every if every is not None else (current.interval if current else 1)
    if until is not None:
        end_date = datetime.combine(parse_date_string(until, today), time(23, 59, 59))
    else:
        end_date = current.end_date if current else None

    return Recurring(
        type=rtype,
        interval=interval,
        unit=unit_enum if rtype == RecurrenceType.CUSTOM else None,
        end_date=end_date,
    )


def resolve_task(store, task_id: str) -> Task:
    try:
        return store.get_task_by_id(store.resolve_id(task_id))
    except TaskNotFoundError:
        _fail(f"Task ID {task_id} not found.")
    except ValidationError as e:
        _fail(e)


@app.command()
@handle_store_errors("Add Task")
def add(
    title: str = typer.Argument(..., help="The title of the task you need to get done."),
    description: Optional[str] = desc_option,
    category: Optional[str] = category_option,
    priority: Optional[str] = priority_option,
    due: Optional[str] = due_option,
    at: Optional[str] = time_option,
    alarm: Optional[bool] = alarm_option,
    recur: Optional[str] = recur_option,
    every: Optional[int] = every_option,
    unit: Optional[str] = unit_option,
    until: Optional[str] = until_option,
):
    """
    ✨ Add a new task.
    """
    store = _store()
    today = store.clock.today()
    try:
        due_date = parse_date_string(due, today) if due else None
        due_time = parse_time_string(at) if at else None
        recurrence = build_recurrence(recur, every, unit, until, today)
        # A time or a repeat without a date starts today.
        if due_date is None and (due_time or isinstance(recurrence, Recurring)):
            due_date = today
        if alarm and due_time is None:
            raise ValidationError("--alarm needs a due time (--time)")

        task = store.add_task({
            "title": title,
            "description": description,
            "category": category,
            "priority": priority,
            "due_date": due_date,
            "due_time": due_time,
            "alarm_set": bool(alarm),
            "recurrence": recurrence,
        })
    except ValueError as e:
        _fail(e)

    console.print(
        f"[green]✅ Task added[/green]: [bold blue]{task.title}[/bold blue] [dim]({short_id(task.id)})[/dim]")
    if task.is_recurring:
        console.print(f"[cyan]🔁 Repeats {format_recurrence(task.recurrence)}[/cyan]")


@app.command("list")
def list_tasks(
    view: Optional[str] = view_option,
    show_completed: Optional[bool] = show_completed_option,
):
    """
    List tasks for a view (today, upcoming, all).
    """
    store = _store()
    try:
        view_enum = ViewFilter(view.strip().lower()) if view else None
    except ValueError:
        _fail(f"Unknown view '{view}'. Use today, upcoming or all.")

    tasks = store.query_tasks(view_enum, show_completed)
    if not tasks:
        console.print("[italic blue]🧹 Nothing to do! Enjoy your day. 🌟[/italic blue]")
        return

    today = store.clock.today()
    table = Table(
        show_header=True,
        box=None,
        pad_edge=False,
        collapse_padding=True,
        padding=(0, 1),
        expand=True,
    )
    table.add_column("ID", width=SHORT_ID)
    table.add_column("", width=1)
    table.add_column("Title", overflow="ellipsis", min_width=8)
    table.add_column("Priority", width=6)
    table.add_column("Due", style="yellow", overflow="ellipsis")
    table.add_column("Repeats", style="cyan", overflow="ellipsis")

    for task in tasks:
        mark = "✔" if task.completed else ("⏰" if task.alarm_set else "")
        title = Text(task.title, style="dim strike" if task.completed else "")
        prio = Text(task.priority.value, style=priority_color(task.priority))
        repeats = format_recurrence(task.recurrence)
        if task.is_recurring and task.missed_count:
            repeats += f" (missed {task.missed_count})"
        table.add_row(short_id(task.id), mark, title, prio, format_due(task, today), repeats)

    console.print(table)


@app.command()
def info(task_id: str = typer.Argument(..., help="Task ID or unique ID prefix.")):
    """
    Show full details for a task.
    """
    store = _store()
    task = resolve_task(store, task_id)

    console.rule(f"📋 Task Details ({short_id(task.id)})")
    for key in get_task_fields():
        value = getattr(task, key, "-")
        if key == "recurrence":
            value = format_recurrence(value)
        elif key == "completion_history":
            value = f"{len(value)} completion(s)"
        elif key == "due_time":
            value = format_time_12h(value)
        elif key == "priority":
            value = value.value
        elif isinstance(value, (date, datetime)):
            value = value.isoformat(sep=" ") if isinstance(value, datetime) else value.isoformat()
        if value is None or str(value).strip() == "":
            value = "-"
        console.print(f"[bold blue]{key.replace('_', ' ').capitalize()}:[/bold blue] {value}")

    if task.completion_history:
        last = task.completion_history[-5:]
        console.print("[bold blue]Recent completions:[/bold blue] "
                      + ", ".join(rec.date.strftime("%Y-%m-%d %H:%M") for rec in last))


@app.command()
@handle_store_errors("Modify Task")
def modify(
    task_id: str = typer.Argument(..., help="Task ID or unique ID prefix."),
    title: Optional[str] = typer.Option(None, "--title", help="New title.", show_default=False),
    description: Optional[str] = desc_option,
    category: Optional[str] = category_option,
    priority: Optional[str] = priority_option,
    due: Optional[str] = due_option,
    at: Optional[str] = time_option,
    alarm: Optional[bool] = alarm_option,
    recur: Optional[str] = recur_option,
    every: Optional[int] = every_option,
    unit: Optional[str] = unit_option,
    until: Optional[str] = until_option,
):
    """
    Modify fields of an existing task. Use --recur none to stop repeating.
    """
    store = _store()
    task = resolve_task(store, task_id)
    today = store.clock.today()

    updates = {}
    try:
        if title is not None:
            updates["title"] = title
        if description is not None:
            updates["description"] = description
        if category is not None:
            updates["category"] = category
        if priority is not None:
            updates["priority"] = priority
        if due is not None:
            updates["due_date"] = None if due.lower() == "none" else parse_date_string(due, today)
        if at is not None:
            updates["due_time"] = None if at.lower() == "none" else parse_time_string(at)
        if alarm is not None:
            updates["alarm_set"] = alarm
        if any(v is not None for v in (recur, every, unit, until)):
            updates["recurrence"] = build_recurrence(
                recur, every, unit, until, today, base=task.recurrence)

        if not updates:
            console.print("[yellow]Nothing to change.[/yellow]")
            return
        updated = store.update_task(task.id, updates)
    except ValueError as e:
        _fail(e)

    console.print(
        f"[green]✏️ Updated[/green] task [bold blue]{updated.title}[/bold blue] [dim]({short_id(updated.id)})[/dim]")


@app.command()
@handle_store_errors("Complete Task")
def done(task_id: str = typer.Argument(..., help="Task ID or unique ID prefix.")):
    """
    Toggle a task's completion. Repeating tasks roll on to their next occurrence.
    """
    store = _store()
    task = resolve_task(store, task_id)
    store.toggle_task_completion(task.id)
    after = store.get_task_by_id(task.id)

    if not task.completed:
        console.print(f"[green]✔️ Completed[/green]: [bold blue]{task.title}[/bold blue]")
        if after.is_recurring and after.due_date != task.due_date:
            console.print(f"[cyan]🔁 Next due {format_due(after, store.clock.today())}[/cyan]")
    else:
        console.print(f"[yellow]↩️ Reopened[/yellow]: [bold blue]{task.title}[/bold blue]")


@app.command()
@handle_store_errors("Delete Task")
def delete(task_id: str = typer.Argument(..., help="Task ID or unique ID prefix.")):
    """
    Delete a task by ID.
    """
    store = _store()
    task = resolve_task(store, task_id)
    store.delete_task(task.id)
    console.print(
        f"[red]🗑️ Deleted[/red] task [bold blue]{task.title}[/bold blue] [dim]({short_id(task.id)})[/dim]")


@app.command()
@handle_store_errors("Reconcile Tasks")
def reconcile():
    """
    Roll repeating tasks forward and count missed occurrences now.
    """
    store = build_task_store(auto_reconcile=False)
    result = store.reconcile()
    console.print(f"[green]🔄 Reconciled[/green]: {len(result.changed)} task(s) updated")
    if result.skipped:
        console.print(
            f"[yellow]⚠️ Skipped {len(result.skipped)} task(s) with invalid recurrence:[/yellow] "
            + ", ".join(short_id(tid) for tid in result.skipped))


@app.command("report")
def task_report():
    """
    Missed repeating tasks and the overall completion rate.
    """
    report.show_recurring_report(_store())
