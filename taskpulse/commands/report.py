# taskpulse/commands/report.py
'''
Reports on repeating tasks: missed occurrences, completion rate, and a
day-by-day completion grid.
'''
from rich.console import Console
from rich.table import Table
import typer

from taskpulse.utils.db import build_task_store
from taskpulse.utils.db import report_repository
from taskpulse.utils.shared_utils import format_due, format_recurrence

app = typer.Typer(help="Reports on your repeating tasks.")
console = Console()

STATUS_ICONS = {
    report_repository.COMPLETED: "[green]✔[/green]",
    report_repository.MISSED: "[red]✘[/red]",
    report_repository.PENDING: "[yellow]●[/yellow]",
    report_repository.NOT_DUE: "[dim]○[/dim]",
    report_repository.NOT_APPLICABLE: " ",
}


def rate_color(rate: int) -> str:
    if rate >= 80:
        return "green"
    if rate >= 50:
        return "yellow"
    return "red"


def show_recurring_report(store) -> None:
    tasks = store.get_all_tasks()
    summary = report_repository.get_recurring_tasks_report(tasks)
    rate = summary["completion_rate"]
    today = store.clock.today()

    console.rule("🔁 Recurring Tasks Report")
    console.print(f"Completion rate: [{rate_color(rate)}]{rate}%[/{rate_color(rate)}]")

    remaining = report_repository.todays_remaining(tasks, today)
    if remaining:
        console.print(f"[cyan]Still to do today:[/cyan] " + ", ".join(t.title for t in remaining))

    if not summary["missed_tasks"]:
        console.print("[green]🎉 No missed recurring tasks. Keep it up![/green]")
        return

    table = Table(show_header=True, header_style="bold magenta", box=None, padding=(0, 1))
    table.add_column("Task", overflow="ellipsis")
    table.add_column("Frequency", style="cyan")
    table.add_column("Due Date", style="yellow")
    table.add_column("Times Missed", justify="right", style="red")
    for task in summary["missed_tasks"]:
        table.add_row(task.title, format_recurrence(task.recurrence),
                      format_due(task, today), str(task.missed_count))
    console.print(table)


@app.command()
def summary():
    """
    Missed repeating tasks and the overall completion rate.
    """
    show_recurring_report(build_task_store())


@app.command()
def grid(days: int = typer.Option(10, "--days", "-n", min=1, max=60,
                                  help="How many days back to show.")):
    """
    Day-by-day completion grid for repeating tasks.
    """
    store = build_task_store()
    today = store.clock.today()
    df = report_repository.completion_grid(store.get_all_tasks(), today, days=days)
    if df.empty:
        console.print("[italic blue]No repeating tasks yet.[/italic blue]")
        return

    day_columns = [c for c in df.columns if c not in ("task_id", "title", "completion_rate")]
    table = Table(show_header=True, header_style="bold magenta", box=None, padding=(0, 1))
    table.add_column("Task", overflow="ellipsis")
    for col in day_columns:
        table.add_column(col[5:].replace("-", "/"), justify="center")
    table.add_column("Rate", justify="right")

    for _, row in df.iterrows():
        rate = int(row["completion_rate"])
        table.add_row(
            row["title"],
            *[STATUS_ICONS.get(row[col], "?") for col in day_columns],
            f"[{rate_color(rate)}]{rate}%[/{rate_color(rate)}]",
        )
    console.print(table)
    console.print("[dim]✔ completed  ✘ missed  ● due today  ○ not due[/dim]")
