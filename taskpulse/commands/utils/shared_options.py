# taskpulse/commands/utils/shared_options.py
'''
Shared options for the taskpulse CLI.
Keeps option names and help text consistent between `task add` and `task modify`.
'''

import typer

from taskpulse.utils.db.models import IntervalUnit, Priority, RecurrenceType, ViewFilter


def _choices(enum_cls) -> str:
    return ", ".join(member.value for member in enum_cls)


# ─── Core Task Options ───────────────────────────────────────────────────────────

desc_option = typer.Option(
    None,
    "--desc",
    help="Longer description of the task.",
    show_default=False,
)

category_option = typer.Option(
    None,
    "-c", "--cat",
    help="Task category (e.g., work, home, health).",
    show_default=False,
)

priority_option = typer.Option(
    None,
    "-p", "--priority",
    help=f"Task priority: {_choices(Priority)}.",
    show_default=False,
)

due_option = typer.Option(
    None,
    "-d", "--due",
    help="Due date. Accepts ISO format (YYYY-MM-DD), M/D, today, tomorrow, "
         "or offsets (1d, 2w, 1mn, 1y).",
    show_default=False,
)

time_option = typer.Option(
    None,
    "-t", "--time",
    help="Due time of day, e.g. 14:30, 9:05, 2:30pm.",
    show_default=False,
)

alarm_option = typer.Option(
    None,
    "--alarm/--no-alarm",
    help="Fire a reminder at the due time (needs --due today and --time).",
    show_default=False,
)

# ─── Recurrence Options ──────────────────────────────────────────────────────────

recur_option = typer.Option(
    None,
    "-r", "--recur",
    help=f"Repeat the task: {_choices(RecurrenceType)}.",
    show_default=False,
)

every_option = typer.Option(
    None,
    "--every",
    help="Repeat every N units (default 1).",
    show_default=False,
)

unit_option = typer.Option(
    None,
    "--unit",
    help=f"Unit for --recur custom: {_choices(IntervalUnit)}.",
    show_default=False,
)

until_option = typer.Option(
    None,
    "--until",
    help="Stop repeating after this date.",
    show_default=False,
)

# ─── Listing Options ─────────────────────────────────────────────────────────────

view_option = typer.Option(
    None,
    "-v", "--view",
    help=f"Which tasks to show: {_choices(ViewFilter)}. Defaults to your preference.",
    show_default=False,
)

show_completed_option = typer.Option(
    None,
    "--show-completed/--hide-completed",
    help="Include completed tasks. Defaults to your preference.",
    show_default=False,
)
