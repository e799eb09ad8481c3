#!/usr/bin/env python3
# Taskpulse - A terminal task manager with repeating tasks and reminders
# Copyright (C) 2024 Zach McKinnon
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
'''
Taskpulse CLI
A command-line interface for tasks with due dates, reminders and recurrence,
plus counters and notes.
'''
import asyncio
import logging
import sys

import typer
from rich.console import Console
from rich.table import Table

import taskpulse.config.config_manager as cf
from taskpulse.commands import counter_module, note_module, report, task_module
from taskpulse.config.schedule_manager import ScheduleManager
from taskpulse.utils import log_utils
from taskpulse.utils.alarms import AlarmTrigger
from taskpulse.utils.db import build_task_store
from taskpulse.utils.error_handler import ValidationError, handle_store_errors
from taskpulse.utils.notifications import DEFAULT_SOUND, build_dispatcher

app = typer.Typer(
    help="⏰ Taskpulse CLI: tasks, repeating tasks, reminders, counters and notes.")

console = Console()
logger = logging.getLogger(__name__)

app.add_typer(task_module.app, name="task",
              help="Create, track, and complete tasks.")
app.add_typer(counter_module.app, name="counter",
              help="Count things you do.")
app.add_typer(note_module.app, name="note",
              help="Keep notes with sections.")
app.add_typer(report.app, name="report",
              help="Reports on repeating tasks.")

prefs_app = typer.Typer(help="Show or change your preferences.")
app.add_typer(prefs_app, name="prefs")

# CLI name -> UserPreferences field
PREFERENCE_KEYS = {
    "default-view": "default_view",
    "show-completed": "show_completed_tasks",
    "notifications": "enable_notifications",
    "night-mode": "night_mode",
}

TRUE_WORDS = ("1", "true", "yes", "on")
FALSE_WORDS = ("0", "false", "no", "off")


@app.callback()
def main_callback(ctx: typer.Context):
    """
    Main callback before any command.
    - Sets up logging at the configured level.
    """
    log_utils.setup_logging()
    logger.debug(f"Running command: {ctx.invoked_subcommand}")


@prefs_app.command("show")
def prefs_show():
    """
    Show current preferences.
    """
    prefs = build_task_store(auto_reconcile=False).get_preferences()
    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("Preference", style="bold blue")
    table.add_column("Value")
    for cli_name, field_name in PREFERENCE_KEYS.items():
        value = getattr(prefs, field_name)
        table.add_row(cli_name, value.value if hasattr(value, "value") else str(value).lower())
    console.print(table)


@prefs_app.command("set")
@handle_store_errors("Update Preferences")
def prefs_set(
    key: str = typer.Argument(..., help=f"One of: {', '.join(PREFERENCE_KEYS)}."),
    value: str = typer.Argument(..., help="today/upcoming/all for default-view; on/off otherwise."),
):
    """
    Change a preference. Saved immediately.
    """
    field_name = PREFERENCE_KEYS.get(key)
    if field_name is None:
        console.print(f"[bold red]❌ Unknown preference '{key}'.[/bold red] "
                      f"Use one of: {', '.join(PREFERENCE_KEYS)}")
        raise typer.Exit(code=1)

    if field_name == "default_view":
        parsed = value.strip().lower()
    elif value.strip().lower() in TRUE_WORDS:
        parsed = True
    elif value.strip().lower() in FALSE_WORDS:
        parsed = False
    else:
        console.print(f"[bold red]❌ '{value}' is not on/off.[/bold red]")
        raise typer.Exit(code=1)

    try:
        build_task_store(auto_reconcile=False).update_preferences(**{field_name: parsed})
    except ValidationError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✅ {key}[/green] set to [bold]{value}[/bold]")


@app.command()
def watch(
    no_desktop: bool = typer.Option(
        False, "--no-desktop", help="Only show reminders in this terminal."),
):
    """
    Keep running: fire reminders at due times and roll repeating tasks over at midnight.
    """
    settings = cf.get_scheduler_settings()
    store = build_task_store(auto_reconcile=False)
    desktop = bool(cf.get_config_value("notifications", "desktop", True)) and not no_desktop
    dispatcher = build_dispatcher(desktop=desktop, console=console)
    sound = cf.get_config_value("notifications", "sound", DEFAULT_SOUND) or None
    trigger = AlarmTrigger(
        dispatcher, store.clock,
        tolerance_minutes=settings["alarm_tolerance_minutes"],
        sound=sound,
    )
    manager = ScheduleManager(
        store, trigger, store.clock, alarm_interval=settings["alarm_interval_seconds"])

    console.print("[cyan]👀 Watching your tasks. Press Ctrl+C to stop.[/cyan]")
    try:
        asyncio.run(manager.run_forever())
    except KeyboardInterrupt:
        console.print("\n[yellow]🚪 Stopped watching.[/yellow]")


if __name__ == "__main__":

    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]🚪 Exiting...[/yellow]")
        sys.exit(0)
