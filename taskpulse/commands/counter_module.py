# taskpulse/commands/counter_module.py
'''
Tally counters: count things you do and see how often you did them.
'''
from rich.console import Console
from rich.table import Table
import typer

from taskpulse.utils.db import build_counter_store
from taskpulse.utils.error_handler import ValidationError, handle_store_errors

app = typer.Typer(help="Count things you do and chart how often you do them.")
console = Console()


def _find(store, counter_ref: str):
    """Match a counter by id, id prefix, or exact name (case-insensitive)."""
    counters = store.get_all_counters()
    matches = [c for c in counters if c.id == counter_ref] \
        or [c for c in counters if c.id.startswith(counter_ref)] \
        or [c for c in counters if c.name.lower() == counter_ref.lower()]
    if len(matches) != 1:
        reason = "not found" if not matches else "is ambiguous"
        console.print(f"[bold red]❌ Error[/bold red]: Counter '{counter_ref}' {reason}.")
        raise typer.Exit(code=1)
    return matches[0]


@app.command()
@handle_store_errors("Add Counter")
def add(name: str = typer.Argument(..., help="Name of the counter.")):
    """
    Create a counter starting at zero.
    """
    try:
        counter = build_counter_store().add_counter(name)
    except ValidationError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✅ Counter added[/green]: [bold blue]{counter.name}[/bold blue]")


@app.command("list")
def list_counters():
    """
    Show all counters and their current counts.
    """
    counters = build_counter_store().get_all_counters()
    if not counters:
        console.print("[italic blue]No counters yet. Add one with `tpulse counter add`.[/italic blue]")
        return
    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("ID", width=8)
    table.add_column("Name")
    table.add_column("Count", justify="right", style="bold")
    for c in counters:
        table.add_row(c.id[:8], c.name, str(c.count))
    console.print(table)


@app.command()
@handle_store_errors("Increment Counter")
def inc(counter: str = typer.Argument(..., help="Counter id, id prefix or name.")):
    """
    Add one to a counter.
    """
    store = build_counter_store()
    updated = store.increment(_find(store, counter).id)
    console.print(f"[green]➕ {updated.name}[/green]: {updated.count}")


@app.command()
@handle_store_errors("Reset Counter")
def reset(counter: str = typer.Argument(..., help="Counter id, id prefix or name.")):
    """
    Set a counter back to zero. Its history is kept.
    """
    store = build_counter_store()
    updated = store.reset(_find(store, counter).id)
    console.print(f"[yellow]↺ {updated.name}[/yellow] reset to 0")


@app.command()
@handle_store_errors("Rename Counter")
def rename(counter: str = typer.Argument(..., help="Counter id, id prefix or name."),
           name: str = typer.Argument(..., help="New name.")):
    """
    Rename a counter.
    """
    store = build_counter_store()
    try:
        updated = store.rename(_find(store, counter).id, name)
    except ValidationError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✏️ Renamed[/green] to [bold blue]{updated.name}[/bold blue]")


@app.command()
@handle_store_errors("Delete Counter")
def delete(counter: str = typer.Argument(..., help="Counter id, id prefix or name.")):
    """
    Delete a counter and its history.
    """
    store = build_counter_store()
    target = _find(store, counter)
    store.delete_counter(target.id)
    console.print(f"[red]🗑️ Deleted[/red] counter [bold blue]{target.name}[/bold blue]")


@app.command()
def history(counter: str = typer.Argument(..., help="Counter id, id prefix or name."),
            period: str = typer.Option("weekly", "--period", "-p",
                                       help="weekly, monthly or yearly.")):
    """
    Show increments per day (weekly/monthly) or per month (yearly).
    """
    store = build_counter_store()
    target = _find(store, counter)
    try:
        rows = store.get_counter_history(target.id, period)
    except ValidationError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise typer.Exit(code=1)
    if not rows:
        console.print(f"[italic blue]No activity for {target.name} in this period.[/italic blue]")
        return
    peak = max(r["count"] for r in rows)
    console.rule(f"📈 {target.name} ({period})")
    for r in rows:
        bar = "█" * max(1, round(r["count"] / peak * 30))
        console.print(f"{r['date']:>8} [cyan]{bar}[/cyan] {r['count']}")
