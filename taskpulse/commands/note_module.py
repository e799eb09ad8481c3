# taskpulse/commands/note_module.py
'''
Notes with optional titled sections.
'''
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table
import typer

from taskpulse.utils.db import build_note_store
from taskpulse.utils.error_handler import ValidationError, handle_store_errors

app = typer.Typer(help="Keep notes alongside your tasks.")
section_app = typer.Typer(help="Add, edit and remove note sections.")
app.add_typer(section_app, name="section")
console = Console()


def _find(store, note_ref: str):
    notes = store.get_all_notes()
    matches = [n for n in notes if n.id == note_ref] \
        or [n for n in notes if n.id.startswith(note_ref)] \
        or [n for n in notes if n.title.lower() == note_ref.lower()]
    if len(matches) != 1:
        reason = "not found" if not matches else "is ambiguous"
        console.print(f"[bold red]❌ Error[/bold red]: Note '{note_ref}' {reason}.")
        raise typer.Exit(code=1)
    return matches[0]


def _find_section(note, section_ref: str):
    matches = [s for s in note.sections if s.id.startswith(section_ref)] \
        or [s for s in note.sections if s.title.lower() == section_ref.lower()]
    if len(matches) != 1:
        console.print(f"[bold red]❌ Error[/bold red]: Section '{section_ref}' not found in '{note.title}'.")
        raise typer.Exit(code=1)
    return matches[0]


@app.command()
@handle_store_errors("Add Note")
def add(title: str = typer.Argument(..., help="Note title."),
        content: Optional[str] = typer.Option(None, "--content", help="Note body.")):
    """
    Create a note.
    """
    store = build_note_store()
    try:
        note_id = store.add_note(title)
    except ValidationError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise typer.Exit(code=1)
    if content:
        store.update_note(note_id, {"content": content})
    console.print(f"[green]✅ Note added[/green]: [bold blue]{title.strip()}[/bold blue] [dim]({note_id[:8]})[/dim]")


@app.command("list")
def list_notes():
    """
    List notes.
    """
    notes = build_note_store().get_all_notes()
    if not notes:
        console.print("[italic blue]No notes yet.[/italic blue]")
        return
    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("ID", width=8)
    table.add_column("Title")
    table.add_column("Sections", justify="right")
    table.add_column("Created", style="dim")
    for n in notes:
        created = n.created_at.strftime("%Y-%m-%d") if n.created_at else "-"
        table.add_row(n.id[:8], n.title, str(len(n.sections)), created)
    console.print(table)


@app.command()
def show(note: str = typer.Argument(..., help="Note id, id prefix or title.")):
    """
    Print a note and its sections.
    """
    target = _find(build_note_store(), note)
    console.rule(f"📝 {target.title}")
    if target.content:
        console.print(Markdown(target.content))
    for section in target.sections:
        console.print(f"\n[bold]{section.title or '(untitled)'}[/bold] [dim]({section.id[:8]})[/dim]")
        if section.content:
            console.print(Markdown(section.content))


@app.command()
@handle_store_errors("Edit Note")
def edit(note: str = typer.Argument(..., help="Note id, id prefix or title."),
         title: Optional[str] = typer.Option(None, "--title", help="New title."),
         content: Optional[str] = typer.Option(None, "--content", help="New body.")):
    """
    Change a note's title or body.
    """
    store = build_note_store()
    target = _find(store, note)
    updates = {k: v for k, v in (("title", title), ("content", content)) if v is not None}
    if not updates:
        console.print("[yellow]Nothing to change.[/yellow]")
        return
    store.update_note(target.id, updates)
    console.print(f"[green]✏️ Updated[/green] note [bold blue]{updates.get('title', target.title)}[/bold blue]")


@app.command()
@handle_store_errors("Delete Note")
def delete(note: str = typer.Argument(..., help="Note id, id prefix or title.")):
    """
    Delete a note.
    """
    store = build_note_store()
    target = _find(store, note)
    store.delete_note(target.id)
    console.print(f"[red]🗑️ Deleted[/red] note [bold blue]{target.title}[/bold blue]")


@section_app.command("add")
@handle_store_errors("Add Note Section")
def section_add(note: str = typer.Argument(..., help="Note id, id prefix or title."),
                title: str = typer.Argument(..., help="Section title."),
                content: Optional[str] = typer.Option(None, "--content", help="Section body.")):
    """
    Append a section to a note.
    """
    store = build_note_store()
    target = _find(store, note)
    section_id = store.add_note_section(target.id, title)
    if content:
        store.update_note_section(target.id, section_id, {"content": content})
    console.print(f"[green]✅ Section added[/green] to [bold blue]{target.title}[/bold blue] [dim]({section_id[:8]})[/dim]")


@section_app.command("edit")
@handle_store_errors("Edit Note Section")
def section_edit(note: str = typer.Argument(..., help="Note id, id prefix or title."),
                 section: str = typer.Argument(..., help="Section id prefix or title."),
                 title: Optional[str] = typer.Option(None, "--title", help="New title."),
                 content: Optional[str] = typer.Option(None, "--content", help="New body.")):
    """
    Change a section's title or body.
    """
    store = build_note_store()
    target = _find(store, note)
    sec = _find_section(target, section)
    updates = {k: v for k, v in (("title", title), ("content", content)) if v is not None}
    if not updates:
        console.print("[yellow]Nothing to change.[/yellow]")
        return
    store.update_note_section(target.id, sec.id, updates)
    console.print("[green]✏️ Section updated[/green]")


@section_app.command("delete")
@handle_store_errors("Delete Note Section")
def section_delete(note: str = typer.Argument(..., help="Note id, id prefix or title."),
                   section: str = typer.Argument(..., help="Section id prefix or title.")):
    """
    Remove a section from a note.
    """
    store = build_note_store()
    target = _find(store, note)
    sec = _find_section(target, section)
    store.delete_note_section(target.id, sec.id)
    console.print(f"[red]🗑️ Deleted[/red] section [bold blue]{sec.title}[/bold blue]")
