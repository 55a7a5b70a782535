from __future__ import annotations
import typer
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from promptopt.history import HistoryView
from promptopt.models import TARGET_MODEL_OPTIONS

from cli.utils import console, echo_json, get_session, preview

history_app = typer.Typer(help="Optimization history and favorites")


@history_app.command("list")
def history_list(
    favorites: bool = typer.Option(False, "--favorites", help="Only favorite entries"),
    search: str = typer.Option("", "--search", "-s", help="Filter by text in either prompt"),
    limit: int = typer.Option(20, help="Number of entries to show"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List optimization history (newest first)
    """
    store = get_session().history
    view = HistoryView.FAVORITES if favorites else HistoryView.HISTORY
    entries = store.filter(view, search)[:limit]

    if json_output:
        echo_json([e.to_storage() for e in entries])
        return

    if not entries:
        console.print("[yellow]No history entries found[/yellow]")
        return

    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("★", width=1)
    table.add_column("Target", style="magenta")
    table.add_column("Original", style="white", width=40)
    table.add_column("Optimized", style="cyan", width=40)

    for entry in entries:
        table.add_row(
            str(entry.id),
            "★" if entry.is_favorite else "",
            entry.target_model.value,
            Text(preview(entry.original_prompt, 40)),
            Text(preview(entry.optimized_prompt, 40)),
        )

    console.print(table)
    console.print(f"[dim]{len(entries)} of {len(store)} entries[/dim]")


@history_app.command("show")
def history_show(entry_id: int = typer.Argument(..., help="Entry ID")):
    """
    Show both prompts of a history entry
    """
    entry = get_session().history.get_by_id(entry_id)
    if not entry:
        console.print(f"[red]Entry '{entry_id}' not found[/red]")
        raise typer.Exit(1)

    star = " ★" if entry.is_favorite else ""
    console.print(f"\n[bold]Entry {entry.id}{star}[/bold] [dim]({TARGET_MODEL_OPTIONS[entry.target_model]})[/dim]\n")
    console.print(Panel(Text(entry.original_prompt), title="Original", border_style="blue"))
    console.print(Panel(Text(entry.optimized_prompt), title="Optimized", border_style="green"))


@history_app.command("favorite")
def history_favorite(entry_id: int = typer.Argument(..., help="Entry ID")):
    """
    Toggle the favorite flag of an entry
    """
    entry = get_session().history.toggle_favorite(entry_id)
    if not entry:
        console.print(f"[red]Entry '{entry_id}' not found[/red]")
        raise typer.Exit(1)
    state = "added to" if entry.is_favorite else "removed from"
    console.print(f"[green]✓[/green] Entry {entry.id} {state} favorites")
