from __future__ import annotations
from typing import Optional

import typer
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from promptopt.templates import PromptTemplate, get_registry, get_template, list_templates

from cli.utils import console, echo_json

templates_app = typer.Typer(help="Starter prompt templates")


@templates_app.command("list")
def templates_list(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Filter by category"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List the built-in templates."""
    templates = list_templates(category)
    if json_output:
        echo_json([t.to_dict() for t in templates])
        return
    if not templates:
        console.print("[yellow]No templates found[/yellow]")
        return

    table = Table(show_header=True)
    table.add_column("Category", style="magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Variables")
    for t in templates:
        table.add_row(t.category, t.name, ", ".join(t.variables))
    console.print(table)


@templates_app.command("show")
def templates_show(name: str = typer.Argument(..., help="Template name")):
    """Show a template's prompt text."""
    template = get_template(name)
    if not template:
        console.print(f"[red]Template '{name}' not found[/red]")
        raise typer.Exit(1)
    console.print(Panel(Text(template.prompt), title=f"{template.category} / {template.name}"))


@templates_app.command("add")
def templates_add(
    name: str = typer.Argument(..., help="Template name"),
    prompt: str = typer.Option(..., "--prompt", "-p", help="Prompt text with {{placeholders}}"),
    category: str = typer.Option("Custom", "--category", "-c", help="Category"),
):
    """Save a user template."""
    path = get_registry().save_template(PromptTemplate(category=category, name=name, prompt=prompt))
    console.print(f"✓ Saved to {path}")
