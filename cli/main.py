from __future__ import annotations
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from promptopt import get_version
from promptopt.errors import OptimizationError
from promptopt.instructions import build_instruction
from promptopt.models import TARGET_MODEL_OPTIONS, TargetModel
from promptopt.templates import extract_variables, missing_variables

from cli.commands.history import history_app
from cli.commands.settings import settings_app
from cli.commands.templates import templates_app
from cli.utils import configure_logging, console, echo_json, get_session, parse_assignments

app = typer.Typer(help="Prompt Optimizer CLI")
app.add_typer(history_app, name="history")
app.add_typer(settings_app, name="settings")
app.add_typer(templates_app, name="templates")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    configure_logging(verbose)


@app.command("version")
def version():
    """Show the installed version."""
    typer.echo(get_version())


@app.command("optimize")
def optimize_cmd(
    text: Optional[str] = typer.Argument(None, help="Prompt text (or use --file / stdin)"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read the prompt from a file"),
    target: str = typer.Option("gemini", "--target", "-t", help="gemini, anthropic, chatgpt or llama"),
    var: List[str] = typer.Option([], "--var", help="Placeholder value as NAME=VALUE (repeatable)"),
    template: Optional[str] = typer.Option(None, "--template", help="Start from a gallery template"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Save the optimized prompt to a file"),
    no_history: bool = typer.Option(False, "--no-history", help="Do not save the result to history"),
    json_output: bool = typer.Option(False, "--json", help="Output the history entry as JSON"),
):
    """
    Rewrite a prompt for the chosen model family.
    """
    session = get_session()

    if template:
        try:
            session.load_template(template)
        except KeyError as e:
            console.print(f"[red]{e.args[0]}[/red]")
            raise typer.Exit(1)
    elif file:
        if not file.exists():
            console.print(f"[red]Prompt file not found: {file}[/red]")
            raise typer.Exit(1)
        session.set_prompt(file.read_text(encoding="utf-8"))
    elif text is not None:
        session.set_prompt(text)
    elif not sys.stdin.isatty():
        session.set_prompt(sys.stdin.read())

    for name, value in parse_assignments(var).items():
        if not session.set_variable(name, value):
            console.print(f"[yellow]Ignoring unknown variable: {name}[/yellow]")

    unset = missing_variables(session.prompt, session.variables)
    if unset and not json_output:
        console.print(f"[yellow]Unset variables (left empty): {', '.join(unset)}[/yellow]")

    try:
        if no_history:
            resolved = session.resolved_prompt()
            optimized = session.preview(target)
            entry = None
            model = TargetModel.parse(target)
        else:
            entry = session.optimize(target)
            resolved, optimized, model = entry.original_prompt, entry.optimized_prompt, entry.target_model
    except OptimizationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if out:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(optimized, encoding="utf-8")

    if json_output:
        if entry is not None:
            echo_json(entry.to_storage())
        else:
            echo_json({"originalPrompt": resolved, "optimizedPrompt": optimized, "targetLlm": model.value})
        return

    label = TARGET_MODEL_OPTIONS[model]
    console.print(Panel(Text(optimized), title=f"Optimized for {label}", border_style="green"))
    if entry is not None:
        console.print(f"[dim]Saved to history as {entry.id}[/dim]")
    if out:
        console.print(f"✓ Saved to {out}")


@app.command("vars")
def vars_cmd(text: str = typer.Argument(..., help="Prompt text")):
    """List the {{placeholders}} found in a prompt."""
    names = extract_variables(text)
    if not names:
        console.print("[dim]No variables found[/dim]")
        return
    for name in names:
        typer.echo(name)


@app.command("targets")
def targets_cmd():
    """List the supported target model families."""
    table = Table(show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    for model, label in TARGET_MODEL_OPTIONS.items():
        table.add_row(model.value, label)
    console.print(table)


@app.command("instruction")
def instruction_cmd(target: str = typer.Argument(..., help="Target model family")):
    """Print the system instruction used for a target."""
    if TargetModel.parse(target) is None:
        console.print(f"[yellow]Unknown target '{target}', showing the generic instruction[/yellow]")
    typer.echo(build_instruction(target))


if __name__ == "__main__":
    app()
