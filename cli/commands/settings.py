from __future__ import annotations
import typer

from promptopt.settings import VARIANTS

from cli.utils import console, echo_json, get_session

settings_app = typer.Typer(help="Backend provider and credentials")


@settings_app.command("show")
def settings_show():
    """Show the current settings (API key masked)."""
    echo_json(get_session().settings.current.to_public_dict())


@settings_app.command("use")
def settings_use(provider: str = typer.Argument(..., help=f"One of: {', '.join(VARIANTS)}")):
    """Switch provider. Fields reset to defaults; temperature is kept."""
    store = get_session().settings
    try:
        current = store.set_variant(provider)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Using provider [cyan]{current.provider}[/cyan]")


@settings_app.command("set")
def settings_set(
    field: str = typer.Argument(..., help="api_key, base_url or model"),
    value: str = typer.Argument(..., help="New value"),
):
    """Set a field of the active provider."""
    store = get_session().settings
    try:
        updated = store.update_field(field, value)
    except ValueError as e:
        console.print(f"[red]Invalid value for {field}: {e}[/red]")
        raise typer.Exit(1)
    if not updated:
        console.print(f"[yellow]'{field}' is not a setting of provider '{store.provider}'[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Updated {field}")


@settings_app.command("temperature")
def settings_temperature(value: float = typer.Argument(..., help="0.0 - 1.0 (clamped)")):
    """Set the sampling temperature."""
    applied = get_session().settings.set_temperature(value)
    console.print(f"[green]✓[/green] Temperature set to {applied}")
