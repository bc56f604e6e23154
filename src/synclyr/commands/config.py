"""
Configuration commands for SYNCLYR (`synclyr config`).
"""

import json
from pathlib import Path

import typer
from rich.console import Console

from ..core.config import (
    LOCAL_SETTINGS_FILE,
    USER_SETTINGS_FILE,
    get_settings,
    settings_as_dict,
    write_default_settings,
)

console = Console()
app = typer.Typer(
    no_args_is_help=True,
    help="Show or initialise settings.",
)


@app.command("show")
def config_show(
    json_output: bool = typer.Option(False, "--json", help="Output settings as styled JSON"),
    json_raw: bool = typer.Option(False, "--json-raw", help="Output raw JSON to stdout"),
):
    """Display the effective configuration (files + SYNCLYR_* environment)."""
    data = settings_as_dict(get_settings())

    if json_raw:
        typer.echo(json.dumps(data))
        return
    if json_output:
        console.print_json(json.dumps(data))
        return

    console.print("[bold]Current Configuration[/bold]\n")
    for key, value in data.items():
        console.print(f"  {key + ':':<18} [blue]{value}[/blue]")
    console.print(f"\nUser settings file: {USER_SETTINGS_FILE}", markup=False)


@app.command("init")
def config_init(
    path: Path = typer.Option(LOCAL_SETTINGS_FILE, "--path", help="Where to write settings.toml"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Write a settings.toml with the default values."""
    try:
        written = write_default_settings(path, overwrite=force)
    except FileExistsError:
        console.print(f"[yellow]{path} already exists; use --force to overwrite.[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]✅ Wrote {written}[/green]")
