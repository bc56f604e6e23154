"""
SYNCLYR CLI - Main entry point using Typer.

This module configures the main Typer application, registers all commands and
command groups, and defines global options like --version and --verbose.
When started by Lidarr (lidarr_eventtype in the environment) the Lidarr hook
runs instead of the interactive CLI.
"""

import typer
from rich.console import Console
from rich.traceback import install

from .commands import config, diag, lidarr, sync
from .core.logging_util import setup_logging

# Install a rich traceback handler for beautiful, readable exceptions
install(show_locals=False)

console = Console()

app = typer.Typer(
    name="synclyr",
    help="🎵 SYNCLYR - Embed synced lyrics from LRCLIB into your audio files.",
    epilog="Use `synclyr [COMMAND] --help` for more info on a specific command.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,  # Disable Typer's default handler to use Rich's
)

app.command("sync")(sync.sync_album)
app.command("artist")(sync.sync_artist)
app.command("library")(sync.sync_library)
app.command("scan")(sync.scan)
app.command("lidarr")(lidarr.lidarr)
app.add_typer(config.app, name="config", help="🔐 Show or initialise settings.")
app.add_typer(diag.app, name="diag", help="🩺 Diagnostics for TLS and LRCLIB.")


def _version_callback(value: bool):
    if value:
        from . import __version__

        console.print(f"SYNCLYR v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show the application version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(None, "--verbose", help="Enable DEBUG-level logging."),
    quiet: bool = typer.Option(
        None, "--quiet", help="Reduce logging to warnings and errors."
    ),
    json_logs: bool = typer.Option(
        False, "--json-logs", help="Emit logs as JSON lines to stdout."
    ),
):
    """
    SYNCLYR CLI - LRCLIB lyrics into audio metadata.
    """
    # Configure logging once, early
    setup_logging(json_logs=json_logs, verbose=bool(verbose), quiet=bool(quiet))


def cli():
    """Main entry point for the console script defined in pyproject.toml."""
    if lidarr.lidarr_detect():
        setup_logging()
        raise SystemExit(lidarr.run_lidarr(lidarr.default_log_base()))
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 Operation cancelled by user.[/yellow]")
        raise SystemExit(130)


if __name__ == "__main__":
    cli()
