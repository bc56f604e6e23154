"""
Diagnostics commands for SYNCLYR (`synclyr diag`).

Quick checks for TLS trust-store discovery and LRCLIB reachability.
"""

import json
from dataclasses import asdict
from typing import Optional

import typer
from rich.console import Console

from ..core.config import get_settings
from ..core.errors import LookupFailed
from ..core.transport import discover_trust_store
from .sync import make_client

console = Console()
app = typer.Typer(no_args_is_help=True, help="Run diagnostics for TLS and LRCLIB.")


@app.command("tls")
def diag_tls(
    json_out: bool = typer.Option(False, "--json", help="Output machine-readable JSON"),
):
    """Show which CA file and CA directory would be used for HTTPS."""
    settings = get_settings()
    store = discover_trust_store(ca_file=settings.ca_file, ca_dir=settings.ca_dir)
    if json_out:
        typer.echo(json.dumps(asdict(store)))
        return
    console.print(f"CA file:      {store.ca_file or '[yellow]none found[/yellow]'}")
    console.print(f"CA directory: {store.ca_dir or '[yellow]none found[/yellow]'}")
    console.print("\n[bold]Candidates (in order):[/bold]")
    for p in store.file_candidates + store.dir_candidates:
        console.print(f"  {p}", markup=False)
    console.print(
        "\nOverride with CURL_CA_BUNDLE, SSL_CERT_FILE, REQUESTS_CA_BUNDLE or SSL_CERT_DIR."
    )


@app.command("lookup")
def diag_lookup(
    artist: str = typer.Argument(..., help="Artist name"),
    title: str = typer.Argument(..., help="Track title"),
    album: Optional[str] = typer.Option(None, "--album", help="Album name"),
    duration: int = typer.Option(0, "--duration", help="Duration in seconds"),
    json_out: bool = typer.Option(False, "--json", help="Output machine-readable JSON"),
):
    """Run a single LRCLIB lookup and print what came back."""
    settings = get_settings()
    store = discover_trust_store(ca_file=settings.ca_file, ca_dir=settings.ca_dir)
    with make_client(settings, store) as client:
        try:
            candidate = client.get(artist, title, album, duration)
        except LookupFailed as e:
            console.print(f"[red]Lookup failed:[/red] {e}")
            raise typer.Exit(2)

    if candidate is None:
        if json_out:
            typer.echo(json.dumps({"found": False}))
        else:
            console.print("[yellow]No match on LRCLIB.[/yellow]")
        raise typer.Exit(1)

    if json_out:
        typer.echo(json.dumps({"found": True, **asdict(candidate)}))
        return
    console.print(
        f"{candidate.artist_name or artist} - {candidate.track_name or title}"
        f" ({candidate.album_name or '-'}, {int(candidate.duration)}s)",
        markup=False,
    )
    console.print(f"  Instrumental: {'yes' if candidate.instrumental else 'no'}")
    console.print(f"  Synced:       {'yes' if candidate.has_synced else 'no'}")
    console.print(f"  Plain:        {'yes' if candidate.has_plain else 'no'}")
