"""
Sync commands for SYNCLYR (`synclyr sync|artist|library|scan`).

These commands scan directories, hand the tracks to the parallel sync engine
and print per-track progress plus a summary.
"""

from functools import partial
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.config import SynclyrSettings, clamp_threads, get_settings
from ..core.library import iter_album_dirs, iter_library_albums, scan_dir
from ..core.lrclib import LrclibClient
from ..core.metadata import has_lyrics
from ..core.models import ProgressEvent, RunConfig, RunResult
from ..core.sync import ClientFactory, sync_tracks
from ..core.transport import HttpTransport, TrustStore, discover_trust_store

console = Console()

RULE = "─" * 46


def make_client(settings: SynclyrSettings, trust_store: TrustStore) -> LrclibClient:
    transport = HttpTransport(
        trust_store=trust_store,
        timeout=settings.timeout,
        max_retries=settings.max_retries,
        backoff_base=settings.backoff_base,
        user_agent=settings.user_agent,
    )
    return LrclibClient(transport, base_url=settings.base_url)


def client_factory_for(settings: SynclyrSettings) -> ClientFactory:
    """One trust-store probe per invocation, one client per worker."""
    trust = discover_trust_store(ca_file=settings.ca_file, ca_dir=settings.ca_dir)
    return partial(make_client, settings, trust)


def build_run_config(
    settings: SynclyrSettings,
    *,
    force: bool = False,
    clean_lrc: bool = False,
    threads: Optional[int] = None,
    plain_log: Optional[Path] = None,
    missing_log: Optional[Path] = None,
) -> RunConfig:
    return settings.run_config(
        force=force or None,
        clean_lrc=clean_lrc or None,
        workers=clamp_threads(threads) if threads is not None else None,
        plain_log=plain_log,
        missing_log=missing_log,
    )


def print_progress(event: ProgressEvent) -> None:
    console.print(
        f"  [{event.index + 1:2d}/{event.total}] {event.title:<40.40} {event.status}",
        markup=False,
        highlight=False,
    )


def print_summary(result: RunResult) -> None:
    console.print(f"\n{RULE}")
    console.print(f"  ✓ Synced:     {result.synced}")
    if result.plain:
        console.print(f"  ✓ Plain:      {result.plain}")
    console.print(f"  ⊘ Skipped:    {result.skipped}")
    console.print(f"  ✗ Not found:  {result.not_found}")
    if result.errors:
        console.print(f"  [red]✗ Errors:     {result.errors}[/red]")
    console.print(RULE)


def sync_directory(directory: Path, config: RunConfig, client_factory: ClientFactory) -> RunResult:
    tracks = scan_dir(directory)
    if not tracks:
        return RunResult()
    return sync_tracks(tracks, config, print_progress, client_factory=client_factory)


def _finish(result: RunResult) -> None:
    print_summary(result)
    if result.errors:
        raise typer.Exit(1)


_force_opt = typer.Option(False, "--force", help="Overwrite existing lyrics.")
_clean_opt = typer.Option(False, "--clean-lrc", help="Delete local .lrc files after embedding them.")
_threads_opt = typer.Option(None, "--threads", "-t", help="Parallel workers (1-16, default from settings).")
_plain_opt = typer.Option(None, "--plain-log", help="Append paths that only got plain lyrics to this file.")
_missing_opt = typer.Option(None, "--missing-log", help="Append paths without lyrics to this file.")


def sync_album(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Album directory."),
    force: bool = _force_opt,
    clean_lrc: bool = _clean_opt,
    threads: Optional[int] = _threads_opt,
    plain_log: Optional[Path] = _plain_opt,
    missing_log: Optional[Path] = _missing_opt,
):
    """Sync lyrics for a single album directory."""
    settings = get_settings()
    config = build_run_config(
        settings, force=force, clean_lrc=clean_lrc, threads=threads,
        plain_log=plain_log, missing_log=missing_log,
    )
    tracks = scan_dir(directory)
    if not tracks:
        console.print(f"No audio files found in '{directory}'.", markup=False)
        return

    console.print(
        f"Syncing lyrics for {len(tracks)} track(s) in '{directory}' [{config.workers} threads]...\n",
        markup=False,
    )
    result = sync_tracks(tracks, config, print_progress, client_factory=client_factory_for(settings))
    _finish(result)


def sync_artist(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Artist directory."),
    force: bool = _force_opt,
    clean_lrc: bool = _clean_opt,
    threads: Optional[int] = _threads_opt,
    plain_log: Optional[Path] = _plain_opt,
    missing_log: Optional[Path] = _missing_opt,
):
    """Sync lyrics for all albums of an artist."""
    settings = get_settings()
    config = build_run_config(
        settings, force=force, clean_lrc=clean_lrc, threads=threads,
        plain_log=plain_log, missing_log=missing_log,
    )
    factory = client_factory_for(settings)

    console.print(f"═══ {directory.name} ═══\n", markup=False)
    total = RunResult()
    albums = 0
    for album_dir in iter_album_dirs(directory):
        albums += 1
        console.print(f"▶ {album_dir.name}", markup=False)
        total = total + sync_directory(album_dir, config, factory)
        console.print()

    if not albums:
        console.print("No albums found.")
        return
    console.print(f"{albums} album(s) processed")
    _finish(total)


def sync_library(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Library root (artist/album)."),
    force: bool = _force_opt,
    clean_lrc: bool = _clean_opt,
    threads: Optional[int] = _threads_opt,
    plain_log: Optional[Path] = _plain_opt,
    missing_log: Optional[Path] = _missing_opt,
):
    """Sync lyrics for an entire library laid out as artist/album."""
    settings = get_settings()
    config = build_run_config(
        settings, force=force, clean_lrc=clean_lrc, threads=threads,
        plain_log=plain_log, missing_log=missing_log,
    )
    factory = client_factory_for(settings)

    console.print("[bold]synclyr · Library Sync[/bold]")
    console.print(f"  Path:     {directory}", markup=False)
    console.print(f"  Threads:  {config.workers}\n")

    total = RunResult()
    artists: set[Path] = set()
    albums = 0
    for artist_dir, album_dir in iter_library_albums(directory):
        if artist_dir not in artists:
            artists.add(artist_dir)
            console.print(f"═══ {artist_dir.name}", markup=False)
        albums += 1
        console.print(f"  ▶ {album_dir.name}", markup=False)
        total = total + sync_directory(album_dir, config, factory)

    console.print("\n[bold]Library Sync Complete[/bold]")
    console.print(f"  Artists:  {len(artists)}")
    console.print(f"  Albums:   {albums}")
    _finish(total)


def scan(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Album directory."),
):
    """List the tracks of a directory and whether they already carry lyrics."""
    tracks = scan_dir(directory)
    if not tracks:
        console.print(f"No audio files found in '{directory}'.", markup=False)
        return

    table = Table(title=str(directory))
    table.add_column("#", justify="right")
    table.add_column("Artist")
    table.add_column("Title")
    table.add_column("Album")
    table.add_column("Duration", justify="right")
    table.add_column("Lyrics")
    labels = {1: "[green]yes[/green]", 0: "no", -1: "[red]error[/red]"}
    for t in tracks:
        table.add_row(
            str(t.track_number or ""),
            escape(t.artist or "-"),
            escape(t.title or "-"),
            escape(t.album or "-"),
            f"{t.duration // 60}:{t.duration % 60:02d}" if t.duration else "-",
            labels[has_lyrics(t.path)],
        )
    console.print(table)
