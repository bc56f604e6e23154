"""
Lidarr Custom Script integration (`synclyr lidarr`).

Lidarr runs the script with event details in the environment:

  lidarr_eventtype        "Test", "AlbumDownload", "Grab", ...
  lidarr_addedtrackpaths  |-separated list of imported file paths
  lidarr_artist_path      root directory of the artist
  lidarr_album_title      title of the imported album

Logs go next to the executable: `<exe>.log` (rotated), `<exe>_plain.log`
and `<exe>_missing.log`.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional

import typer

from ..core.config import get_settings
from ..core.library import scan_dir
from ..core.logging_util import add_file_handler
from ..core.models import ProgressEvent, RunConfig
from ..core.sync import ClientFactory, sync_tracks
from .sync import client_factory_for

logger = logging.getLogger(__name__)

LIDARR_THREADS = 4
EVENT_VAR = "lidarr_eventtype"


def lidarr_detect(environ: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if environ is None else environ
    return EVENT_VAR in env


def default_log_base() -> Path:
    return Path(sys.argv[0]).resolve()


def album_dir_from_tracks(environ: Mapping[str, str]) -> Optional[Path]:
    """Directory of the first imported track path."""
    paths = environ.get("lidarr_addedtrackpaths") or ""
    first = paths.split("|", 1)[0].strip()
    if not first:
        return None
    return Path(first).parent


def album_dir_from_title(artist_path: Optional[str], title: Optional[str]) -> Optional[Path]:
    """First entry under the artist directory whose name contains the album title."""
    if not artist_path or not title:
        return None
    try:
        entries = sorted(Path(artist_path).iterdir())
    except OSError:
        return None
    for entry in entries:
        if not entry.name.startswith(".") and title in entry.name:
            return entry
    return None


def _log_progress(event: ProgressEvent) -> None:
    logger.info("  [%2d/%d] %-40.40s %s", event.index + 1, event.total, event.title, event.status)


def sync_dir(directory: Path, config: RunConfig, client_factory: ClientFactory) -> None:
    tracks = scan_dir(directory)
    if not tracks:
        logger.info("No audio files found in '%s'", directory)
        return
    logger.info("Syncing %d track(s) in '%s'", len(tracks), directory)
    r = sync_tracks(tracks, config, _log_progress, client_factory=client_factory)
    logger.info(
        "Done: %d synced, %d plain, %d skipped, %d not found",
        r.synced, r.plain, r.skipped, r.not_found,
    )


def run_lidarr(
    log_base: Path,
    environ: Optional[Mapping[str, str]] = None,
    *,
    client_factory: Optional[ClientFactory] = None,
) -> int:
    """Handle one Lidarr event. Returns the process exit code."""
    env = os.environ if environ is None else environ
    handler = add_file_handler(Path(f"{log_base}.log"))
    try:
        event = env.get(EVENT_VAR)
        if not event:
            logger.error("ERROR: %s not set", EVENT_VAR)
            return 1
        if event == "Test":
            logger.info("Test OK")
            return 0
        if event != "AlbumDownload":
            logger.info("Ignoring event: %s", event)
            return 0

        artist_path = env.get("lidarr_artist_path")
        album_dir = album_dir_from_tracks(env)
        if album_dir is None and artist_path:
            album_dir = album_dir_from_title(artist_path, env.get("lidarr_album_title"))

        settings = get_settings()
        config = RunConfig(
            workers=LIDARR_THREADS,
            plain_log=Path(f"{log_base}_plain.log"),
            missing_log=Path(f"{log_base}_missing.log"),
            rate_limit_delay=settings.rate_limit_delay,
        )
        if client_factory is None:
            client_factory = client_factory_for(settings)

        if album_dir is not None:
            logger.info("Album: %s", album_dir)
            sync_dir(album_dir, config, client_factory)
        elif artist_path:
            logger.info("Album dir not found, syncing artist: %s", artist_path)
            try:
                subdirs = sorted(Path(artist_path).iterdir())
            except OSError as e:
                logger.error("ERROR: could not open '%s': %s", artist_path, e)
                subdirs = []
            for sub in subdirs:
                if sub.is_dir() and not sub.name.startswith("."):
                    sync_dir(sub, config, client_factory)
        else:
            logger.error("ERROR: could not determine album directory")
        return 0
    finally:
        logging.getLogger().removeHandler(handler)
        handler.close()


def lidarr(
    log_base: Optional[Path] = typer.Option(
        None, "--log-base", help="Path prefix for .log/_plain.log/_missing.log (default: the executable)."
    ),
):
    """Process the Lidarr event described by the lidarr_* environment variables."""
    raise typer.Exit(run_lidarr(log_base or default_log_base()))
