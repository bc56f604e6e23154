"""
Directory scanning for batch sync runs.

Albums are single directories of audio files; an artist directory holds
album directories and a library directory holds artist directories.
"""

import logging
from pathlib import Path
from typing import Iterator

from .metadata import read_track
from .models import Track

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = {".flac", ".mp3", ".ogg", ".m4a", ".opus", ".wma", ".wav", ".aac"}


def is_audio_file(path: Path) -> bool:
    return path.suffix.lower() in AUDIO_EXTENSIONS


def _visible_children(directory: Path) -> list[Path]:
    try:
        return sorted(p for p in directory.iterdir() if not p.name.startswith("."))
    except OSError as e:
        logger.error("could not open directory '%s': %s", directory, e)
        return []


def scan_dir(directory: Path) -> list[Track]:
    """Read every audio file directly inside `directory`, sorted by track number."""
    tracks: list[Track] = []
    for p in _visible_children(Path(directory)):
        if not (p.is_file() and is_audio_file(p)):
            continue
        track = read_track(p)
        if track is not None:
            tracks.append(track)
    tracks.sort(key=lambda t: t.track_number)
    return tracks


def has_audio(directory: Path) -> bool:
    return any(p.is_file() and is_audio_file(p) for p in _visible_children(directory))


def iter_album_dirs(artist_dir: Path) -> Iterator[Path]:
    """Subdirectories of an artist directory that contain audio files."""
    for p in _visible_children(Path(artist_dir)):
        if p.is_dir() and has_audio(p):
            yield p


def iter_library_albums(library_dir: Path) -> Iterator[tuple[Path, Path]]:
    """(artist_dir, album_dir) pairs of an artist/album library layout."""
    for artist_dir in _visible_children(Path(library_dir)):
        if not artist_dir.is_dir():
            continue
        for album_dir in iter_album_dirs(artist_dir):
            yield artist_dir, album_dir
