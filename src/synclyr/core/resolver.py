"""
Per-track lyrics resolution.

Order of attempts for one track:

1. tracks without artist or title are reported as not found, offline;
2. a sidecar `.lrc` next to the audio file wins over any remote lookup;
3. exact LRCLIB match on artist, title, album and duration;
4. relaxed LRCLIB match on artist and title, only when step 3 found nothing
   usable and the track has an album;
5. instrumental beats synced beats plain.

Every path returns exactly one `TrackOutcome`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Protocol

from .errors import LookupFailed
from .metadata import sync_lyrics
from .models import (
    STATUS_INSTRUMENTAL,
    STATUS_LOCAL,
    STATUS_MISSING_METADATA,
    STATUS_NOT_FOUND,
    STATUS_PLAIN,
    STATUS_SKIPPED,
    STATUS_SYNCED,
    STATUS_WRITE_ERROR,
    LyricsCandidate,
    Outcome,
    RunConfig,
    Track,
    TrackOutcome,
)

logger = logging.getLogger(__name__)

SIDECAR_SUFFIX = ".lrc"

Writer = Callable[[Path, str, bool], int]


class LyricsLookup(Protocol):
    def get(
        self,
        artist: str,
        title: str,
        album: Optional[str] = None,
        duration: float = 0,
    ) -> Optional[LyricsCandidate]: ...


def sidecar_path(path: Path) -> Path:
    """`song.flac` -> `song.lrc`; a name without suffix gets `.lrc` appended."""
    path = Path(path)
    if path.suffix:
        return path.with_suffix(SIDECAR_SUFFIX)
    return path.with_name(path.name + SIDECAR_SUFFIX)


def _read_sidecar(path: Path) -> Optional[str]:
    lrc = sidecar_path(path)
    if not lrc.is_file():
        return None
    try:
        text = lrc.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("could not read '%s': %s", lrc, e)
        return None
    return text if text.strip() else None


def _write_outcome(rc: int, success: TrackOutcome) -> TrackOutcome:
    if rc == 1:
        return success
    if rc == 0:
        return TrackOutcome(Outcome.SKIPPED, STATUS_SKIPPED)
    return TrackOutcome(Outcome.ERROR, STATUS_WRITE_ERROR)


def _lookup(client: LyricsLookup, track: Track, *, exact: bool) -> Optional[LyricsCandidate]:
    try:
        if exact:
            return client.get(track.artist, track.title, track.album, track.duration)
        return client.get(track.artist, track.title)
    except LookupFailed as e:
        logger.warning("lookup failed for '%s': %s", track.title, e)
        return None


def _apply_sidecar(track: Track, text: str, config: RunConfig, writer: Writer) -> TrackOutcome:
    rc = writer(track.path, text, config.force)
    outcome = _write_outcome(rc, TrackOutcome(Outcome.SYNCED, STATUS_LOCAL))
    if outcome.synced and config.clean_lrc:
        lrc = sidecar_path(track.path)
        try:
            lrc.unlink()
        except OSError as e:
            logger.warning("could not remove '%s': %s", lrc, e)
    return outcome


def resolve_track(
    track: Track,
    config: RunConfig,
    client: LyricsLookup,
    writer: Writer = sync_lyrics,
) -> TrackOutcome:
    """Resolve and write lyrics for a single track."""
    if not track.artist or not track.title:
        return TrackOutcome(Outcome.NOT_FOUND, STATUS_MISSING_METADATA)

    local = _read_sidecar(track.path)
    if local is not None:
        return _apply_sidecar(track, local, config, writer)

    candidate = _lookup(client, track, exact=True)
    if (candidate is None or not candidate.usable) and track.album:
        candidate = _lookup(client, track, exact=False)

    if candidate is None:
        return TrackOutcome(Outcome.NOT_FOUND, STATUS_NOT_FOUND)

    if candidate.instrumental:
        # Counted as synced; no placeholder text is written
        return TrackOutcome(Outcome.SYNCED, STATUS_INSTRUMENTAL)
    if candidate.has_synced:
        text, success = candidate.synced, TrackOutcome(Outcome.SYNCED, STATUS_SYNCED)
    elif candidate.has_plain:
        text, success = candidate.plain, TrackOutcome(Outcome.PLAIN, STATUS_PLAIN)
    else:
        return TrackOutcome(Outcome.NOT_FOUND, STATUS_NOT_FOUND)

    return _write_outcome(writer(track.path, text, config.force), success)
