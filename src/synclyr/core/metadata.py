"""
Tag store access using Mutagen.

This module is the write gateway of the sync engine: `sync_lyrics` checks for
existing lyrics and writes new ones in a single load/save cycle, so a file is
never opened twice for one track. It also reads the basic attributes the
scanner needs (`read_track`) and probes for lyrics (`has_lyrics`).

Lyrics field per container:
  - FLAC and every Ogg flavour (Vorbis, Opus, FLAC, Speex, Theora) -> Vorbis comment LYRICS
  - MP3 (and ID3-tagged WAV/AIFF) -> ID3 USLT
  - MP4 / M4A -> ©lyr
  - WMA -> WM/Lyrics
  - anything else (e.g. raw AAC) cannot carry lyrics and is a write error
"""

from __future__ import annotations

import logging
from enum import IntEnum
from pathlib import Path
from typing import Optional

import mutagen
from mutagen import MutagenError
from mutagen._vorbis import VCommentDict
from mutagen.asf import ASFTags
from mutagen.id3 import ID3, TALB, TIT2, TPE1, TRCK, USLT, ID3NoHeaderError
from mutagen.mp4 import MP4Tags

from .models import Track

logger = logging.getLogger(__name__)

VORBIS_LYRICS_KEY = "LYRICS"
MP4_LYRICS_KEY = "\xa9lyr"
ASF_LYRICS_KEY = "WM/Lyrics"


class WriteResult(IntEnum):
    WRITTEN = 1
    SKIPPED = 0
    ERROR = -1


def _norm(s) -> Optional[str]:
    """Normalize optional strings (strip + convert empty to None)."""
    if s is None:
        return None
    s = str(s).strip()
    return s or None


def _open(path: Path):
    """Load the tag container for a file; ID3-only MP3s are supported."""
    if path.suffix.lower() == ".mp3":
        try:
            return ID3(path)
        except ID3NoHeaderError:
            return ID3()
    audio = mutagen.File(path)
    if audio is None:
        raise MutagenError(f"unsupported file type: {path.name}")
    if audio.tags is None:
        try:
            audio.add_tags()
        except NotImplementedError:
            raise MutagenError(f"{type(audio).__name__} files cannot carry tags")
    return audio


def _id3_of(audio) -> Optional[ID3]:
    if isinstance(audio, ID3):
        return audio
    if isinstance(getattr(audio, "tags", None), ID3):
        return audio.tags
    return None


def _lyrics_key(audio) -> str:
    """Lyrics field name for the tag flavour a container carries."""
    tags = getattr(audio, "tags", None)
    if isinstance(tags, VCommentDict):
        return VORBIS_LYRICS_KEY
    if isinstance(tags, MP4Tags):
        return MP4_LYRICS_KEY
    if isinstance(tags, ASFTags):
        return ASF_LYRICS_KEY
    raise MutagenError(f"no lyrics field for {type(audio).__name__}")


def _read_lyrics(audio) -> Optional[str]:
    id3 = _id3_of(audio)
    if id3 is not None:
        for frame in id3.getall("USLT"):
            if _norm(frame.text):
                return str(frame.text)
        return None
    values = audio.tags.get(_lyrics_key(audio)) or []
    for v in values:
        if _norm(v):
            return str(v)
    return None


def _write_lyrics(audio, text: str) -> None:
    id3 = _id3_of(audio)
    if id3 is not None:
        id3.delall("USLT")
        id3.add(USLT(encoding=3, lang="eng", desc="", text=text))
    else:
        audio.tags[_lyrics_key(audio)] = [text]


def _save(audio, path: Path) -> None:
    if isinstance(audio, ID3):
        audio.save(path)
    else:
        audio.save()


def sync_lyrics(path: Path, text: str, force: bool) -> WriteResult:
    """Check existing lyrics and write `text` in one load/save cycle.

    Returns WRITTEN, SKIPPED (lyrics present and not forcing) or ERROR.
    """
    path = Path(path)
    if text is None or not path.is_file():
        return WriteResult.ERROR
    try:
        audio = _open(path)
        if not force and _read_lyrics(audio):
            return WriteResult.SKIPPED
        _write_lyrics(audio, text)
        _save(audio, path)
    except (MutagenError, OSError, ValueError) as e:
        logger.error("failed to save '%s': %s", path, e)
        return WriteResult.ERROR
    return WriteResult.WRITTEN


def has_lyrics(path: Path) -> int:
    """1 = lyrics present, 0 = absent, -1 = unreadable."""
    path = Path(path)
    if not path.is_file():
        return -1
    try:
        return 1 if _read_lyrics(_open(path)) else 0
    except (MutagenError, OSError, ValueError):
        return -1


def _first(value) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    return _norm(value)


def _to_int(x) -> int:
    try:
        return int(str(x).split("/")[0]) if x is not None else 0
    except ValueError:
        return 0


def read_track(path: Path) -> Optional[Track]:
    """Read title/artist/album/track number/duration from a single file."""
    path = Path(path)
    try:
        audio = mutagen.File(path, easy=True)
    except (MutagenError, OSError):
        # ID3-only containers have no MPEG frames; fall back to bare tags
        audio = None

    if audio is not None:
        tags = audio.tags or {}
        info = getattr(audio, "info", None)
        return Track(
            path=path,
            title=_first(tags.get("title")),
            artist=_first(tags.get("artist")),
            album=_first(tags.get("album")),
            track_number=_to_int(_first(tags.get("tracknumber"))),
            duration=int(info.length) if info is not None and getattr(info, "length", None) else 0,
        )

    if path.suffix.lower() != ".mp3":
        logger.warning("could not read '%s'", path)
        return None
    try:
        id3 = ID3(path)
    except (MutagenError, OSError):
        logger.warning("could not read '%s'", path)
        return None

    def _frame(cls) -> Optional[str]:
        fr = id3.get(cls.__name__)
        return _norm(fr.text[0]) if fr is not None and fr.text else None

    return Track(
        path=path,
        title=_frame(TIT2),
        artist=_frame(TPE1),
        album=_frame(TALB),
        track_number=_to_int(_frame(TRCK)),
    )
