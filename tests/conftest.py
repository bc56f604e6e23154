# Ensure the project src/ directory is on sys.path for imports during tests
import logging
import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from synclyr.core.config import reset_settings  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Fresh settings per test, no SYNCLYR_* leakage from the host environment."""
    for key in list(os.environ):
        if key.startswith("SYNCLYR_") or key.startswith("lidarr_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_settings()
    root = logging.getLogger()
    before, level = set(root.handlers), root.level
    yield
    reset_settings()
    # CLI invocations install their own stdout handler on the root logger
    for h in list(root.handlers):
        if h not in before and not type(h).__module__.startswith("_pytest"):
            root.removeHandler(h)
    root.setLevel(level)


def make_mp3(path: Path, title=None, artist=None, album=None, track=None) -> Path:
    """Create an ID3-only MP3 (no audio frames) carrying the given tags."""
    from mutagen.id3 import ID3, TALB, TIT2, TPE1, TRCK

    id3 = ID3()
    if title is not None:
        id3.add(TIT2(encoding=3, text=title))
    if artist is not None:
        id3.add(TPE1(encoding=3, text=artist))
    if album is not None:
        id3.add(TALB(encoding=3, text=album))
    if track is not None:
        id3.add(TRCK(encoding=3, text=str(track)))
    id3.save(path)
    return path
