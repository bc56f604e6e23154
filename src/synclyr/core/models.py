"""
Value types shared by the sync engine.

Tracks and lookup candidates are immutable; `RunResult` is the only
accumulating type and is mutated solely under the dispatcher's aggregation
lock.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

STATUS_SYNCED = "✓ synced"
STATUS_PLAIN = "✓ plain"
STATUS_INSTRUMENTAL = "✓ instrumental"
STATUS_LOCAL = "✓ local lrc"
STATUS_SKIPPED = "⊘ already has lyrics"
STATUS_NOT_FOUND = "✗ not found"
STATUS_MISSING_METADATA = "✗ missing metadata"
STATUS_WRITE_ERROR = "✗ write error"

UNKNOWN_TITLE = "(unknown)"


@dataclass(frozen=True)
class Track:
    """One audio file as read by the library scanner."""

    path: Path
    artist: Optional[str] = None
    title: Optional[str] = None
    album: Optional[str] = None
    duration: int = 0  # seconds, 0 = unknown
    track_number: int = 0


@dataclass(frozen=True)
class LyricsCandidate:
    """Result of a single LRCLIB `/get` lookup."""

    synced: Optional[str] = None
    plain: Optional[str] = None
    instrumental: bool = False
    id: Optional[int] = None
    track_name: Optional[str] = None
    artist_name: Optional[str] = None
    album_name: Optional[str] = None
    duration: float = 0.0

    @property
    def has_synced(self) -> bool:
        return bool(self.synced)

    @property
    def has_plain(self) -> bool:
        return bool(self.plain)

    @property
    def usable(self) -> bool:
        return self.instrumental or self.has_synced or self.has_plain


@dataclass(frozen=True)
class RunConfig:
    """Settings for one sync run, shared read-only by every worker."""

    force: bool = False
    clean_lrc: bool = False
    workers: int = 4
    plain_log: Optional[Path] = None
    missing_log: Optional[Path] = None
    rate_limit_delay: float = 0.05


class Outcome(Enum):
    SYNCED = "synced"
    PLAIN = "plain"
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class TrackOutcome:
    outcome: Outcome
    status: str

    @property
    def synced(self) -> bool:
        return self.outcome is Outcome.SYNCED

    @property
    def plain(self) -> bool:
        return self.outcome is Outcome.PLAIN

    @property
    def skipped(self) -> bool:
        return self.outcome is Outcome.SKIPPED

    @property
    def not_found(self) -> bool:
        return self.outcome is Outcome.NOT_FOUND

    @property
    def error(self) -> bool:
        return self.outcome is Outcome.ERROR


@dataclass
class RunResult:
    """Aggregated per-track outcomes of a run."""

    synced: int = 0
    plain: int = 0
    skipped: int = 0
    not_found: int = 0
    errors: int = 0

    def add(self, outcome: TrackOutcome) -> None:
        if outcome.synced:
            self.synced += 1
        elif outcome.plain:
            self.plain += 1
        elif outcome.skipped:
            self.skipped += 1
        elif outcome.not_found:
            self.not_found += 1
        else:
            self.errors += 1

    @property
    def total(self) -> int:
        return self.synced + self.plain + self.skipped + self.not_found + self.errors

    def __add__(self, other: "RunResult") -> "RunResult":
        if not isinstance(other, RunResult):
            return NotImplemented
        return RunResult(
            synced=self.synced + other.synced,
            plain=self.plain + other.plain,
            skipped=self.skipped + other.skipped,
            not_found=self.not_found + other.not_found,
            errors=self.errors + other.errors,
        )


@dataclass(frozen=True)
class ProgressEvent:
    index: int  # 0-based
    total: int
    title: str
    status: str
