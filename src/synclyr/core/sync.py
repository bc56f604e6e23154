"""
Parallel sync dispatcher.

A fixed pool of worker threads pulls track indices from a shared counter.
Each worker owns one LRCLIB client (and therefore one HTTP session) for its
whole lifetime. Completions are merged into the run result under a single
aggregation lock, which also serialises side-log appends and progress
callbacks, so progress handlers may print without locking of their own.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from functools import partial
from typing import IO, Callable, ContextManager, Optional, Sequence

from .lrclib import LrclibClient
from .metadata import sync_lyrics
from .models import (
    UNKNOWN_TITLE,
    Outcome,
    ProgressEvent,
    RunConfig,
    RunResult,
    Track,
    TrackOutcome,
)
from .ratelimit import Pacer
from .resolver import LyricsLookup, Writer, resolve_track
from .transport import HttpTransport, TrustStore, discover_trust_store

logger = logging.getLogger(__name__)

STATUS_INTERNAL_ERROR = "✗ error"

ProgressFn = Callable[[ProgressEvent], None]
ClientFactory = Callable[[], ContextManager[LyricsLookup]]


def _default_client(trust_store: TrustStore) -> LrclibClient:
    return LrclibClient(HttpTransport(trust_store=trust_store))


class _SyncContext:
    def __init__(
        self,
        tracks: Sequence[Track],
        config: RunConfig,
        progress: Optional[ProgressFn],
        plain_file: Optional[IO[str]],
        missing_file: Optional[IO[str]],
    ) -> None:
        self.tracks = tracks
        self.config = config
        self.progress = progress
        self.plain_file = plain_file
        self.missing_file = missing_file
        self.result = RunResult()
        self._next_index = 0
        self._claim_lock = threading.Lock()
        self._lock = threading.Lock()

    def claim(self) -> Optional[int]:
        with self._claim_lock:
            idx = self._next_index
            self._next_index += 1
        return idx if idx < len(self.tracks) else None

    def complete(self, idx: int, track: Track, outcome: TrackOutcome) -> None:
        with self._lock:
            self.result.add(outcome)
            if outcome.plain and self.plain_file is not None:
                self.plain_file.write(f"{track.path}\n")
                self.plain_file.flush()
            if outcome.not_found and self.missing_file is not None:
                self.missing_file.write(f"{track.path}\n")
                self.missing_file.flush()
            if self.progress is not None:
                self.progress(
                    ProgressEvent(
                        index=idx,
                        total=len(self.tracks),
                        title=track.title or UNKNOWN_TITLE,
                        status=outcome.status,
                    )
                )


def _worker(
    ctx: _SyncContext,
    client_factory: ClientFactory,
    writer: Writer,
    sleep: Callable[[float], None],
) -> None:
    pacer = Pacer(ctx.config.rate_limit_delay, sleep)
    with client_factory() as client:
        while True:
            idx = ctx.claim()
            if idx is None:
                break
            pacer.wait()
            track = ctx.tracks[idx]
            try:
                outcome = resolve_track(track, ctx.config, client, writer)
            except Exception:
                logger.exception("unexpected failure while processing '%s'", track.path)
                outcome = TrackOutcome(Outcome.ERROR, STATUS_INTERNAL_ERROR)
            ctx.complete(idx, track, outcome)


def _open_side_log(stack: ExitStack, path) -> Optional[IO[str]]:
    """Open a side log for appending; the run goes on without it if that fails."""
    if not path:
        return None
    try:
        return stack.enter_context(open(path, "a", encoding="utf-8"))
    except OSError as e:
        logger.error("could not open log '%s': %s", path, e)
        return None


def worker_count(config: RunConfig, n_tracks: int) -> int:
    return max(1, min(config.workers, n_tracks))


def sync_tracks(
    tracks: Sequence[Track],
    config: RunConfig,
    progress: Optional[ProgressFn] = None,
    *,
    client_factory: Optional[ClientFactory] = None,
    writer: Writer = sync_lyrics,
    sleep: Callable[[float], None] = time.sleep,
) -> RunResult:
    """Sync lyrics for every track in `tracks` and return aggregated counts.

    Args:
        tracks: Pre-scanned tracks; never modified.
        config: Run settings shared by all workers.
        progress: Called once per finished track, under the aggregation lock.
        client_factory: Builds one lookup client per worker. Defaults to an
            LRCLIB client over a fresh HTTP session, with the trust store
            probed once for the whole run.
        writer: Tag write gateway.
        sleep: Sleep function for the per-worker pause.
    """
    if not tracks:
        return RunResult()

    if client_factory is None:
        client_factory = partial(_default_client, discover_trust_store())

    n = worker_count(config, len(tracks))
    with ExitStack() as stack:
        plain_file = _open_side_log(stack, config.plain_log)
        missing_file = _open_side_log(stack, config.missing_log)
        ctx = _SyncContext(tracks, config, progress, plain_file, missing_file)

        logger.debug("Starting sync", extra={"tracks": len(tracks), "workers": n})
        with ThreadPoolExecutor(max_workers=n, thread_name_prefix="synclyr") as pool:
            futures = [
                pool.submit(_worker, ctx, client_factory, writer, sleep) for _ in range(n)
            ]
            for f in futures:
                f.result()

    return ctx.result
