import threading
import time
from collections import Counter

from synclyr.core.models import LyricsCandidate, RunConfig, RunResult, Track
from synclyr.core.ratelimit import Pacer
from synclyr.core.sync import sync_tracks, worker_count


class FakeClient:
    def __init__(self, answers):
        self.answers = answers
        self.closed = False

    def get(self, artist, title, album=None, duration=0):
        return self.answers.get(title)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True


class CountingFactory:
    def __init__(self, answers):
        self.answers = answers
        self.clients = []
        self._lock = threading.Lock()

    def __call__(self):
        c = FakeClient(self.answers)
        with self._lock:
            self.clients.append(c)
        return c


class MemoryWriter:
    """Stands in for the tag store: remembers which files already have lyrics."""

    def __init__(self):
        self.store = {}
        self._lock = threading.Lock()

    def __call__(self, path, text, force):
        with self._lock:
            if path in self.store and not force:
                return 0
            self.store[path] = text
            return 1


def _no_sleep(_):
    pass


def _tracks(tmp_path):
    return [
        Track(tmp_path / "01.flac", artist="A", title="Synced", album="X", duration=100, track_number=1),
        Track(tmp_path / "02.flac", artist="A", title="Missing", album="X", duration=100, track_number=2),
        Track(tmp_path / "03.flac", artist="A", title=None, album="X", track_number=3),
    ]


ANSWERS = {"Synced": LyricsCandidate(synced="[00:01.00] la")}


def test_mixed_run_counts_and_logs(tmp_path):
    plain_log = tmp_path / "plain.log"
    missing_log = tmp_path / "missing.log"
    cfg = RunConfig(workers=2, plain_log=plain_log, missing_log=missing_log)
    events = []

    result = sync_tracks(
        _tracks(tmp_path), cfg, events.append,
        client_factory=CountingFactory(ANSWERS), writer=MemoryWriter(), sleep=_no_sleep,
    )

    assert result == RunResult(synced=1, plain=0, skipped=0, not_found=2, errors=0)
    assert plain_log.read_text(encoding="utf-8") == ""
    missing = missing_log.read_text(encoding="utf-8").splitlines()
    assert sorted(missing) == sorted([str(tmp_path / "02.flac"), str(tmp_path / "03.flac")])
    assert sorted(e.index for e in events) == [0, 1, 2]
    assert {e.total for e in events} == {3}
    assert Counter(e.title for e in events) == Counter(["Synced", "Missing", "(unknown)"])


def test_plain_log_gets_each_path_once(tmp_path):
    tracks = [Track(tmp_path / f"{i:02d}.mp3", artist="A", title=f"T{i}") for i in range(6)]
    answers = {"T2": LyricsCandidate(plain="words")}
    plain_log = tmp_path / "plain.log"

    result = sync_tracks(
        tracks, RunConfig(workers=4, plain_log=plain_log), None,
        client_factory=CountingFactory(answers), writer=MemoryWriter(), sleep=_no_sleep,
    )

    assert result.plain == 1
    assert plain_log.read_text(encoding="utf-8") == f"{tmp_path / '02.mp3'}\n"


def test_worker_count_is_clamped_to_track_count(tmp_path):
    factory = CountingFactory(ANSWERS)

    sync_tracks(
        _tracks(tmp_path), RunConfig(workers=16), None,
        client_factory=factory, writer=MemoryWriter(), sleep=_no_sleep,
    )

    assert len(factory.clients) == 3
    assert all(c.closed for c in factory.clients)
    assert worker_count(RunConfig(workers=16), 3) == 3
    assert worker_count(RunConfig(workers=0), 3) == 1


def test_every_track_reported_exactly_once_under_load(tmp_path):
    tracks = [Track(tmp_path / f"{i:03d}.flac", artist="A", title=f"T{i}") for i in range(200)]
    answers = {f"T{i}": LyricsCandidate(synced="[00:00.00] x") for i in range(0, 200, 2)}
    events = []

    result = sync_tracks(
        tracks, RunConfig(workers=8), events.append,
        client_factory=CountingFactory(answers), writer=MemoryWriter(), sleep=_no_sleep,
    )

    assert sorted(e.index for e in events) == list(range(200))
    assert result.total == 200
    assert result.synced == 100 and result.not_found == 100


def test_second_run_skips_without_force(tmp_path):
    writer = MemoryWriter()
    factory = CountingFactory(ANSWERS)
    tracks = _tracks(tmp_path)

    first = sync_tracks(tracks, RunConfig(), None, client_factory=factory, writer=writer, sleep=_no_sleep)
    second = sync_tracks(tracks, RunConfig(), None, client_factory=factory, writer=writer, sleep=_no_sleep)
    forced = sync_tracks(tracks, RunConfig(force=True), None, client_factory=factory, writer=writer, sleep=_no_sleep)

    assert (first.synced, first.skipped) == (1, 0)
    assert (second.synced, second.skipped) == (0, 1)
    assert (forced.synced, forced.skipped) == (1, 0)


def test_unexpected_exception_counts_as_error(tmp_path):
    def broken_writer(path, text, force):
        raise RuntimeError("disk on fire")

    result = sync_tracks(
        _tracks(tmp_path), RunConfig(), None,
        client_factory=CountingFactory(ANSWERS), writer=broken_writer, sleep=_no_sleep,
    )

    assert result.errors == 1
    assert result.total == 3


def test_empty_track_list_does_nothing(tmp_path):
    def factory():
        raise AssertionError("no client should be created")

    assert sync_tracks([], RunConfig(), None, client_factory=factory) == RunResult()


def test_run_results_add_up():
    a = RunResult(synced=1, plain=2, skipped=3, not_found=4, errors=5)
    b = RunResult(synced=1, not_found=1)
    assert (a + b) == RunResult(synced=2, plain=2, skipped=3, not_found=5, errors=5)
    assert (a + b).total == 17


def test_pacer_sleeps_between_requests_only():
    slept = []
    p = Pacer(0.05, slept.append)
    for _ in range(3):
        p.wait()
    assert slept == [0.05, 0.05]


def test_unopenable_side_log_does_not_stop_the_run(tmp_path, caplog):
    tracks = [Track(tmp_path / "a.mp3", artist="A", title="T")]
    cfg = RunConfig(
        plain_log=tmp_path / "nodir" / "plain.log",
        missing_log=tmp_path / "missing.log",
    )

    result = sync_tracks(
        tracks, cfg, None,
        client_factory=CountingFactory({}), writer=MemoryWriter(), sleep=_no_sleep,
    )

    assert result == RunResult(not_found=1)
    assert (tmp_path / "missing.log").read_text(encoding="utf-8") == f"{tmp_path / 'a.mp3'}\n"
    assert "could not open log" in caplog.text


def test_progress_handler_is_never_entered_concurrently(tmp_path):
    guard = threading.Lock()
    seen = []

    def progress(event):
        assert guard.acquire(blocking=False), "progress called concurrently"
        try:
            seen.append(event.index)
            # Widen the window a concurrent call would need to hit
            time.sleep(0.0005)
        finally:
            guard.release()

    tracks = [Track(tmp_path / f"{i:03d}.flac", artist="A", title=f"T{i}") for i in range(300)]
    answers = {f"T{i}": LyricsCandidate(plain="x") for i in range(300)}

    result = sync_tracks(
        tracks, RunConfig(workers=16), progress,
        client_factory=CountingFactory(answers), writer=MemoryWriter(), sleep=_no_sleep,
    )

    assert sorted(seen) == list(range(300))
    assert result.plain == 300
