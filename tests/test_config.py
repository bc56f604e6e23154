from pathlib import Path

import pytest
from pydantic import ValidationError

from synclyr.core.config import (
    SynclyrSettings,
    clamp_threads,
    get_settings,
    reset_settings,
    write_default_settings,
)


def test_defaults():
    s = get_settings()
    assert s.threads == 4
    assert s.force is False
    assert s.max_retries == 3
    assert s.base_url == "https://lrclib.net/api"


def test_env_override_for_threads(monkeypatch):
    monkeypatch.setenv("SYNCLYR_THREADS", "12")
    reset_settings()
    assert get_settings().threads == 12


def test_out_of_range_threads_rejected(monkeypatch):
    monkeypatch.setenv("SYNCLYR_THREADS", "64")
    reset_settings()
    with pytest.raises(ValidationError):
        get_settings()


def test_local_settings_file_is_read(tmp_path):
    # conftest chdirs into tmp_path, so ./settings.toml is picked up
    (tmp_path / "settings.toml").write_text('threads = 2\nclean_lrc = true\n', encoding="utf-8")
    reset_settings()

    s = get_settings()

    assert s.threads == 2
    assert s.clean_lrc is True


def test_write_default_settings_refuses_overwrite(tmp_path):
    p = write_default_settings(tmp_path / "s.toml")
    with pytest.raises(FileExistsError):
        write_default_settings(p)
    assert write_default_settings(p, overwrite=True) == p


def test_run_config_overrides():
    s = SynclyrSettings(threads=6, force=True, plain_log=Path("/tmp/p.log"))

    base = s.run_config()
    over = s.run_config(workers=2, force=None, missing_log=Path("/tmp/m.log"))

    assert (base.workers, base.force, base.plain_log) == (6, True, Path("/tmp/p.log"))
    assert (over.workers, over.force, over.missing_log) == (2, True, Path("/tmp/m.log"))


def test_clamp_threads():
    assert clamp_threads(0) == 1
    assert clamp_threads(7) == 7
    assert clamp_threads(99) == 16
