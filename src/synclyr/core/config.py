"""
Configuration management using Dynaconf and Pydantic.

Dynaconf loads settings from files (`settings.toml`, `.secrets.toml`, the
user config directory) and `SYNCLYR_*` environment variables. Pydantic then
validates the merged data into a typed `SynclyrSettings` object.

`get_settings` returns a process-wide singleton; `reset_settings` drops it so
the next call reloads (used by tests).
"""

from pathlib import Path
from typing import Optional

import toml
from dynaconf import Dynaconf
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from rich.console import Console

from .lrclib import LRCLIB_BASE_URL
from .models import RunConfig
from .transport import BACKOFF_BASE, DEFAULT_TIMEOUT, MAX_RETRIES, USER_AGENT

console = Console()

USER_CONFIG_DIR = Path.home() / ".config" / "synclyr"
USER_SETTINGS_FILE = USER_CONFIG_DIR / "settings.toml"
USER_SECRETS_FILE = USER_CONFIG_DIR / ".secrets.toml"

LOCAL_SETTINGS_FILE = Path("settings.toml")

MIN_THREADS = 1
MAX_THREADS = 16
DEFAULT_THREADS = 4


def _make_loader() -> Dynaconf:
    return Dynaconf(
        envvar_prefix="SYNCLYR",
        # Later files override earlier ones; environment overrides all files
        settings_files=[
            str(USER_SETTINGS_FILE),
            str(USER_SECRETS_FILE),
            "settings.toml",
            ".secrets.toml",
        ],
        load_dotenv=True,
    )


class SynclyrSettings(BaseModel):
    """A Pydantic model that defines and validates all application settings."""

    threads: int = Field(default=DEFAULT_THREADS, ge=MIN_THREADS, le=MAX_THREADS)
    force: bool = False
    clean_lrc: bool = False
    rate_limit_delay: float = Field(default=0.05, ge=0.0)

    # HTTP / LRCLIB
    base_url: str = LRCLIB_BASE_URL
    user_agent: str = USER_AGENT
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    max_retries: int = Field(default=MAX_RETRIES, ge=0)
    backoff_base: float = Field(default=BACKOFF_BASE, ge=0.0)
    ca_file: Optional[str] = None
    ca_dir: Optional[str] = None

    # Side logs
    plain_log: Optional[Path] = None
    missing_log: Optional[Path] = None

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    def run_config(self, **overrides) -> RunConfig:
        """Build a RunConfig from these settings; non-None overrides win."""
        values = {
            "force": self.force,
            "clean_lrc": self.clean_lrc,
            "workers": self.threads,
            "plain_log": self.plain_log,
            "missing_log": self.missing_log,
            "rate_limit_delay": self.rate_limit_delay,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return RunConfig(**values)


def clamp_threads(n: int) -> int:
    return max(MIN_THREADS, min(MAX_THREADS, n))


_settings_instance: Optional[SynclyrSettings] = None


def get_settings() -> SynclyrSettings:
    """Get the application settings as a singleton Pydantic model."""
    global _settings_instance
    if _settings_instance is None:
        raw = _make_loader().as_dict() or {}
        config_dict = {k.lower(): v for k, v in raw.items()}
        try:
            _settings_instance = SynclyrSettings(**config_dict)
        except ValidationError as e:
            console.print(f"[red]Configuration error:[/red]\n{e}")
            raise
    return _settings_instance


def reset_settings() -> None:
    """Reset in-memory settings (do not delete on-disk settings)."""
    global _settings_instance
    _settings_instance = None


def settings_as_dict(settings: SynclyrSettings) -> dict:
    return settings.model_dump(mode="json", exclude_none=True)


def write_default_settings(path: Path = LOCAL_SETTINGS_FILE, *, overwrite: bool = False) -> Path:
    """Write a settings.toml holding the default values.

    Raises:
        FileExistsError: `path` exists and `overwrite` is False.
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise FileExistsError(str(path))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(toml.dumps(settings_as_dict(SynclyrSettings())), encoding="utf-8")
    return path
