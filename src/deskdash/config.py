"""Directory layout, settings persistence and environment loading."""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

APP_NAME = "deskdash"
DEFAULT_LOCATION = "Athens"


class SettingsError(Exception):
    """Raised when the settings file exists but cannot be read or decoded."""


def _xdg_dir(env_var: str, fallback: Path) -> Path:
    raw = os.environ.get(env_var)
    base = Path(raw) if raw else fallback
    return base / APP_NAME


@dataclass(frozen=True)
class Paths:
    config_dir: Path
    data_dir: Path
    cache_dir: Path
    state_dir: Path

    @classmethod
    def from_environment(cls) -> "Paths":
        """Resolve every directory following XDG conventions."""
        home = Path.home()
        return cls(
            config_dir=_xdg_dir("XDG_CONFIG_HOME", home / ".config"),
            data_dir=_xdg_dir("XDG_DATA_HOME", home / ".local" / "share"),
            cache_dir=_xdg_dir("XDG_CACHE_HOME", home / ".cache"),
            state_dir=_xdg_dir("XDG_STATE_HOME", home / ".local" / "state"),
        )

    @classmethod
    def under(cls, root: Path) -> "Paths":
        """All directories below a single root. Used by tests and the screenshot harness."""
        return cls(
            config_dir=root / "config",
            data_dir=root / "data",
            cache_dir=root / "cache",
            state_dir=root / "state",
        )

    @property
    def notes_dir(self) -> Path:
        return self.data_dir / "notes"

    @property
    def todo_file(self) -> Path:
        return self.data_dir / "todo-list.json"

    @property
    def settings_file(self) -> Path:
        return self.config_dir / "config.json"

    @property
    def token_file(self) -> Path:
        return self.config_dir / "token.json"

    @property
    def credentials_file(self) -> Path:
        override = os.environ.get("DESKDASH_CREDENTIALS_FILE")
        if override:
            return Path(override).expanduser()
        return self.config_dir / "credentials.json"

    @property
    def calendar_cache_file(self) -> Path:
        return self.cache_dir / "calendar_cache.json"

    @property
    def log_file(self) -> Path:
        return self.state_dir / f"{APP_NAME}.log"


def ensure_dirs(paths: Paths) -> None:
    """Create the config, data, cache, state and notes directories."""
    for directory in (
        paths.config_dir,
        paths.data_dir,
        paths.cache_dir,
        paths.state_dir,
        paths.notes_dir,
    ):
        directory.mkdir(parents=True, exist_ok=True)


def load_environment(paths: Paths) -> None:
    """Load .env from the config directory, falling back to cwd for development."""
    config_env = paths.config_dir / ".env"
    if config_env.exists():
        _ = load_dotenv(config_env)
    else:
        _ = load_dotenv(find_dotenv(usecwd=True))


@dataclass
class Settings:
    location: str = DEFAULT_LOCATION
    default_notes_created: bool = False


def save_settings(path: Path, settings: Settings) -> None:
    _ = path.write_text(json.dumps(asdict(settings), indent=2))


def load_settings(path: Path) -> Settings:
    """Read settings, writing the defaults when the file does not exist yet."""
    if not path.exists():
        settings = Settings()
        save_settings(path, settings)
        return settings

    try:
        raw = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise SettingsError(f"could not read settings from {path}: {e}") from e
    if not isinstance(raw, dict):
        raise SettingsError(f"settings in {path} must be a JSON object")

    settings = Settings(
        location=str(raw.get("location") or DEFAULT_LOCATION),
        default_notes_created=bool(raw.get("default_notes_created", False)),
    )
    return settings
