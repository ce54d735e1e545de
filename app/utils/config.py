"""
Configuration management for scrubwatch.

Uses pydantic-settings to load runtime settings from environment variables
and .env files. Daemon watch configuration and the anonymization profile are
read from TOML files found in a fixed set of search locations.
"""

import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.models.schemas import DaemonConfig
from app.utils.errors import ConfigError


REQUIRED_PROFILE_FIELDS = ("author", "software", "created")


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Locations
    home_dir: Path = Path("~/.scrubwatch")
    log_dir: Optional[Path] = None
    config_file_name: str = "scrubwatch.toml"
    profile_file_name: str = "profile.toml"

    # Logging
    log_level: str = "INFO"
    daemon_log_level: str = "INFO"

    # External tools
    exiftool_bin: str = "exiftool"
    ffmpeg_bin: str = "ffmpeg"
    identify_bin: str = "identify"
    tool_timeout: Optional[float] = None  # seconds, None waits forever

    # Watcher
    worker_threads: int = 4

    model_config = SettingsConfigDict(
        env_prefix="SCRUBWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def get_home_dir(self) -> Path:
        """Expanded home directory."""
        return self.home_dir.expanduser()

    def get_log_dir(self) -> Path:
        """Log directory, defaulting to <home>/logs."""
        if self.log_dir is not None:
            return self.log_dir.expanduser()
        return self.get_home_dir() / "logs"

    def get_search_paths(self, file_name: str) -> List[Path]:
        """Candidate locations for a config file, in priority order."""
        return [
            Path("config") / file_name,
            Path(".") / file_name,
            self.get_home_dir() / "config" / file_name,
        ]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def _find_config_file(file_name: str, settings: Settings) -> Optional[Path]:
    for candidate in settings.get_search_paths(file_name):
        if candidate.is_file():
            return candidate
    return None


def _read_toml(path: Path) -> dict:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"failed to parse {path}: {e}") from e


def load_watch_config(
    path: Optional[Path] = None, settings: Optional[Settings] = None
) -> DaemonConfig:
    """
    Load daemon watch configuration.

    Expected layout::

        [watch]
        paths = ["~/Downloads"]

        [filter]
        extensions = [".jpg", ".png"]

    Args:
        path: Explicit config file; searched for when omitted
        settings: Settings used to resolve search locations

    Returns:
        Parsed daemon configuration

    Raises:
        ConfigError: If no file is found or it cannot be parsed
    """
    settings = settings or get_settings()
    config_path = path or _find_config_file(settings.config_file_name, settings)
    if config_path is None:
        raise ConfigError(f"{settings.config_file_name} not found in search paths")

    data = _read_toml(Path(config_path))

    paths = data.get("watch", {}).get("paths", [])
    extensions = data.get("filter", {}).get("extensions", [])

    # Entries starting with '#' are treated as disabled
    active_paths = [str(Path(p).expanduser()) for p in paths if p and not p.startswith("#")]

    return DaemonConfig(watch_paths=active_paths, extensions=list(extensions))


def default_watch_config() -> DaemonConfig:
    """Built-in watch configuration."""
    return DaemonConfig(
        watch_paths=[str(Path("~/Downloads").expanduser())],
        extensions=[
            ".jpg", ".jpeg", ".png", ".gif",
            ".mp3", ".flac", ".opus", ".ogg",
            ".mp4", ".avi",
            ".txt", ".md", ".html",
        ],
    )


def load_profile(
    path: Optional[Path] = None, settings: Optional[Settings] = None
) -> Dict[str, str]:
    """
    Load the anonymization profile.

    The profile is either a ``[profile]`` table or top-level string keys.
    Non-string values are ignored.

    Raises:
        ConfigError: If no profile is found, it cannot be parsed, or a
            required field is missing
    """
    settings = settings or get_settings()
    profile_path = path or _find_config_file(settings.profile_file_name, settings)
    if profile_path is None:
        raise ConfigError(f"{settings.profile_file_name} not found in search paths")

    data = _read_toml(Path(profile_path))
    table = data.get("profile", data)

    profile = {k: v for k, v in table.items() if isinstance(k, str) and isinstance(v, str)}

    for field in REQUIRED_PROFILE_FIELDS:
        if field not in profile:
            raise ConfigError(f"profile is missing required field: {field}")

    return profile


def default_profile() -> Dict[str, str]:
    """Fallback profile when none can be loaded."""
    return {
        "author": "anonymous",
        "software": "scrubwatch/1.0",
        "created": "2000-01-01",
        "organization": "none",
        "location": "unknown",
        "comment": "sanitized",
    }


def resolve_profile() -> Dict[str, str]:
    """Loaded profile, or the built-in default if loading fails."""
    try:
        return load_profile()
    except ConfigError:
        return default_profile()
