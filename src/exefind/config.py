"""Configuration for exefind.

Settings carry the values the scanner and cache manager used to hard-code:
which directories to scan, where the cache file lives and how long it stays
fresh. Defaults match the classic behaviour of scanning the two Windows
program directories into ``installierte_programme.txt``.
"""

import os
from datetime import timedelta
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from exefind.errors import ConfigError

DEFAULT_CACHE_FILE = "installierte_programme.txt"
DEFAULT_MAX_AGE = timedelta(hours=24)

# (environment variable, fallback) for each default root
_PROGRAM_DIRS = (
    ("ProgramFiles", r"C:\Program Files"),
    ("ProgramFiles(x86)", r"C:\Program Files (x86)"),
)


def default_root_directories() -> list[Path]:
    """Primary and secondary program installation directories."""
    return [Path(os.environ.get(env) or fallback) for env, fallback in _PROGRAM_DIRS]


class Settings(BaseModel):
    """Runtime settings for scanning and caching."""

    root_directories: list[Path] = Field(
        default_factory=default_root_directories,
        description="Directories scanned recursively for executables",
    )
    cache_path: Path = Field(
        default=Path(DEFAULT_CACHE_FILE),
        description="Cache file location (relative to the working directory)",
    )
    max_age: timedelta = Field(
        default=DEFAULT_MAX_AGE,
        description="Maximum cache age before a rescan",
    )
    max_depth: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum recursion depth (None = unbounded)",
    )


class SettingsFile(BaseModel):
    """On-disk representation of Settings; every field is optional."""

    root_directories: Optional[list[Path]] = None
    cache_path: Optional[Path] = None
    max_age_hours: Optional[float] = Field(None, gt=0)
    max_depth: Optional[int] = Field(None, ge=1)

    def to_settings(self) -> Settings:
        values: dict = {}
        if self.root_directories is not None:
            values["root_directories"] = self.root_directories
        if self.cache_path is not None:
            values["cache_path"] = self.cache_path
        if self.max_age_hours is not None:
            values["max_age"] = timedelta(hours=self.max_age_hours)
        if self.max_depth is not None:
            values["max_depth"] = self.max_depth
        return Settings(**values)


class AppConfig(BaseModel):
    """Application configuration document."""

    app_specific_configuration_path: str


def _read_text(file_path: str | Path) -> str:
    try:
        return Path(file_path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {file_path}: {e}") from e


def load_config_from_file(file_path: str | Path) -> AppConfig:
    """
    Load an AppConfig from a JSON file.

    Args:
        file_path: Path to the JSON document

    Returns:
        Parsed AppConfig

    Raises:
        ConfigError: If the file cannot be read or is not a valid document
    """
    text = _read_text(file_path)
    try:
        return AppConfig.model_validate_json(text)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {file_path}: {e}") from e


def load_settings(file_path: str | Path) -> Settings:
    """Load Settings from a JSON settings file."""
    text = _read_text(file_path)
    try:
        return SettingsFile.model_validate_json(text).to_settings()
    except ValidationError as e:
        raise ConfigError(f"Invalid settings file {file_path}: {e}") from e
