"""Server settings loaded from a TOML file."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "settings.toml"

_DEFAULT_TOML = """
log_level = "info"
db_path = "./deaftone.sqlite"
media_path = "./music"
"""

_FIELDS = ("log_level", "db_path", "media_path")


@dataclass(frozen=True)
class Settings:
    """Log level, database file and media directory of the server."""

    log_level: str
    db_path: str
    media_path: str

    @classmethod
    def from_toml(cls, text: str) -> Settings:
        """Parse settings from TOML text; every field is required."""
        data: dict[str, Any] = tomllib.loads(text)
        values = {}
        for name in _FIELDS:
            if name not in data:
                raise ValueError(f"missing field `{name}`")
            value = data[name]
            if not isinstance(value, str):
                raise ValueError(f"field `{name}` must be a string, got {type(value).__name__}")
            values[name] = value
        return cls(**values)

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """Read settings from a TOML file."""
        return cls.from_toml(Path(path).read_text(encoding="utf-8"))

    @classmethod
    def default(cls) -> Settings:
        """The built-in configuration."""
        return cls.from_toml(_DEFAULT_TOML)


def load_settings(path: str | Path = DEFAULT_SETTINGS_FILE) -> Settings:
    """Load settings from ``path``, falling back to the defaults on any failure."""
    try:
        return Settings.from_file(path)
    except (OSError, ValueError) as err:
        logger.warning("Failed to load config %s. Loading default config", err)
        return Settings.default()