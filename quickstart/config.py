"""Quickstart configuration.

Typed configuration built on Pydantic v2 models.  ``Config`` holds the
root directory every other component works under; nothing reads the
user's home directory on its own, so tests (and callers) inject a root
explicitly.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quickstart.utils import ensure_dir

DEFAULT_HOME_DIRNAME = ".quickstart"
CONFIG_FILENAME = "config.json"
TEMPLATES_DIRNAME = "templates"


class ConfigError(Exception):
    """Raised for unknown keys or malformed configuration files."""


class Settings(BaseModel):
    """User settings persisted in ``config.json``.

    Keys are stored in camelCase, matching ``quickstart config --set``.
    """

    model_config = ConfigDict(populate_by_name=True)

    default_author: str | None = Field(default=None, alias="defaultAuthor")
    default_license: str | None = Field(default=None, alias="defaultLicense")
    templates_dir: str | None = Field(default=None, alias="templatesDir")
    github_token: str | None = Field(default=None, alias="githubToken")

    @classmethod
    def keys(cls) -> list[str]:
        """Return the camelCase keys accepted by ``get``/``set``."""
        return [info.alias or name for name, info in cls.model_fields.items()]

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Config(BaseModel):
    """Global Quickstart configuration.

    Attributes:
        home_dir: Root of all Quickstart state (``~/.quickstart`` by default).
        settings: Values loaded from ``<home_dir>/config.json``.
        templates_override: Templates directory forced by the environment;
            takes precedence over ``settings.templates_dir``.
    """

    home_dir: Path = Field(default_factory=lambda: Path.home() / DEFAULT_HOME_DIRNAME)
    settings: Settings = Field(default_factory=Settings)
    templates_override: Path | None = Field(default=None)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def config_path(self) -> Path:
        return self.home_dir / CONFIG_FILENAME

    @property
    def templates_path(self) -> Path:
        """Directory holding one subdirectory per template."""
        if self.templates_override is not None:
            return self.templates_override
        if self.settings.templates_dir:
            return Path(self.settings.templates_dir).expanduser()
        return self.home_dir / TEMPLATES_DIRNAME

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, home_dir: str | Path | None = None, **kwargs: Any) -> "Config":
        """Build a ``Config`` rooted at *home_dir*, reading ``config.json`` if present.

        Raises:
            ConfigError: The settings file exists but is not valid.
        """
        config = cls(home_dir=Path(home_dir), **kwargs) if home_dir else cls(**kwargs)
        path = config.config_path
        if path.is_file():
            try:
                config.settings = Settings.model_validate_json(path.read_text(encoding="utf-8"))
            except ValidationError as exc:
                raise ConfigError(f"Invalid configuration file {path}: {exc}") from exc
        return config

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            QUICKSTART_HOME, QUICKSTART_TEMPLATES_DIR.
        """
        home = os.environ.get("QUICKSTART_HOME")
        templates = os.environ.get("QUICKSTART_TEMPLATES_DIR")
        kwargs: dict[str, Any] = {}
        if templates:
            kwargs["templates_override"] = Path(templates).expanduser()
        return cls.load(Path(home).expanduser() if home else None, **kwargs)

    def save(self) -> Path:
        """Persist the settings to ``config.json`` and return its path."""
        target = self.config_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps(self.settings.to_json_dict(), indent=2) + "\n", encoding="utf-8"
        )
        return target

    def ensure_directories(self) -> None:
        """Create the directories that must exist before any command runs."""
        ensure_dir(self.templates_path)

    # ------------------------------------------------------------------
    # Settings access (``quickstart config``)
    # ------------------------------------------------------------------

    def get_value(self, key: str) -> str | None:
        _check_key(key)
        return self.settings.to_json_dict().get(key)

    def set_value(self, assignment: str) -> tuple[str, str]:
        """Apply a ``key=value`` assignment and save.

        Raises:
            ConfigError: Malformed assignment or unknown key.
        """
        key, sep, value = assignment.partition("=")
        key = key.strip()
        if not sep or not key or not value:
            raise ConfigError("Invalid format. Use: key=value")
        _check_key(key)

        data = self.settings.to_json_dict()
        data[key] = value
        self.settings = Settings.model_validate(data)
        self.save()
        return key, value

    def reset(self) -> None:
        """Delete the settings file and fall back to defaults."""
        if self.config_path.exists():
            self.config_path.unlink()
        self.settings = Settings()


def _check_key(key: str) -> None:
    if key not in Settings.keys():
        raise ConfigError(
            f"Unknown configuration key {key!r} (known keys: {', '.join(Settings.keys())})"
        )
