"""Per-user settings file used when the CLI runs without ``--config``."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .config import AppConfig

logger = logging.getLogger(__name__)

SETTINGS_PATH_ENV = "TAG_INTERROGATOR_SETTINGS"
SECRET_FIELDS = frozenset({"cloud_api_key"})


class SettingsStore:
    """Read and write the user's saved :class:`AppConfig`.

    The API key is left out of the file unless ``include_secrets`` is set, so
    a saved profile keeps reading it from ``$GEMINI_API_KEY``.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path if path is not None else default_settings_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> AppConfig:
        if not self._path.exists():
            logger.debug("No saved settings at %s; using defaults", self._path)
            return AppConfig()
        return AppConfig.load(self._path)

    def save(self, config: AppConfig, *, include_secrets: bool = False) -> Path:
        exclude = None if include_secrets else set(SECRET_FIELDS)
        config.save(self._path, exclude=exclude)
        logger.info("Saved settings to %s", self._path)
        return self._path


def default_settings_path() -> Path:
    """``$TAG_INTERROGATOR_SETTINGS`` or the platform's per-user config directory."""
    override = os.getenv(SETTINGS_PATH_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    if os.name == "nt":
        base = Path(os.getenv("APPDATA", Path.home() / "AppData" / "Roaming"))
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base.expanduser() / "tag_interrogator" / "settings.yaml"
