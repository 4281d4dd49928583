"""Top-level package for the Tag Interrogator library."""

from .config import AppConfig
from .models.backends import BackendKind
from .services.interrogator import Interrogator
from .services.presentation import TaggingSettings, present
from .settings_store import SettingsStore

__all__ = ["AppConfig", "BackendKind", "Interrogator", "SettingsStore", "TaggingSettings", "present"]
