"""Tests for the per-user settings file."""

from __future__ import annotations

import yaml

from tag_interrogator.config import AppConfig
from tag_interrogator.models.backends import BackendKind
from tag_interrogator.settings_store import SettingsStore, default_settings_path


def test_settings_path_env_override(monkeypatch, tmp_path):
    target = tmp_path / "custom" / "tagger.yaml"
    monkeypatch.setenv("TAG_INTERROGATOR_SETTINGS", str(target))

    assert default_settings_path() == target
    assert SettingsStore().path == target


def test_settings_path_falls_back_to_xdg(monkeypatch, tmp_path):
    monkeypatch.delenv("TAG_INTERROGATOR_SETTINGS", raising=False)
    monkeypatch.setattr("tag_interrogator.settings_store.os.name", "posix")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    assert default_settings_path() == tmp_path / "tag_interrogator" / "settings.yaml"


def test_save_leaves_api_key_out(tmp_path, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "env-key")
    store = SettingsStore(tmp_path / "settings.yaml")
    config = AppConfig(
        backend=BackendKind.LOCAL_HYBRID,
        cloud_api_key="file-key",
        tagger_endpoint="http://tagger.local/tag",
    )

    written = store.save(config)

    stored = yaml.safe_load(written.read_text(encoding="utf-8"))
    assert "cloud_api_key" not in stored
    assert stored["tagger_endpoint"] == "http://tagger.local/tag"
    loaded = store.load()
    assert loaded.backend is BackendKind.LOCAL_HYBRID
    assert loaded.resolved_api_key() == "env-key"


def test_save_can_include_api_key(tmp_path):
    store = SettingsStore(tmp_path / "settings.yaml")

    store.save(AppConfig(cloud_api_key="file-key"), include_secrets=True)

    assert store.load().cloud_api_key == "file-key"


def test_missing_file_yields_defaults(tmp_path):
    assert SettingsStore(tmp_path / "missing.yaml").load() == AppConfig()
