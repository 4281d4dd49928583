"""Tests for the CLI entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from PIL import Image

from tag_interrogator.__main__ import main as cli_main
from tag_interrogator.config import AppConfig
from tag_interrogator.models.base import (
    ConfigurationError,
    InterrogationResult,
    Tag,
    TotalFailure,
)


class DummyStore:
    def load(self) -> AppConfig:
        return AppConfig(cloud_api_key="key")


def _make_interrogator(result=None, error=None, caption="A caption."):
    created = []

    class DummyInterrogator:
        def __init__(self, backend, *, resolver=None) -> None:
            self.backend = backend
            self.resolver = resolver
            self.closed = False
            created.append(self)

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            self.closed = True

        def interrogate(self, image):
            if error is not None:
                raise error
            return result

        def caption(self, image):
            return caption

    return DummyInterrogator, created


@pytest.fixture()
def image_path(tmp_path: Path) -> Path:
    path = tmp_path / "image.png"
    Image.new("RGB", (4, 4)).save(path)
    return path


def test_cli_interrogates_and_prints_presentation(monkeypatch, capsys, image_path):
    result = InterrogationResult.build([Tag("long_hair", 0.9), Tag("smile", 0.2)])
    interrogator_cls, created = _make_interrogator(result)
    monkeypatch.setattr("tag_interrogator.__main__.SettingsStore", DummyStore)
    monkeypatch.setattr("tag_interrogator.__main__.Interrogator", interrogator_cls)

    cli_main([str(image_path), "--remove-underscores", "--caption"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["tag_string"] == "long hair"
    assert payload["description"] == "A caption."
    assert payload["backend"] == "cloud"
    assert created[0].backend.api_key == "key"
    assert created[0].closed is True


def test_cli_writes_sidecar(monkeypatch, capsys, image_path):
    result = InterrogationResult.build([Tag("solo", 0.8)], natural_description="Alone.")
    interrogator_cls, _ = _make_interrogator(result)
    monkeypatch.setattr("tag_interrogator.__main__.SettingsStore", DummyStore)
    monkeypatch.setattr("tag_interrogator.__main__.Interrogator", interrogator_cls)

    cli_main([str(image_path), "--sidecar", "--backend", "local_hybrid"])

    payload = json.loads(capsys.readouterr().out)
    sidecar = Path(payload["sidecar_path"])
    assert sidecar == image_path.with_suffix(".yaml")
    stored = yaml.safe_load(sidecar.read_text(encoding="utf-8"))
    assert stored["tag_string"] == "solo"
    assert stored["backend"] == "local_hybrid"


def test_cli_exit_codes(monkeypatch, image_path):
    monkeypatch.setattr("tag_interrogator.__main__.SettingsStore", DummyStore)

    interrogator_cls, _ = _make_interrogator(error=ConfigurationError("api_key"))
    monkeypatch.setattr("tag_interrogator.__main__.Interrogator", interrogator_cls)
    with pytest.raises(SystemExit) as excinfo:
        cli_main([str(image_path)])
    assert excinfo.value.code == 2

    failure = TotalFailure({"tagger": RuntimeError("a"), "captioner": RuntimeError("b")})
    interrogator_cls, _ = _make_interrogator(error=failure)
    monkeypatch.setattr("tag_interrogator.__main__.Interrogator", interrogator_cls)
    with pytest.raises(SystemExit) as excinfo:
        cli_main([str(image_path)])
    assert excinfo.value.code == 1


def test_cli_requires_image(monkeypatch):
    monkeypatch.setattr("tag_interrogator.__main__.SettingsStore", DummyStore)
    with pytest.raises(SystemExit):
        cli_main([])


def test_cli_lists_models(monkeypatch, capsys):
    monkeypatch.setattr("tag_interrogator.__main__.SettingsStore", DummyStore)
    monkeypatch.setattr(
        "tag_interrogator.__main__.OllamaCaptioner.discover_vision_models",
        lambda self: ["llava:13b"],
    )

    cli_main(["--list-models"])

    assert json.loads(capsys.readouterr().out) == ["llava:13b"]


def test_cli_reads_explicit_config(monkeypatch, capsys, tmp_path, image_path):
    config_path = tmp_path / "settings.json"
    AppConfig(cloud_api_key="from-file", top_k=1).save(config_path)
    result = InterrogationResult.build([Tag("a", 0.9), Tag("b", 0.8)])
    interrogator_cls, created = _make_interrogator(result)
    monkeypatch.setattr("tag_interrogator.__main__.Interrogator", interrogator_cls)

    cli_main([str(image_path), "--config", str(config_path)])

    payload = json.loads(capsys.readouterr().out)
    assert payload["tag_string"] == "a"
    assert created[0].backend.api_key == "from-file"


def test_cli_save_config_persists_overrides_without_api_key(monkeypatch, capsys, tmp_path):
    settings_path = tmp_path / "profile" / "settings.yaml"
    monkeypatch.setenv("TAG_INTERROGATOR_SETTINGS", str(settings_path))
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    source = tmp_path / "source.yaml"
    AppConfig(cloud_api_key="secret", top_k=5).save(source)

    cli_main(["--config", str(source), "--backend", "local_hybrid", "--save-config"])

    assert str(settings_path) in capsys.readouterr().err
    stored = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    assert "cloud_api_key" not in stored
    assert stored["backend"] == "local_hybrid"
    assert stored["top_k"] == 5


def test_cli_uses_saved_settings_on_next_run(monkeypatch, capsys, tmp_path, image_path):
    monkeypatch.setenv("TAG_INTERROGATOR_SETTINGS", str(tmp_path / "settings.yaml"))
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    cli_main(["--top-k", "1", "--save-config"])
    capsys.readouterr()

    result = InterrogationResult.build([Tag("a", 0.9), Tag("b", 0.8)])
    interrogator_cls, created = _make_interrogator(result)
    monkeypatch.setattr("tag_interrogator.__main__.Interrogator", interrogator_cls)
    cli_main([str(image_path)])

    payload = json.loads(capsys.readouterr().out)
    assert payload["tag_string"] == "a"
    assert created[0].backend.api_key == "from-env"
