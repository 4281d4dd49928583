"""Application-wide configuration models and persistence helpers."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .models.backends import (
    DEFAULT_CLOUD_BASE_URL,
    BackendConfig,
    BackendKind,
    CloudBackend,
    HybridBackend,
)
from .models.base import TagCategory
from .services.presentation import TaggingSettings

API_KEY_ENV = "GEMINI_API_KEY"


class AppConfig(BaseModel):
    """Validates and stores runtime settings for the application."""

    backend: BackendKind = Field(
        default=BackendKind.CLOUD,
        description="Which interrogation strategy to use.",
    )
    cloud_api_key: str = Field(
        default="",
        description="API key for the hosted vision model. Falls back to $GEMINI_API_KEY.",
    )
    cloud_base_url: str = Field(
        default=DEFAULT_CLOUD_BASE_URL,
        description="Base URL of the hosted model REST API.",
    )
    cloud_tag_model: str = Field(
        default="gemini-3-pro-preview",
        description="Hosted model used for structured tagging.",
    )
    cloud_caption_model: str = Field(
        default="gemini-2.5-flash",
        description="Lightweight hosted model used for captions.",
    )
    tagger_endpoint: str = Field(
        default="",
        description="URL of the local tag inference service.",
    )
    tagger_threshold: float = Field(
        default=0.35,
        ge=0.0,
        le=1.0,
        description="Confidence threshold sent to the local tagger.",
    )
    captioner_endpoint: str = Field(
        default="http://127.0.0.1:11434",
        description="Base URL for the Ollama captioning backend.",
    )
    captioner_model: str = Field(
        default="llava",
        description="Model identifier served by the captioning backend.",
    )
    request_timeout: float = Field(
        default=90.0,
        ge=1.0,
        le=600.0,
        description="Timeout (seconds) for each HTTP call.",
    )
    tag_database: str | None = Field(
        default=None,
        description="Path or URL of a Danbooru tag CSV used for categorisation.",
    )
    thresholds: dict[TagCategory, float] = Field(
        default_factory=lambda: {
            TagCategory.GENERAL: 0.35,
            TagCategory.CHARACTER: 0.85,
            TagCategory.RATING: 0.5,
        },
        description="Minimum score per category; missing categories use 0.5.",
    )
    top_k: int = Field(
        default=30,
        ge=1,
        le=500,
        description="Maximum number of tags to keep after filtering.",
    )
    randomize: bool = Field(
        default=False,
        description="Shuffle the surviving tags before display and export.",
    )
    remove_underscores: bool = Field(
        default=False,
        description="Show tag names with spaces instead of underscores.",
    )

    @field_validator("thresholds")
    @classmethod
    def _validate_thresholds(cls, value: dict[TagCategory, float]) -> dict[TagCategory, float]:
        for category, threshold in value.items():
            if not 0.0 <= threshold <= 1.0:
                raise ValueError(f"Threshold for '{category.value}' must be between 0 and 1.")
        return value

    @model_validator(mode="after")
    def _normalise_urls(self) -> AppConfig:
        for name in ("cloud_base_url", "tagger_endpoint", "captioner_endpoint"):
            url = getattr(self, name).strip()
            if url and "://" not in url:
                raise ValueError(
                    f"{name} must include a scheme such as http://localhost:11434."
                )
            setattr(self, name, url.rstrip("/"))
        return self

    def resolved_api_key(self) -> str:
        return self.cloud_api_key.strip() or os.getenv(API_KEY_ENV, "").strip()

    def backend_config(self) -> BackendConfig:
        """Build the variant for the selected backend kind."""
        if self.backend == BackendKind.CLOUD:
            return CloudBackend(
                api_key=self.resolved_api_key(),
                tag_model=self.cloud_tag_model,
                caption_model=self.cloud_caption_model,
                base_url=self.cloud_base_url,
                timeout=self.request_timeout,
            )
        return HybridBackend(
            tagger_endpoint=self.tagger_endpoint,
            captioner_endpoint=self.captioner_endpoint,
            captioner_model=self.captioner_model,
            tagger_threshold=self.tagger_threshold,
            timeout=self.request_timeout,
        )

    def tagging_settings(self) -> TaggingSettings:
        return TaggingSettings(
            thresholds=dict(self.thresholds),
            top_k=self.top_k,
            randomize=self.randomize,
            remove_underscores=self.remove_underscores,
        )

    def as_dict(self, *, exclude: set[str] | None = None) -> dict[str, Any]:
        """Serialize the configuration to primitive Python types."""
        return self.model_dump(mode="json", exclude=exclude)

    @classmethod
    def load(cls, path: Path) -> AppConfig:
        """Load configuration from a YAML or JSON file."""
        data = _read_config_file(path)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:  # pragma: no cover - pass through details
            raise ValueError(f"Invalid configuration file at {path}: {exc}") from exc

    def save(self, path: Path, *, exclude: set[str] | None = None) -> None:
        """Persist configuration to a YAML file, leaving out ``exclude`` fields."""
        _write_config_file(path, self.as_dict(exclude=exclude))


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(text) or {}
    return json.loads(text)


def _write_config_file(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in {".yaml", ".yml"}:
        yaml_text = yaml.safe_dump(
            data,
            allow_unicode=False,
            sort_keys=False,
        )
        path.write_text(yaml_text, encoding="utf-8")
    else:
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
