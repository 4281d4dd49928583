"""Backend variants accepted by the interrogation service."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

DEFAULT_CLOUD_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class BackendKind(str, Enum):
    """Interrogation strategies that can be selected by the user."""

    CLOUD = "cloud"
    LOCAL_HYBRID = "local_hybrid"


@dataclass(frozen=True, slots=True)
class CloudBackend:
    """Single structured call to a hosted vision model."""

    api_key: str
    tag_model: str = "gemini-3-pro-preview"
    caption_model: str = "gemini-2.5-flash"
    base_url: str = DEFAULT_CLOUD_BASE_URL
    timeout: float = 90.0

    kind = BackendKind.CLOUD


@dataclass(frozen=True, slots=True)
class HybridBackend:
    """Local tagger service combined with a vision-language captioner."""

    tagger_endpoint: str
    captioner_endpoint: str
    captioner_model: str
    tagger_threshold: float = 0.35
    timeout: float = 90.0

    kind = BackendKind.LOCAL_HYBRID


BackendConfig = Union[CloudBackend, HybridBackend]

REQUIRED_FIELDS: dict[type, tuple[str, ...]] = {
    CloudBackend: ("api_key",),
    HybridBackend: ("tagger_endpoint", "captioner_endpoint", "captioner_model"),
}


def missing_fields(backend: BackendConfig) -> list[str]:
    """Return the required fields of ``backend`` that are empty."""
    required = REQUIRED_FIELDS.get(type(backend), ())
    missing: list[str] = []
    for name in required:
        value = getattr(backend, name, None)
        if not isinstance(value, str) or not value.strip():
            missing.append(name)
    return missing
