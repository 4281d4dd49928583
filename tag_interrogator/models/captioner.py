"""Free-text captioning through an Ollama-compatible ``/api/generate``."""

from __future__ import annotations

import json
import logging
from typing import Any

from requests import Session

from .base import EncodedImage, NetworkError, ParseError
from .remote import RemoteClient

logger = logging.getLogger(__name__)

CAPTION_PROMPT = "Describe this image in detail for an image generation prompt."

_VISION_KEYWORDS = {
    "vision",
    "multimodal",
    "vl",
    "llava",
    "minicpm",
    "paligemma",
    "gemma",
    "qwen",
    "moondream",
    "pixtral",
    "idefics",
    "cogvlm",
    "image",
}


class OllamaCaptioner(RemoteClient):
    """Ask a vision-language model for a natural language description."""

    def __init__(
        self,
        endpoint: str,
        model: str,
        *,
        timeout: float = 90.0,
        session: Session | None = None,
    ) -> None:
        super().__init__(backend="captioner", timeout=timeout, session=session)
        self._endpoint = endpoint.strip().rstrip("/")
        self._model = model.strip()

    @property
    def model(self) -> str:
        return self._model

    def caption(self, image: EncodedImage, prompt: str = CAPTION_PROMPT) -> str:
        text = self.generate(image, prompt)
        caption = text.strip()
        if not caption:
            raise ParseError("Captioner returned an empty description.")
        return caption

    def generate(self, image: EncodedImage, prompt: str, *, json_format: bool = False) -> str:
        payload: dict[str, Any] = {
            "model": self._model,
            "prompt": prompt,
            "images": [image.as_base64()],
            "stream": False,
        }
        if json_format:
            payload["format"] = "json"
        response = self._post(f"{self._endpoint}/api/generate", json_payload=payload)
        data = self._json_body(response)
        if "error" in data:
            raise NetworkError(f"Captioner backend error: {data['error']}")
        text = data.get("response")
        if not isinstance(text, str):
            raise ParseError("Captioner backend returned an unexpected payload.")
        return text

    # ----- Discovery helpers ----------------------------------------------

    def discover_vision_models(self) -> list[str]:
        """Return served models that appear to accept images."""
        try:
            models = self._fetch_model_metadata()
        except NetworkError as exc:
            logger.info("Unable to query captioner backend for models: %s", exc)
            return []
        return [name for name, details in models if is_vision_candidate(name, details)]

    def _fetch_model_metadata(self) -> list[tuple[str, dict[str, Any]]]:
        response = self._get(f"{self._endpoint}/api/tags")
        payload = self._json_body(response)
        models = payload.get("models")
        if not isinstance(models, list):
            return []
        results: list[tuple[str, dict[str, Any]]] = []
        for item in models:
            if not isinstance(item, dict):
                continue
            name = item.get("model") or item.get("name")
            if not isinstance(name, str):
                continue
            details = item.get("details")
            results.append((name, details if isinstance(details, dict) else {}))
        return results


def is_vision_candidate(name: str, details: dict[str, Any]) -> bool:
    families = details.get("families")
    if isinstance(families, (list, tuple)):
        lowered = " ".join(str(item).lower() for item in families)
        if any(keyword in lowered for keyword in _VISION_KEYWORDS):
            return True
    text = f"{name} {json.dumps(details, ensure_ascii=False)}".lower()
    return any(keyword in text for keyword in _VISION_KEYWORDS)
