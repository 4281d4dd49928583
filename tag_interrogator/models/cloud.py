"""Structured tagging and captioning through the Gemini REST API."""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from requests import Session

from ..tags.categories import TagCategoryResolver
from .backends import CloudBackend
from .base import (
    EncodedImage,
    InterrogationResult,
    ParseError,
    Tag,
    TagCategory,
    canonical_tag_name,
)
from .remote import RemoteClient

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = "You are an expert Danbooru tagger."
CAPTION_PROMPT = (
    "Generate a detailed, natural language description of this image suitable for use "
    "as a prompt for an image generation model (like Stable Diffusion)."
)

# The model may not assign ``artist``; that category only comes from the database.
MODEL_CATEGORIES: tuple[str, ...] = tuple(
    category.value for category in TagCategory if category is not TagCategory.ARTIST
)

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "tags": {
            "type": "ARRAY",
            "description": "A list of strict Danbooru-wiki tags describing the image.",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "score": {"type": "NUMBER"},
                    "category": {"type": "STRING", "enum": list(MODEL_CATEGORIES)},
                },
                "required": ["name", "score", "category"],
            },
        },
    },
    "required": ["tags"],
}


def build_interrogation_prompt() -> str:
    categories = ", ".join(f"'{value}'" for value in MODEL_CATEGORIES)
    instructions = [
        "Analyze this image for Stable Diffusion tagging using strict Danbooru standards.",
        "Use ONLY tags that exist in the Danbooru/Gelbooru wiki.",
        "Write every tag in lowercase with underscores instead of spaces.",
        f"Categorize each tag as one of {categories}.",
        "Give each tag a confidence score between 0 and 1.",
        "Cover hair colour, length and style; eye colour and shape; ears, horns and wings; "
        "clothing, legwear and pose.",
        "Always include exactly one rating tag from 'rating:general', 'rating:sensitive', "
        "'rating:questionable' or 'rating:explicit'.",
        "Always include subject count tags such as 1girl or 1boy when people are present.",
    ]
    return " ".join(instructions)


class CloudVisionClient(RemoteClient):
    """One-call interrogation against a hosted multimodal model."""

    def __init__(
        self,
        backend: CloudBackend,
        *,
        resolver: TagCategoryResolver | None = None,
        session: Session | None = None,
    ) -> None:
        super().__init__(backend="cloud", timeout=backend.timeout, session=session)
        self._config = backend
        self._resolver = resolver if resolver is not None else TagCategoryResolver()

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-goog-api-key": self._config.api_key}

    def _endpoint(self, model: str) -> str:
        return f"{self._config.base_url.rstrip('/')}/models/{model}:generateContent"

    def interrogate(self, image: EncodedImage) -> InterrogationResult:
        payload = {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [
                {
                    "parts": [
                        {"inline_data": {"mime_type": image.mime_type, "data": image.as_base64()}},
                        {"text": build_interrogation_prompt()},
                    ]
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        response = self._post(self._endpoint(self._config.tag_model), json_payload=payload)
        try:
            text = response_text(self._json_body(response))
            tags, skipped = self._parse_tags(text)
        except ParseError as exc:
            logger.warning("Discarding malformed cloud output: %s", exc)
            return InterrogationResult.build([], warnings=[f"Cloud output was malformed: {exc}"])

        warnings = []
        if skipped:
            warnings.append(f"Skipped {skipped} malformed tag entries.")
        return InterrogationResult.build(tags, warnings=warnings)

    def caption(self, image: EncodedImage) -> str:
        payload = {
            "contents": [
                {
                    "parts": [
                        {"inline_data": {"mime_type": image.mime_type, "data": image.as_base64()}},
                        {"text": CAPTION_PROMPT},
                    ]
                }
            ],
        }
        response = self._post(self._endpoint(self._config.caption_model), json_payload=payload)
        caption = response_text(self._json_body(response)).strip()
        if not caption:
            raise ParseError("Cloud model returned an empty description.")
        return caption

    # ----- Response handling -----------------------------------------------

    def _parse_tags(self, text: str) -> tuple[list[Tag], int]:
        entries = decode_tag_entries(text)
        tags: list[Tag] = []
        skipped = 0
        for entry in entries:
            tag = self._entry_to_tag(entry)
            if tag is None:
                skipped += 1
                continue
            tags.append(tag)
        return tags, skipped

    def _entry_to_tag(self, entry: Any) -> Tag | None:
        if not isinstance(entry, dict):
            return None
        name = entry.get("name")
        score = entry.get("score")
        if not isinstance(name, str) or not canonical_tag_name(name):
            return None
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            return None
        try:
            value = float(score)
        except OverflowError:
            return None
        if not math.isfinite(value):
            return None
        canonical = canonical_tag_name(name)
        return Tag(name=canonical, score=value, category=self._categorize(canonical, entry))

    def _categorize(self, name: str, entry: dict[str, Any]) -> TagCategory:
        known = self._resolver.lookup(name)
        if known is not None:
            return known
        raw = entry.get("category")
        if isinstance(raw, str):
            try:
                return TagCategory(raw.strip().lower())
            except ValueError:
                pass
        return self._resolver.resolve(name)


def response_text(payload: dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise ParseError("Response contains no candidates.")
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise ParseError("Response candidate has no content parts.")
    texts = [
        part["text"]
        for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    ]
    if not texts:
        raise ParseError("Response candidate has no text.")
    return "".join(texts)


def decode_tag_entries(text: str) -> list[Any]:
    """Decode ``{"tags": [...]}`` or a bare array from model output."""
    cleaned = strip_markdown(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ParseError(f"non-JSON output: {cleaned[:80]!r}") from exc
    if isinstance(data, dict):
        data = data.get("tags")
    if not isinstance(data, list):
        raise ParseError("expected an array of tags")
    return data


def strip_markdown(text: str) -> str:
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    parts = stripped.split("```")
    # The second segment holds the payload, possibly after a language tag.
    if len(parts) < 3:
        return stripped
    candidate = parts[1]
    if "\n" in candidate:
        _, remainder = candidate.split("\n", 1)
        return remainder.strip()
    return candidate.strip()
