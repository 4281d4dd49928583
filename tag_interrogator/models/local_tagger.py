"""Client for a self-hosted WD14-style tag inference service."""

from __future__ import annotations

import logging
import math
from typing import Any

from requests import Session

from .base import EncodedImage, ParseError, Tag, TagCategory, canonical_tag_name
from .remote import RemoteClient

logger = logging.getLogger(__name__)


class LocalTaggerClient(RemoteClient):
    """Upload an image and read back ``{"tags": {name: score}}``."""

    def __init__(
        self,
        endpoint: str,
        *,
        threshold: float = 0.35,
        timeout: float = 90.0,
        session: Session | None = None,
    ) -> None:
        super().__init__(backend="local tagger", timeout=timeout, session=session)
        self._endpoint = endpoint.strip()
        self._threshold = threshold

    def predict(self, image: EncodedImage) -> list[Tag]:
        response = self._post(
            self._endpoint,
            params={"threshold": self._threshold},
            files={"file": (image.filename, image.data, image.mime_type)},
        )
        payload = self._json_body(response)
        tags = parse_tag_scores(payload.get("tags"))
        logger.debug("Local tagger returned %d tags.", len(tags))
        return tags


def parse_tag_scores(raw: Any) -> list[Tag]:
    """Turn a name to score mapping into ``general`` tags, in emission order."""
    if not isinstance(raw, dict):
        raise ParseError("Local tagger response is missing the 'tags' mapping.")
    tags: list[Tag] = []
    for name, score in raw.items():
        canonical = canonical_tag_name(str(name))
        if not canonical:
            continue
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise ParseError(f"Local tagger returned a non-numeric score for {name!r}.")
        try:
            value = float(score)
        except OverflowError as exc:
            raise ParseError(f"Local tagger returned an out of range score for {name!r}.") from exc
        if not math.isfinite(value):
            raise ParseError(f"Local tagger returned a non-finite score for {name!r}.")
        tags.append(Tag(name=canonical, score=value, category=TagCategory.GENERAL))
    return tags
