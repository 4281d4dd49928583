"""Core data types and the error taxonomy shared by every backend."""

from __future__ import annotations

import base64
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable


class TagCategory(str, Enum):
    """Fixed taxonomy used for threshold filtering and grouping."""

    GENERAL = "general"
    ARTIST = "artist"
    COPYRIGHT = "copyright"
    CHARACTER = "character"
    META = "meta"
    RATING = "rating"


def canonical_tag_name(value: str) -> str:
    """Return the lowercase, underscored spelling of a tag name."""
    return "_".join(value.strip().lower().split())


@dataclass(frozen=True, slots=True)
class Tag:
    """A named, scored and categorised label describing image content."""

    name: str
    score: float
    category: TagCategory = TagCategory.GENERAL

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Tag name must not be empty.")
        score = float(self.score)
        if math.isnan(score):
            raise ValueError(f"Tag {self.name!r} has a NaN score.")
        object.__setattr__(self, "score", min(1.0, max(0.0, score)))
        object.__setattr__(self, "category", TagCategory(self.category))

    def as_dict(self) -> dict[str, float | str]:
        return {"name": self.name, "score": self.score, "category": self.category.value}


@dataclass(frozen=True, slots=True)
class InterrogationResult:
    """Raw output of a single interrogation call.

    ``tags`` keep the order in which the backend emitted them. ``warnings``
    records degraded branches so callers can tell the user what was skipped.
    """

    tags: tuple[Tag, ...] = ()
    natural_description: str | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def build(
        cls,
        tags: Iterable[Tag],
        natural_description: str | None = None,
        warnings: Iterable[str] = (),
    ) -> "InterrogationResult":
        return cls(
            tags=tuple(tags),
            natural_description=natural_description,
            warnings=tuple(warnings),
        )


@dataclass(frozen=True, slots=True)
class EncodedImage:
    """Transport-ready image payload."""

    data: bytes
    mime_type: str
    filename: str = "image"

    def as_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


class InterrogationError(RuntimeError):
    """Base class for failures surfaced to callers."""


class ConfigurationError(InterrogationError):
    """Raised when a required backend setting is missing or empty."""

    def __init__(self, field_name: str, message: str | None = None) -> None:
        self.field = field_name
        super().__init__(message or f"Missing required setting '{field_name}'.")


class NetworkError(InterrogationError):
    """Raised on transport failures or non-2xx responses."""


class ParseError(NetworkError):
    """Raised when a response body does not have the expected shape."""


class TotalFailure(NetworkError):
    """Raised when every branch of an interrogation failed."""

    def __init__(self, failures: dict[str, Exception]) -> None:
        self.failures = dict(failures)
        details = "; ".join(f"{name}: {exc}" for name, exc in self.failures.items())
        super().__init__(f"All interrogation branches failed ({details}).")
