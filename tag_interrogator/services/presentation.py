"""Turn raw interrogation output into an ordered, display-ready tag list."""

from __future__ import annotations

import random
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..models.base import InterrogationResult, Tag, TagCategory

DEFAULT_THRESHOLD = 0.5
EXPORT_SEPARATOR = ", "


@dataclass(slots=True)
class TaggingSettings:
    """Display settings applied to a result at render time."""

    thresholds: Mapping[TagCategory, float] = field(default_factory=dict)
    top_k: int = 30
    randomize: bool = False
    remove_underscores: bool = False

    def __post_init__(self) -> None:
        if self.top_k < 1:
            raise ValueError("top_k must be a positive integer.")
        normalised: dict[TagCategory, float] = {}
        for category, value in self.thresholds.items():
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Threshold for {category} must be within [0, 1].")
            normalised[TagCategory(category)] = float(value)
        self.thresholds = normalised

    def threshold_for(self, category: TagCategory) -> float:
        return self.thresholds.get(category, DEFAULT_THRESHOLD)


@dataclass(frozen=True, slots=True)
class DisplayTag:
    """A surviving tag together with the name shown to the user."""

    tag: Tag
    display_name: str

    @property
    def name(self) -> str:
        return self.tag.name

    @property
    def score(self) -> float:
        return self.tag.score

    @property
    def category(self) -> TagCategory:
        return self.tag.category

    def as_dict(self) -> dict[str, float | str]:
        return {**self.tag.as_dict(), "display_name": self.display_name}


@dataclass(frozen=True, slots=True)
class Presentation:
    tags: tuple[DisplayTag, ...]
    export: str
    natural_description: str | None = None


def select_tags(tags: tuple[Tag, ...] | list[Tag], settings: TaggingSettings) -> list[Tag]:
    """Filter by category threshold, sort by score and keep the top ``top_k``."""
    kept = [tag for tag in tags if tag.score >= settings.threshold_for(tag.category)]
    # sorted() is stable, so equal scores keep their emission order.
    kept = sorted(kept, key=lambda tag: tag.score, reverse=True)
    return kept[: settings.top_k]


def display_name(name: str, *, remove_underscores: bool) -> str:
    return name.replace("_", " ") if remove_underscores else name


def present(
    result: InterrogationResult,
    settings: TaggingSettings,
    *,
    rng: random.Random | None = None,
) -> Presentation:
    """Filter, sort, truncate, optionally shuffle, then format ``result``.

    Shuffling only reorders the tags that survived truncation.
    """
    selected = select_tags(result.tags, settings)
    if settings.randomize:
        (rng or random.Random()).shuffle(selected)
    strip = settings.remove_underscores
    display = tuple(
        DisplayTag(tag=tag, display_name=display_name(tag.name, remove_underscores=strip))
        for tag in selected
    )
    export = EXPORT_SEPARATOR.join(item.display_name for item in display)
    return Presentation(tags=display, export=export, natural_description=result.natural_description)
