"""Tag name to category lookup backed by a Danbooru-style CSV export."""

from __future__ import annotations

import csv
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

import requests

from ..models.base import TagCategory

logger = logging.getLogger(__name__)

CATEGORY_IDS: Mapping[int, TagCategory] = MappingProxyType(
    {
        0: TagCategory.GENERAL,
        1: TagCategory.ARTIST,
        3: TagCategory.COPYRIGHT,
        4: TagCategory.CHARACTER,
        5: TagCategory.META,
        9: TagCategory.RATING,
    }
)

RATING_TOKENS = frozenset({"general", "safe", "questionable", "explicit", "sensitive", "nsfw"})
META_TOKENS = frozenset(
    {
        "highres",
        "absurdres",
        "4k",
        "8k",
        "masterpiece",
        "best quality",
        "comic",
        "monochrome",
        "greyscale",
        "lowres",
        "bad quality",
        "worst quality",
    }
)
SUBJECT_COUNT_TOKENS = frozenset(
    {"1girl", "1boy", "2girls", "2boys", "multiple girls", "multiple boys"}
)

LineSource = Callable[[], Iterable[str]]


def parse_records(lines: Iterable[str]) -> dict[str, TagCategory]:
    """Parse ``name,category_id,...`` records into a lookup table.

    The export has no header. Blank lines and rows with fewer than two fields
    are skipped; unknown or non-numeric ids map to ``general``.
    """
    table: dict[str, TagCategory] = {}
    for row in csv.reader(line.strip() for line in lines):
        if len(row) < 2 or not row[0]:
            continue
        try:
            category_id = int(row[1])
        except ValueError:
            category_id = -1
        table[row[0]] = CATEGORY_IDS.get(category_id, TagCategory.GENERAL)
    return table


def file_source(path: Path) -> LineSource:
    def _read() -> Iterable[str]:
        with path.open("r", encoding="utf-8") as handle:
            return handle.read().splitlines()

    return _read


def url_source(url: str, *, timeout: float = 30.0) -> LineSource:
    def _read() -> Iterable[str]:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        return response.text.splitlines()

    return _read


def source_from_location(location: str | Path) -> LineSource:
    """Pick a reader for a filesystem path or an HTTP(S) URL."""
    text = str(location)
    if text.startswith(("http://", "https://")):
        return url_source(text)
    return file_source(Path(text).expanduser())


class TagCategoryDatabase:
    """Read-only name to category table, loaded at most once.

    The table is empty until :meth:`ensure_loaded` finishes. Only one load
    ever runs; callers that arrive while it is in flight do not wait and see
    the empty table. A failed load is final.
    """

    def __init__(self, source: LineSource | None = None) -> None:
        self._source = source
        self._entries: Mapping[str, TagCategory] = MappingProxyType({})
        self._load_lock = threading.Lock()
        self._load_attempted = False
        self._loaded = False

    @classmethod
    def from_location(cls, location: str | Path | None) -> "TagCategoryDatabase":
        if location is None or not str(location).strip():
            return cls()
        return cls(source_from_location(location))

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def load_attempted(self) -> bool:
        return self._load_attempted

    def __len__(self) -> int:
        return len(self._entries)

    def ensure_loaded(self) -> bool:
        """Load the table if nobody has tried yet. Returns ``loaded``."""
        if self._load_attempted:
            return self._loaded
        if not self._load_lock.acquire(blocking=False):
            return self._loaded
        try:
            if self._load_attempted:
                return self._loaded
            self._load()
            return self._loaded
        finally:
            self._load_attempted = True
            self._load_lock.release()

    def _load(self) -> None:
        if self._source is None:
            logger.debug("No tag database configured; using heuristics only.")
            return
        try:
            table = parse_records(self._source())
        except Exception:
            logger.exception("Failed to load tag database; falling back to heuristics.")
            return
        self._entries = MappingProxyType(table)
        self._loaded = True
        logger.info("Loaded %d tags into the category database.", len(table))

    def get(self, name: str) -> TagCategory | None:
        return self._entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._entries


class TagCategoryResolver:
    """Map tag names to categories using the database, then heuristics."""

    def __init__(self, database: TagCategoryDatabase | None = None) -> None:
        self._database = database if database is not None else TagCategoryDatabase()

    @property
    def database(self) -> TagCategoryDatabase:
        return self._database

    def lookup(self, name: str) -> TagCategory | None:
        """Return the database category for ``name`` or None."""
        self._database.ensure_loaded()
        return self._database.get(name)

    def resolve(self, name: str) -> TagCategory:
        category = self.lookup(name)
        if category is not None:
            return category
        return heuristic_category(name)

    def is_known(self, name: str) -> bool:
        return self.lookup(name) is not None

    def is_in_category(self, name: str, category: TagCategory) -> bool:
        return self.lookup(name) == category


def heuristic_category(name: str) -> TagCategory:
    """Best-effort category for names the database does not know."""
    spaced = name.replace("_", " ")
    if name.startswith("rating:") or name in RATING_TOKENS:
        return TagCategory.RATING
    if name in META_TOKENS or spaced in META_TOKENS:
        return TagCategory.META
    if name in SUBJECT_COUNT_TOKENS or spaced in SUBJECT_COUNT_TOKENS:
        return TagCategory.GENERAL
    return TagCategory.GENERAL
