"""Tests for the tag category database and resolver."""

from __future__ import annotations

import threading
from pathlib import Path

from tag_interrogator.models.base import TagCategory
from tag_interrogator.tags.categories import (
    TagCategoryDatabase,
    TagCategoryResolver,
    heuristic_category,
    parse_records,
)


def test_parse_records_maps_ids():
    table = parse_records(
        [
            "1girl,0,1234,alias",
            "some_artist,1,10,",
            "touhou,3,99",
            "hakurei_reimu,4,500,\"reimu,reimu_hakurei\"",
            "highres,5,1",
            "explicit,9,1",
            "mystery,7,1",
            "broken,abc",
            "",
            "lonely",
        ]
    )
    assert table["1girl"] is TagCategory.GENERAL
    assert table["some_artist"] is TagCategory.ARTIST
    assert table["touhou"] is TagCategory.COPYRIGHT
    assert table["hakurei_reimu"] is TagCategory.CHARACTER
    assert table["highres"] is TagCategory.META
    assert table["explicit"] is TagCategory.RATING
    assert table["mystery"] is TagCategory.GENERAL
    assert table["broken"] is TagCategory.GENERAL
    assert "lonely" not in table


def test_record_scenario_resolves_general():
    database = TagCategoryDatabase(lambda: ["1girl,0,1234,alias"])
    resolver = TagCategoryResolver(database)
    assert resolver.resolve("1girl") is TagCategory.GENERAL
    assert database.loaded is True
    assert resolver.is_known("1girl")


def test_resolver_keeps_unloaded_database():
    database = TagCategoryDatabase(lambda: ["hatsune_miku,4,100,"])
    assert len(database) == 0

    resolver = TagCategoryResolver(database)

    assert resolver.database is database
    assert resolver.resolve("hatsune_miku") is TagCategory.CHARACTER


def test_rating_heuristic_with_empty_database():
    resolver = TagCategoryResolver(TagCategoryDatabase())
    assert resolver.resolve("rating:explicit") is TagCategory.RATING
    assert resolver.resolve("nsfw") is TagCategory.RATING


def test_heuristic_order():
    assert heuristic_category("absurdres") is TagCategory.META
    assert heuristic_category("best_quality") is TagCategory.META
    assert heuristic_category("1girl") is TagCategory.GENERAL
    assert heuristic_category("blue_hair") is TagCategory.GENERAL


def test_database_category_wins_over_heuristics():
    database = TagCategoryDatabase(lambda: ["general,4,1"])
    resolver = TagCategoryResolver(database)
    assert resolver.resolve("general") is TagCategory.CHARACTER
    assert resolver.is_in_category("general", TagCategory.CHARACTER)
    assert not resolver.is_in_category("unknown", TagCategory.GENERAL)


def test_failed_load_is_not_retried():
    calls = []

    def broken():
        calls.append(1)
        raise OSError("missing")

    database = TagCategoryDatabase(broken)
    resolver = TagCategoryResolver(database)

    assert resolver.resolve("rating:safe") is TagCategory.RATING
    assert resolver.resolve("rating:safe") is TagCategory.RATING
    assert calls == [1]
    assert database.load_attempted is True
    assert database.loaded is False
    assert len(database) == 0


def test_lookups_during_load_use_heuristics_and_load_runs_once():
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_source():
        calls.append(1)
        started.set()
        release.wait(timeout=5)
        return ["rating:explicit,4,1"]

    database = TagCategoryDatabase(slow_source)
    resolver = TagCategoryResolver(database)
    loader = threading.Thread(target=database.ensure_loaded)
    loader.start()
    assert started.wait(timeout=5)

    # The table is still empty, so heuristics answer without waiting.
    assert resolver.resolve("rating:explicit") is TagCategory.RATING
    assert database.ensure_loaded() is False

    release.set()
    loader.join(timeout=5)

    assert calls == [1]
    assert database.loaded is True
    assert resolver.resolve("rating:explicit") is TagCategory.CHARACTER


def test_from_location_reads_files(tmp_path: Path):
    csv_path = tmp_path / "tags.csv"
    csv_path.write_text("long_hair,0,100\nsaber,4,50\n", encoding="utf-8")

    database = TagCategoryDatabase.from_location(str(csv_path))

    assert database.ensure_loaded() is True
    assert database.get("saber") is TagCategory.CHARACTER
    assert TagCategoryDatabase.from_location(None).ensure_loaded() is False


def test_from_location_missing_file_degrades(tmp_path: Path):
    database = TagCategoryDatabase.from_location(tmp_path / "nope.csv")
    resolver = TagCategoryResolver(database)
    assert resolver.resolve("masterpiece") is TagCategory.META
    assert database.loaded is False
