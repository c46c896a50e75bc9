from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from app.models import (
    CatalogEntry,
    CatalogSnapshot,
    MetadataEntry,
    MetadataRecord,
    MetadataTable,
)

NOW = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)


def test_snapshot_staleness() -> None:
    max_age = timedelta(hours=24)

    assert CatalogSnapshot.empty().is_stale(NOW, max_age) is True
    assert CatalogSnapshot(fetched_at=NOW - timedelta(hours=25)).is_stale(NOW, max_age) is True
    assert CatalogSnapshot(fetched_at=NOW - timedelta(hours=23)).is_stale(NOW, max_age) is False


def test_catalog_entry_ignores_unknown_fields() -> None:
    entry = CatalogEntry.model_validate(
        {
            "id": 1,
            "title": "Dune",
            "release_date": "2021-10-22",
            "genre_ids": [878, 12],
            "popularity": 123.4,
        }
    )

    assert entry.released_on == date(2021, 10, 22)


def test_metadata_view_defaults() -> None:
    view = MetadataRecord(id=5, vote_average=0, runtime=None).to_view("tmdb-5")

    assert view.name == "Unknown Title"
    assert view.poster is None
    assert view.background is None
    assert view.description == "No description available"
    assert view.release_info == "Unknown"
    assert view.genre == []
    assert view.runtime == "Unknown"
    assert view.rating == "N/A"


def test_metadata_record_drops_malformed_genres() -> None:
    record = MetadataRecord.model_validate(
        {"id": 5, "genres": [{"id": 28, "name": "Action"}, {"id": 12}, "Comedy"]}
    )

    assert [genre.name for genre in record.genres] == ["Action"]


def test_rating_is_rounded_to_one_decimal() -> None:
    assert MetadataRecord(id=5, vote_average=6.25).to_view("tmdb-5").rating == "6.2"
    assert MetadataRecord(id=5, vote_average=8).to_view("tmdb-5").rating == "8.0"


def test_merged_table_is_a_new_object() -> None:
    entry = MetadataEntry(fetched_at=NOW, record=MetadataRecord(id=1, title="One"))
    table = MetadataTable(entries={1: entry})
    replacement = MetadataEntry(fetched_at=NOW, record=MetadataRecord(id=1, title="Uno"))

    merged = table.merged({1: replacement, 2: entry})

    assert merged is not table
    assert table.lookup(1).record.title == "One"
    assert merged.lookup(1).record.title == "Uno"
    assert len(merged) == 2
