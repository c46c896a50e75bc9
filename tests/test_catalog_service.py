"""Query service behaviour over cached state."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, cast

import pytest

from app.models import (
    CacheState,
    CatalogEntry,
    CatalogSnapshot,
    MetadataEntry,
    MetadataRecord,
    MetadataTable,
)
from app.services.cache_store import CacheStore
from app.services.catalog_service import CatalogQueryService

FETCHED_AT = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _service(state: CacheState | None = None) -> CatalogQueryService:
    store = CacheStore(cast(Any, None))
    if state is not None:
        store.swap(state)
    return CatalogQueryService(store)


def _catalog_state() -> CacheState:
    snapshot = CatalogSnapshot(
        fetched_at=FETCHED_AT,
        entries=(
            CatalogEntry(
                id=10138,
                title="Iron Man",
                release_date="2008-04-30",
                poster_path="/ironman.jpg",
                overview="A billionaire builds a suit.",
            ),
            CatalogEntry(id=9659, title="Mad Max", release_date="1979-04-12"),
        ),
    )
    metadata = MetadataTable(
        entries={
            10138: MetadataEntry(
                fetched_at=FETCHED_AT,
                record=MetadataRecord(
                    id=10138,
                    title="Iron Man",
                    overview="A billionaire builds a suit.",
                    poster_path="/ironman.jpg",
                    backdrop_path="/ironman-bg.jpg",
                    release_date="2008-04-30",
                    genres=[{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
                    runtime=126,
                    vote_average=7.649,
                ),
            ),
            9659: MetadataEntry(
                fetched_at=FETCHED_AT,
                record=MetadataRecord.failure(9659, "Failed to fetch movie data"),
            ),
        }
    )
    return CacheState(snapshot=snapshot, metadata=metadata)


@pytest.mark.parametrize("query", [None, ""])
def test_search_without_query_returns_everything(query: str | None) -> None:
    results = _service(_catalog_state()).search_catalog(query)

    assert [summary.name for summary in results] == ["Iron Man", "Mad Max"]


def test_search_filters_titles_case_insensitively() -> None:
    results = _service(_catalog_state()).search_catalog("MAN")

    assert [summary.name for summary in results] == ["Iron Man"]


def test_search_on_empty_cache_returns_empty_list() -> None:
    assert _service().search_catalog("anything") == []
    assert _service().search_catalog() == []


def test_search_builds_stremio_summaries() -> None:
    iron_man, mad_max = _service(_catalog_state()).search_catalog()

    assert iron_man.to_stremio() == {
        "id": "tmdb-10138",
        "type": "movie",
        "name": "Iron Man",
        "poster": "https://image.tmdb.org/t/p/w500/ironman.jpg",
        "description": "A billionaire builds a suit.",
        "releaseInfo": "2008",
    }
    assert mad_max.poster is None
    assert mad_max.description == "No description available"
    assert mad_max.release_info == "1979"


def test_get_metadata_projects_full_view() -> None:
    view = _service(_catalog_state()).get_metadata("tmdb-10138")

    assert view is not None
    assert view.to_stremio() == {
        "id": "tmdb-10138",
        "type": "movie",
        "name": "Iron Man",
        "poster": "https://image.tmdb.org/t/p/w500/ironman.jpg",
        "background": "https://image.tmdb.org/t/p/w1280/ironman-bg.jpg",
        "description": "A billionaire builds a suit.",
        "releaseInfo": "2008",
        "genre": ["Action", "Science Fiction"],
        "runtime": "126 min",
        "rating": "7.6",
    }


def test_failure_marker_is_indistinguishable_from_missing() -> None:
    service = _service(_catalog_state())

    assert service.get_metadata("tmdb-9659") is None
    assert service.get_metadata("tmdb-1") is None


@pytest.mark.parametrize("meta_id", ["tt0371746", "tmdb-", "tmdb-abc", "", "imdb-10138"])
def test_get_metadata_rejects_unparsable_ids(meta_id: str) -> None:
    assert _service(_catalog_state()).get_metadata(meta_id) is None


def test_cache_status_reports_counts() -> None:
    status = _service(_catalog_state()).cache_status()

    assert status == {
        "fetchedAt": "2024-06-01T00:00:00+00:00",
        "catalogItems": 2,
        "metaItems": 2,
    }
    assert _service().cache_status()["fetchedAt"] is None
