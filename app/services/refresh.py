"""Refresh pipeline rebuilding the catalog and metadata caches from TMDB."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Sequence

from ..genres import QueryCombination
from ..models import (
    CacheState,
    CatalogEntry,
    CatalogSnapshot,
    MetadataEntry,
    MetadataTable,
)
from ..utils import utcnow
from .cache_store import CacheStore
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)


class RefreshPipeline:
    """Fetches every combination, then metadata for every entry, then publishes."""

    def __init__(
        self,
        client: TMDBClient,
        store: CacheStore,
        combinations: Sequence[QueryCombination],
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._client = client
        self._store = store
        self._combinations = tuple(combinations)
        self._clock = clock

    async def run(self) -> bool:
        """Run one refresh. Returns ``False`` when the run was abandoned."""

        logger.info("Updating catalog and meta cache...")
        try:
            state = await self._build_state(self._store.current())
        except Exception as exc:
            logger.exception("Error updating catalog and meta cache: %s", exc)
            return False

        self._store.swap(state)
        await self._store.save(state)
        logger.info(
            "Catalog and meta cache updated. Items: %s", len(state.snapshot.entries)
        )
        return True

    async def collect_entries(self) -> list[CatalogEntry]:
        """Return all discovered entries, newest release first.

        Combinations are not deduplicated against each other.
        """

        entries: list[CatalogEntry] = []
        for combination in self._combinations:
            entries.extend(await self._client.fetch_combination(combination))
        # list.sort is stable, including with reverse=True
        entries.sort(key=lambda entry: entry.released_on, reverse=True)
        logger.info("Total movies fetched: %s", len(entries))
        return entries

    async def _build_state(self, previous: CacheState) -> CacheState:
        entries = await self.collect_entries()
        snapshot = CatalogSnapshot(fetched_at=self._clock(), entries=tuple(entries))
        metadata = await self._fetch_metadata(snapshot, previous.metadata)
        return CacheState(snapshot=snapshot, metadata=metadata)

    async def _fetch_metadata(
        self, snapshot: CatalogSnapshot, existing: MetadataTable
    ) -> MetadataTable:
        updates: dict[int, MetadataEntry] = {}
        for entry in snapshot.entries:
            logger.debug("Fetching meta for movie ID: %s", entry.id)
            record = await self._client.fetch_item_metadata(entry.id)
            updates[entry.id] = MetadataEntry(fetched_at=self._clock(), record=record)
        return existing.merged(updates)
