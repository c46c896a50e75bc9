"""Read-side queries answered purely from the cached state."""

from __future__ import annotations

import logging
from typing import Any

from ..models import CatalogSummary, MetadataView
from ..utils import parse_meta_id
from .cache_store import CacheStore

logger = logging.getLogger(__name__)


class CatalogQueryService:
    """Serves catalog searches and metadata lookups without network access."""

    def __init__(self, store: CacheStore):
        self._store = store

    def search_catalog(self, query: str | None = None) -> list[CatalogSummary]:
        """Return catalog summaries, optionally filtered by title substring."""

        entries = self._store.current().snapshot.entries
        logger.debug("Catalog cache has %s items", len(entries))

        needle = (query or "").casefold()
        if needle:
            entries = tuple(
                entry for entry in entries if needle in entry.title.casefold()
            )
            logger.debug("Filtered results for %r: %s", query, len(entries))

        return [entry.to_summary() for entry in entries]

    def get_metadata(self, meta_id: str) -> MetadataView | None:
        """Return the meta view for ``tmdb-<id>``, or ``None`` when unavailable."""

        tmdb_id = parse_meta_id(meta_id)
        if tmdb_id is None:
            logger.warning("Meta requested for unsupported id %r", meta_id)
            return None

        entry = self._store.current().metadata.lookup(tmdb_id)
        if entry is None:
            logger.warning("Meta not found for movie ID: %s", tmdb_id)
            return None
        if entry.record.failed:
            logger.warning("Meta request failed for movie ID: %s", tmdb_id)
            return None
        return entry.record.to_view(meta_id)

    def cache_status(self) -> dict[str, Any]:
        state = self._store.current()
        fetched_at = state.snapshot.fetched_at
        return {
            "fetchedAt": fetched_at.isoformat() if fetched_at else None,
            "catalogItems": len(state.snapshot.entries),
            "metaItems": len(state.metadata),
        }
