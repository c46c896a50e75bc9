"""Client for TMDB discovery and movie detail lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..genres import QueryCombination
from ..models import CatalogEntry, MetadataRecord
from ..utils import parse_release_date

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """A single TMDB request failed or returned an unusable payload."""


@dataclass(slots=True)
class PageResult:
    """Entries from one discover page and the total page count TMDB reports."""

    entries: list[CatalogEntry]
    total_pages: int


class TMDBClient:
    """Stateless wrapper around the TMDB endpoints the refresh pipeline needs."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        if not settings.tmdb_api_key:
            raise ValueError("TMDB API key is required when initialising TMDBClient")
        self._settings = settings
        self._client = http_client

    async def fetch_page(self, combination: QueryCombination, page: int) -> PageResult:
        """Fetch one page of discover results for ``combination``."""

        settings = self._settings
        params: dict[str, Any] = {
            "api_key": settings.tmdb_api_key,
            "include_adult": "false",
            "include_video": "false",
            "language": settings.language,
            "page": page,
            "sort_by": "primary_release_date.desc",
            "primary_release_date.gte": settings.release_date_gte,
            "primary_release_date.lte": settings.release_date_lte,
            "vote_average.gte": settings.min_score,
            "with_genres": combination.with_genres,
            "with_original_language": settings.language,
        }
        if settings.excluded_genres:
            params["without_genres"] = ",".join(
                str(genre_id) for genre_id in settings.excluded_genres
            )

        logger.debug(
            "Requesting TMDB discover page %s for genre combination %s",
            page,
            combination,
        )
        data = await self._get_json("/discover/movie", params)
        results = data.get("results")
        if not isinstance(results, list):
            raise FetchError(
                f"Discover response for {combination} page {page} has no results list"
            )

        entries: list[CatalogEntry] = []
        for result in results:
            if not isinstance(result, dict):
                continue
            try:
                entries.append(CatalogEntry.model_validate(result))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed TMDB result on page %s for %s: %s",
                    page,
                    combination,
                    exc,
                )

        total_pages = data.get("total_pages")
        if not isinstance(total_pages, int) or total_pages < 0:
            total_pages = 1
        return PageResult(entries=entries, total_pages=total_pages)

    async def fetch_combination(self, combination: QueryCombination) -> list[CatalogEntry]:
        """Page through discover results for one combination.

        Pagination stops at the configured page cap, the reported page count,
        or the first failing page. Entries gathered before a failure are kept.
        """

        collected: list[CatalogEntry] = []
        page = 1
        total_pages = 1
        while page <= self._settings.page_cap and page <= total_pages:
            try:
                result = await self.fetch_page(combination, page)
            except FetchError as exc:
                logger.warning(
                    "Error fetching movies for genre combination %s (page %s): %s",
                    combination,
                    page,
                    exc,
                )
                break
            total_pages = result.total_pages
            valid = [
                entry
                for entry in result.entries
                if parse_release_date(entry.release_date) is not None
            ]
            logger.debug(
                "Page %s/%s fetched for genre combination %s. Results: %s",
                page,
                total_pages,
                combination,
                len(valid),
            )
            collected.extend(valid)
            page += 1
        return collected

    async def fetch_item_metadata(self, tmdb_id: int) -> MetadataRecord:
        """Fetch movie details, returning a failure marker instead of raising."""

        try:
            data = await self._get_json(
                f"/movie/{tmdb_id}", {"api_key": self._settings.tmdb_api_key}
            )
            return MetadataRecord.model_validate({**data, "id": tmdb_id})
        except (FetchError, ValidationError) as exc:
            logger.warning("Error fetching metadata for movie ID %s: %s", tmdb_id, exc)
            return MetadataRecord.failure(tmdb_id, "Failed to fetch movie data")

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"TMDB returned {exc.response.status_code} for {path}"
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"TMDB request to {path} failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise FetchError(f"TMDB returned non-JSON payload for {path}") from exc
        if not isinstance(data, dict):
            raise FetchError(f"Unexpected TMDB response structure for {path}")
        return data
