"""Pydantic models describing cached catalog state and Stremio payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import (
    BACKDROP_BASE_URL,
    POSTER_BASE_URL,
    build_image_url,
    build_meta_id,
    parse_release_date,
    release_year,
)

ContentType = Literal["movie"]

NO_DESCRIPTION = "No description available"
UNKNOWN_TITLE = "Unknown Title"


class CatalogEntry(BaseModel):
    """One movie discovered through TMDB's discover endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    title: str = ""
    release_date: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    overview: str | None = None
    vote_average: float | None = None

    @property
    def released_on(self) -> date:
        parsed = parse_release_date(self.release_date)
        return parsed if parsed is not None else date.min

    def to_summary(self) -> "CatalogSummary":
        return CatalogSummary(
            id=build_meta_id(self.id),
            name=self.title,
            poster=build_image_url(self.poster_path, POSTER_BASE_URL),
            description=self.overview or NO_DESCRIPTION,
            release_info=release_year(self.release_date),
        )


class Genre(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    name: str


class MetadataRecord(BaseModel):
    """Full TMDB movie details, or a failure marker when ``error`` is set."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    release_date: str | None = None
    genres: list[Genre] = Field(default_factory=list)
    runtime: int | None = None
    vote_average: float | None = None
    error: str | None = None

    @field_validator("genres", mode="before")
    @classmethod
    def _drop_malformed_genres(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, list):
            return [
                genre
                for genre in value
                if isinstance(genre, Genre)
                or (isinstance(genre, dict) and genre.get("name"))
            ]
        return []

    @classmethod
    def failure(cls, tmdb_id: int, message: str) -> "MetadataRecord":
        return cls(id=tmdb_id, error=message)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_view(self, meta_id: str) -> "MetadataView":
        """Project the record into the Stremio meta shape."""

        return MetadataView(
            id=meta_id,
            name=self.title or UNKNOWN_TITLE,
            poster=build_image_url(self.poster_path, POSTER_BASE_URL),
            background=build_image_url(self.backdrop_path, BACKDROP_BASE_URL),
            description=self.overview or NO_DESCRIPTION,
            release_info=release_year(self.release_date),
            genre=[genre.name for genre in self.genres],
            runtime=f"{self.runtime} min" if self.runtime else "Unknown",
            rating=f"{self.vote_average:.1f}" if self.vote_average else "N/A",
        )


class CatalogSnapshot(BaseModel):
    """Timestamped, ordered catalog. ``fetched_at`` is ``None`` when empty."""

    model_config = ConfigDict(frozen=True)

    fetched_at: datetime | None = None
    entries: tuple[CatalogEntry, ...] = ()

    @classmethod
    def empty(cls) -> "CatalogSnapshot":
        return cls()

    def is_stale(self, now: datetime, max_age: timedelta) -> bool:
        if self.fetched_at is None:
            return True
        return now - self.fetched_at > max_age


class MetadataEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    fetched_at: datetime
    record: MetadataRecord


class MetadataTable(BaseModel):
    """Metadata keyed by TMDB id. Never mutated once published; see ``merged``."""

    model_config = ConfigDict(frozen=True)

    entries: dict[int, MetadataEntry] = Field(default_factory=dict)

    @classmethod
    def empty(cls) -> "MetadataTable":
        return cls()

    def lookup(self, tmdb_id: int) -> MetadataEntry | None:
        return self.entries.get(tmdb_id)

    def merged(self, updates: Mapping[int, MetadataEntry]) -> "MetadataTable":
        """Return a new table holding existing entries overlaid with ``updates``."""

        combined = dict(self.entries)
        combined.update(updates)
        return MetadataTable(entries=combined)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class CacheState:
    """The catalog snapshot and metadata table published together."""

    snapshot: CatalogSnapshot = field(default_factory=CatalogSnapshot.empty)
    metadata: MetadataTable = field(default_factory=MetadataTable.empty)


class CatalogSummary(BaseModel):
    """Catalog listing entry returned to Stremio."""

    id: str
    type: ContentType = "movie"
    name: str
    poster: str | None = None
    description: str = NO_DESCRIPTION
    release_info: str = Field(default="Unknown", serialization_alias="releaseInfo")

    def to_stremio(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class MetadataView(BaseModel):
    """Stremio meta object for a single movie."""

    id: str
    type: ContentType = "movie"
    name: str
    poster: str | None = None
    background: str | None = None
    description: str = NO_DESCRIPTION
    release_info: str = Field(default="Unknown", serialization_alias="releaseInfo")
    genre: list[str] = Field(default_factory=list)
    runtime: str = "Unknown"
    rating: str = "N/A"

    def to_stremio(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
