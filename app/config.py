"""Application configuration models."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, HttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .genres import (
    DEFAULT_EXCLUDED_GENRES,
    DEFAULT_GENRE_COMBINATIONS,
    QueryCombination,
    parse_genre_ids,
)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Action Varied", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=8082, alias="PORT")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_BASE_URL"
    )

    start_year: int = Field(default=2015, alias="START_YEAR", ge=1874, le=2100)
    end_year: int = Field(default=2024, alias="END_YEAR", ge=1874, le=2100)
    min_score: float = Field(default=4.0, alias="MIN_SCORE", ge=0, le=10)
    page_cap: int = Field(default=5, alias="NUM_PAGES", ge=1, le=500)
    excluded_genres: Annotated[tuple[int, ...], NoDecode] = Field(
        default=DEFAULT_EXCLUDED_GENRES, alias="EXCLUDED_GENRES"
    )
    genre_combinations: Annotated[tuple[QueryCombination, ...], NoDecode] = Field(
        default=DEFAULT_GENRE_COMBINATIONS, alias="GENRE_COMBINATIONS"
    )
    language: str = Field(default="en", alias="LANGUAGE", min_length=2)

    refresh_hour: int = Field(default=0, alias="REFRESH_HOUR", ge=0, le=23)
    refresh_minute: int = Field(default=0, alias="REFRESH_MINUTE", ge=0, le=59)
    cache_max_age_hours: float = Field(
        default=24, alias="CACHE_MAX_AGE_HOURS", gt=0
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./action_varied.db", alias="DATABASE_URL"
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: str | None = Field(default="addon.log", alias="LOG_FILE")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("excluded_genres", mode="before")
    @classmethod
    def _parse_excluded_genres(cls, value: object) -> tuple[int, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(parse_genre_ids(value.split(",")))
        if isinstance(value, Iterable):
            return tuple(parse_genre_ids(value))
        raise TypeError("EXCLUDED_GENRES must be a string or iterable of ids")

    @field_validator("genre_combinations", mode="before")
    @classmethod
    def _parse_genre_combinations(
        cls, value: object
    ) -> tuple[QueryCombination, ...]:
        """Accept ``"28,12;14|35"`` style strings or iterables of combinations."""

        if value is None:
            return DEFAULT_GENRE_COMBINATIONS
        if isinstance(value, str):
            raw_values: list[object] = [part for part in value.split(";")]
        elif isinstance(value, Iterable):
            raw_values = list(value)
        else:
            raise TypeError(
                "GENRE_COMBINATIONS must be a string or iterable of combinations"
            )

        combinations: list[QueryCombination] = []
        for entry in raw_values:
            if isinstance(entry, QueryCombination):
                combinations.append(entry)
                continue
            text = str(entry).strip()
            if not text:
                continue
            combinations.append(QueryCombination.parse(text))
        if not combinations:
            return DEFAULT_GENRE_COMBINATIONS
        return tuple(combinations)

    @field_validator("log_file", mode="before")
    @classmethod
    def _strip_blank_log_file(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @model_validator(mode="after")
    def _check_year_range(self) -> "Settings":
        if self.end_year < self.start_year:
            raise ValueError("END_YEAR must not be earlier than START_YEAR")
        return self

    @property
    def release_date_gte(self) -> str:
        return f"{self.start_year}-01-01"

    @property
    def release_date_lte(self) -> str:
        return f"{self.end_year}-12-31"

    @property
    def cache_max_age(self) -> timedelta:
        """Age after which a cached snapshot warrants an immediate refresh."""

        return timedelta(hours=self.cache_max_age_hours)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
