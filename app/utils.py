"""Utility helpers for the Action Varied add-on."""

from __future__ import annotations

from datetime import date, datetime, timezone


POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
BACKDROP_BASE_URL = "https://image.tmdb.org/t/p/w1280"

META_ID_PREFIX = "tmdb"


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(timezone.utc)


def parse_release_date(value: object) -> date | None:
    """Parse a TMDB ``YYYY-MM-DD`` release date, returning ``None`` if unusable."""

    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def release_year(value: str | None) -> str:
    """Return the year portion of a release date or ``"Unknown"``."""

    if not value:
        return "Unknown"
    return value.split("-", 1)[0] or "Unknown"


def build_image_url(path: str | None, base_url: str) -> str | None:
    if not path:
        return None
    if path.startswith("http"):
        return path
    return f"{base_url}{path}"


def build_meta_id(tmdb_id: int) -> str:
    return f"{META_ID_PREFIX}-{tmdb_id}"


def parse_meta_id(meta_id: str) -> int | None:
    """Extract the TMDB id from a ``tmdb-<id>`` meta identifier."""

    prefix, separator, suffix = (meta_id or "").strip().partition("-")
    if not separator or prefix != META_ID_PREFIX:
        return None
    try:
        return int(suffix)
    except ValueError:
        return None
