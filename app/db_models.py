"""SQLAlchemy ORM models backing the persistent cache snapshots."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base
from .utils import utcnow


CATALOG_SNAPSHOT = "catalog"
METADATA_SNAPSHOT = "metadata"


class CacheSnapshotRecord(Base):
    """One serialized cache structure, rewritten whole on every save."""

    __tablename__ = "cache_snapshots"

    name: Mapped[str] = mapped_column(String(32), primary_key=True)
    fetched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    payload: Mapped[dict[str, Any]] = mapped_column(JSON)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
