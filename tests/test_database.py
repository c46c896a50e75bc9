from __future__ import annotations

import asyncio

from sqlalchemy import create_engine, inspect

from app import db_models  # noqa: F401  registers the cache_snapshots table
from app.database import Database


def test_create_all_adds_cache_snapshot_table(tmp_path) -> None:
    """The snapshot table is created in a nested directory that did not exist."""

    database_path = tmp_path / "cache" / "action_varied.db"
    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(inspector_engine)
        columns = {column["name"] for column in inspector.get_columns("cache_snapshots")}
    finally:
        inspector_engine.dispose()

    assert columns == {"name", "fetched_at", "payload", "updated_at"}


def test_memory_database_needs_no_directory() -> None:
    database = Database("sqlite+aiosqlite:///:memory:")
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())
