"""In-memory cache state with best-effort durable snapshots."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import Text, select, type_coerce
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import CATALOG_SNAPSHOT, METADATA_SNAPSHOT, CacheSnapshotRecord
from ..models import CacheState, CatalogSnapshot, MetadataTable

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class StorageError(Exception):
    """Reading or writing the durable snapshots failed."""


class CacheStore:
    """Owns the published ``CacheState`` and mirrors it to the database.

    The in-memory state is authoritative for reads. ``swap`` replaces it with
    a single reference assignment so readers observe either the previous or
    the next pair, never a mix of both.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._state = CacheState()

    def current(self) -> CacheState:
        return self._state

    def swap(self, state: CacheState) -> None:
        self._state = state

    async def load(self) -> CacheState:
        """Populate the in-memory state from storage, falling back to empty."""

        try:
            records = await self._read_records()
        except StorageError as exc:
            logger.info("No usable cache snapshots found (%s). Starting empty.", exc)
            records = {}

        snapshot = self._decode(
            CATALOG_SNAPSHOT,
            records.get(CATALOG_SNAPSHOT),
            CatalogSnapshot,
            CatalogSnapshot.empty,
        )
        metadata = self._decode(
            METADATA_SNAPSHOT,
            records.get(METADATA_SNAPSHOT),
            MetadataTable,
            MetadataTable.empty,
        )
        state = CacheState(snapshot=snapshot, metadata=metadata)
        self.swap(state)
        logger.debug(
            "Cache loaded. Catalog items: %s, meta items: %s",
            len(snapshot.entries),
            len(metadata),
        )
        return state

    async def save(self, state: CacheState | None = None) -> bool:
        """Persist ``state`` (or the current state); report failure via ``False``."""

        target = state if state is not None else self._state
        try:
            await self._write_records(target)
        except StorageError as exc:
            logger.error("Error saving cache: %s", exc)
            return False
        logger.debug("Cache saved successfully")
        return True

    async def _read_records(self) -> dict[str, str | None]:
        """Return each snapshot's raw JSON text, keyed by snapshot name.

        Payloads are read as text so a corrupt row is decoded, and rejected,
        on its own in ``_decode`` without failing the whole query.
        """

        statement = select(
            CacheSnapshotRecord.name,
            type_coerce(CacheSnapshotRecord.payload, Text),
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                rows = result.all()
        except SQLAlchemyError as exc:
            raise StorageError(f"unable to read cache snapshots: {exc}") from exc
        return {name: payload for name, payload in rows}

    async def _write_records(self, state: CacheState) -> None:
        snapshot = state.snapshot
        rows = (
            CacheSnapshotRecord(
                name=CATALOG_SNAPSHOT,
                fetched_at=snapshot.fetched_at,
                payload=snapshot.model_dump(mode="json"),
            ),
            CacheSnapshotRecord(
                name=METADATA_SNAPSHOT,
                fetched_at=snapshot.fetched_at,
                payload=state.metadata.model_dump(mode="json"),
            ),
        )
        try:
            async with self._session_factory() as session:
                for row in rows:
                    await session.merge(row)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"unable to write cache snapshots: {exc}") from exc

    @staticmethod
    def _decode(
        name: str,
        raw_payload: str | None,
        model: type[ModelT],
        empty: Callable[[], ModelT],
    ) -> ModelT:
        if raw_payload is None:
            return empty()
        try:
            payload: Any = json.loads(raw_payload)
            return model.model_validate(payload)
        except (ValueError, ValidationError) as exc:
            logger.warning(
                "Stored %s snapshot could not be decoded, starting empty: %s",
                name,
                exc,
            )
            return empty()
