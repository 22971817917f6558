"""SQLAlchemy-backed record store over the ``listing_imports`` table."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from listing_importer.core.exceptions import RecordNotFoundError
from listing_importer.core.models.listing_import import ListingImport
from listing_importer.records.models import ImportRecord
from listing_importer.records.store import RecordStore, check_updatable, plain_changes

logger = logging.getLogger(__name__)


class SqlRecordStore(RecordStore):
    """Record store using one short-lived session per operation.

    Args:
        session_factory: Factory from
            :func:`~listing_importer.core.database.get_session_factory` or a
            test engine.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(self, record_id: str, target_url: str) -> ImportRecord:
        async with self._session_factory() as session:
            row = ListingImport(id=record_id, target_url=target_url, status="queued")
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return ImportRecord.model_validate(row)

    async def get(self, record_id: str) -> ImportRecord | None:
        async with self._session_factory() as session:
            row = await session.get(ListingImport, record_id)
            return ImportRecord.model_validate(row) if row is not None else None

    async def update(self, record_id: str, **changes: Any) -> ImportRecord:
        check_updatable(changes)
        async with self._session_factory() as session:
            row = await session.get(ListingImport, record_id)
            if row is None:
                raise RecordNotFoundError(record_id)
            for name, value in plain_changes(changes).items():
                setattr(row, name, value)
            await session.commit()
            await session.refresh(row)
            logger.debug("records: updated %s (%s)", record_id, ", ".join(sorted(changes)))
            return ImportRecord.model_validate(row)
