"""Record store interface and the in-memory implementation.

The worker only ever needs three things from persistence: read a record,
create one, and update a handful of fields.  :class:`RecordStore` captures
that; :class:`~listing_importer.records.sql_store.SqlRecordStore` backs it
with the ``listing_imports`` table.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from listing_importer.core.exceptions import RecordNotFoundError
from listing_importer.records.models import UPDATABLE_FIELDS, ImportRecord, RecordStatus, utc_now


def check_updatable(changes: dict[str, Any]) -> None:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update record fields: {', '.join(sorted(unknown))}")


def plain_changes(changes: dict[str, Any]) -> dict[str, Any]:
    status = changes.get("status")
    if isinstance(status, RecordStatus):
        changes = {**changes, "status": status.value}
    return changes


class RecordStore(ABC):
    """Persistence for :class:`ImportRecord`."""

    @abstractmethod
    async def create(self, record_id: str, target_url: str) -> ImportRecord:
        """Insert a new ``queued`` record."""

    @abstractmethod
    async def get(self, record_id: str) -> ImportRecord | None:
        """Return the record, or ``None`` if it does not exist."""

    @abstractmethod
    async def update(self, record_id: str, **changes: Any) -> ImportRecord:
        """Apply *changes* and refresh ``updated_at``.

        Raises:
            RecordNotFoundError: If the record does not exist.
            ValueError: If *changes* names a field that is not updatable.
        """

    async def close(self) -> None:
        return None


class InMemoryRecordStore(RecordStore):
    """Dict-backed store for tests and single-process development."""

    def __init__(self) -> None:
        self._records: dict[str, ImportRecord] = {}
        self._lock = asyncio.Lock()

    async def create(self, record_id: str, target_url: str) -> ImportRecord:
        record = ImportRecord(id=record_id, target_url=target_url)
        async with self._lock:
            self._records[record_id] = record
        return record.model_copy(deep=True)

    async def get(self, record_id: str) -> ImportRecord | None:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    async def update(self, record_id: str, **changes: Any) -> ImportRecord:
        check_updatable(changes)
        async with self._lock:
            current = self._records.get(record_id)
            if current is None:
                raise RecordNotFoundError(record_id)
            updated = ImportRecord.model_validate(
                {**current.model_dump(), **plain_changes(changes), "updated_at": utc_now()}
            )
            self._records[record_id] = updated
        return updated.model_copy(deep=True)
