"""Tests for the in-memory and SQLAlchemy record stores.

The SQL store runs against a file-backed SQLite database via aiosqlite so
every session sees the same data.
"""

from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator

import pytest
import pytest_asyncio

from listing_importer.core.database import Base, build_engine, build_session_factory
from listing_importer.core.exceptions import RecordNotFoundError
from listing_importer.records.models import RecordStatus
from listing_importer.records.sql_store import SqlRecordStore
from listing_importer.records.store import InMemoryRecordStore, RecordStore

_URL = "https://agency.example.com/listing/1"


@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request: pytest.FixtureRequest, tmp_path: Path) -> AsyncIterator[RecordStore]:
    if request.param == "memory":
        yield InMemoryRecordStore()
        return
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'records.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SqlRecordStore(build_session_factory(engine))
    await engine.dispose()


@pytest.mark.asyncio
class TestRecordStore:
    async def test_create_starts_queued(self, store: RecordStore) -> None:
        record = await store.create("rec-1", _URL)

        assert record.id == "rec-1"
        assert record.target_url == _URL
        assert record.status is RecordStatus.QUEUED
        assert record.final_config is None

    async def test_get_missing_returns_none(self, store: RecordStore) -> None:
        assert await store.get("nope") is None

    async def test_update_persists_fields(self, store: RecordStore) -> None:
        await store.create("rec-1", _URL)

        await store.update(
            "rec-1",
            status=RecordStatus.PENDING,
            normalized_content="# Loft",
            media_urls=["https://img.example.com/1.jpg"],
            structured_data={"json_ld": [{"@type": "Residence"}]},
            source_provider="firecrawl",
        )
        record = await store.get("rec-1")

        assert record.status is RecordStatus.PENDING
        assert record.normalized_content == "# Loft"
        assert record.media_urls == ["https://img.example.com/1.jpg"]
        assert record.structured_data == {"json_ld": [{"@type": "Residence"}]}
        assert record.source_provider == "firecrawl"

    async def test_update_stores_configs_with_metadata(self, store: RecordStore) -> None:
        await store.create("rec-1", _URL)
        config = {"title": "Loft", "_metadata": {"call1_duration_ms": 12}}

        updated = await store.update("rec-1", status=RecordStatus.COMPLETED, final_config=config)

        assert updated.final_config == config
        assert (await store.get("rec-1")).final_config["_metadata"]["call1_duration_ms"] == 12

    async def test_update_unknown_record(self, store: RecordStore) -> None:
        with pytest.raises(RecordNotFoundError):
            await store.update("nope", status=RecordStatus.ERROR)

    async def test_update_rejects_unknown_field(self, store: RecordStore) -> None:
        await store.create("rec-1", _URL)

        with pytest.raises(ValueError, match="target_url"):
            await store.update("rec-1", target_url="https://elsewhere.example.com")

    async def test_update_refreshes_updated_at(self, store: RecordStore) -> None:
        created = await store.create("rec-1", _URL)

        updated = await store.update("rec-1", error_message="note")

        assert updated.updated_at.replace(tzinfo=None) >= created.updated_at.replace(tzinfo=None)
        assert updated.created_at.replace(tzinfo=None) == created.created_at.replace(tzinfo=None)


@pytest.mark.asyncio
class TestInMemoryRecordStore:
    async def test_returned_records_are_copies(self) -> None:
        store = InMemoryRecordStore()
        record = await store.create("rec-1", _URL)

        record.error_message = "mutated"

        assert (await store.get("rec-1")).error_message is None
