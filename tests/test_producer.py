"""Tests for submit_import: record creation, enqueueing and the nudge."""

from __future__ import annotations

import pytest

from listing_importer.producer import submit_import
from listing_importer.records.models import RecordStatus
from listing_importer.workers.trigger import Trigger

_URL = "https://www.realtor.com/realestateandhomes-detail/12-Elm-St"


class _CountingTrigger(Trigger):
    name = "counting"

    def __init__(self, fail: bool = False) -> None:
        self.fired = 0
        self._fail = fail

    async def fire(self) -> None:
        self.fired += 1
        if self._fail:
            raise RuntimeError("broker unavailable")


@pytest.mark.asyncio
class TestSubmitImport:
    async def test_creates_record_and_enqueues(self, queue_store, record_store) -> None:
        submitted = await submit_import(_URL, record_store=record_store, queue=queue_store)

        record = await record_store.get(submitted.record_id)
        assert record is not None
        assert record.status is RecordStatus.QUEUED
        assert record.target_url == _URL
        assert submitted.position == 1
        assert await queue_store.position_of(submitted.record_id) == 1

    async def test_positions_follow_submission_order(self, queue_store, record_store) -> None:
        first = await submit_import(_URL, record_store=record_store, queue=queue_store)
        second = await submit_import(_URL + "-2", record_store=record_store, queue=queue_store)

        assert (first.position, second.position) == (1, 2)
        assert first.record_id != second.record_id

    async def test_explicit_record_id(self, queue_store, record_store) -> None:
        submitted = await submit_import(
            _URL, record_store=record_store, queue=queue_store, record_id="rec-7", priority=5
        )

        assert submitted.record_id == "rec-7"
        job = await queue_store.dequeue()
        assert job.id == "rec-7"
        assert job.target == _URL

    async def test_fires_trigger(self, queue_store, record_store) -> None:
        trigger = _CountingTrigger()

        await submit_import(_URL, record_store=record_store, queue=queue_store, trigger=trigger)

        assert trigger.fired == 1

    async def test_trigger_failure_is_not_raised(self, queue_store, record_store) -> None:
        submitted = await submit_import(
            _URL, record_store=record_store, queue=queue_store, trigger=_CountingTrigger(fail=True)
        )

        assert (await queue_store.stats()).queue_length == 1
        assert submitted.position == 1

    @pytest.mark.parametrize(
        "url", ["ftp://example.com/listing", "/relative/path", "not a url", "https://"]
    )
    async def test_rejects_non_http_urls(self, queue_store, record_store, url: str) -> None:
        with pytest.raises(ValueError):
            await submit_import(url, record_store=record_store, queue=queue_store)

        assert (await queue_store.stats()).queue_length == 0

    async def test_surrounding_whitespace_is_stripped(self, queue_store, record_store) -> None:
        submitted = await submit_import(f"  {_URL}\n", record_store=record_store, queue=queue_store)

        assert (await record_store.get(submitted.record_id)).target_url == _URL
