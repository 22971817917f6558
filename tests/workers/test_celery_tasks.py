"""Unit tests for the Celery task wrappers.

The factories are patched so each task runs a real ScrapeWorker over the
in-memory stores; no broker, Redis or database is involved.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from listing_importer.queue.models import Job
from listing_importer.workers.beat_schedule import beat_schedule
from listing_importer.workers.orchestrator import ScrapeWorker
from listing_importer.workers.tasks import (
    process_next_scrape_task,
    reset_daily_counters_task,
    sweep_scrape_queue_task,
)

_TASKS = "listing_importer.workers.tasks"


@pytest.fixture
def patched_factories(queue_store, worker: ScrapeWorker):
    with (
        patch(f"{_TASKS}.build_queue_store", return_value=queue_store),
        patch(f"{_TASKS}.build_record_store"),
        patch(f"{_TASKS}.build_worker", return_value=worker),
        patch(f"{_TASKS}.dispose_engine", new_callable=AsyncMock) as dispose,
    ):
        yield dispose


def _submit(queue_store, record_store, job_id: str) -> None:
    url = f"https://agency.example.com/listing/{job_id}"
    asyncio.run(record_store.create(job_id, url))
    asyncio.run(queue_store.enqueue(Job(id=job_id, target=url)))


class TestProcessNextScrapeTask:
    def test_runs_one_cycle(self, patched_factories, queue_store, record_store) -> None:
        _submit(queue_store, record_store, "job-1")

        summary = process_next_scrape_task()

        assert summary["outcome"] == "processed"
        assert summary["job_id"] == "job-1"
        assert summary["error"] is None
        patched_factories.assert_awaited_once()

    def test_empty_queue(self, patched_factories) -> None:
        assert process_next_scrape_task()["outcome"] == "queue_empty"

    def test_errors_are_returned_not_raised(self) -> None:
        with patch(f"{_TASKS}.build_queue_store", side_effect=RuntimeError("redis down")):
            summary = process_next_scrape_task()

        assert summary == {"outcome": "error", "error": "redis down"}


class TestSweepScrapeQueueTask:
    def test_runs_cycle_when_cascade_has_stopped(
        self, patched_factories, queue_store, record_store
    ) -> None:
        _submit(queue_store, record_store, "job-1")

        summary = sweep_scrape_queue_task()

        assert summary["outcome"] == "processed"

    def test_skips_while_jobs_are_in_flight(
        self, patched_factories, queue_store, record_store
    ) -> None:
        _submit(queue_store, record_store, "job-1")
        _submit(queue_store, record_store, "job-2")
        asyncio.run(queue_store.dequeue())

        summary = sweep_scrape_queue_task()

        assert summary["outcome"] == "skipped"
        assert summary["queueLength"] == 1
        assert summary["inFlightCount"] == 1

    def test_skips_empty_queue(self, patched_factories) -> None:
        assert sweep_scrape_queue_task()["outcome"] == "skipped"


class TestResetDailyCountersTask:
    def test_resets_counters(self, queue_store) -> None:
        asyncio.run(queue_store.record_outcome("job-1", success=True))

        with patch(f"{_TASKS}.build_queue_store", return_value=queue_store):
            assert reset_daily_counters_task() == {"reset": True}

        assert asyncio.run(queue_store.stats()).completed_today == 0


class TestBeatSchedule:
    def test_sweep_and_reset_are_scheduled(self) -> None:
        tasks = {entry["task"] for entry in beat_schedule.values()}

        assert tasks == {
            f"{_TASKS}.sweep_scrape_queue_task",
            f"{_TASKS}.reset_daily_counters_task",
        }
