"""Tests for ScrapeWorker cycles.

Runs against the in-memory queue and record stores with stubbed extraction
and generation, so every branch of a cycle can be driven directly:
admission, dequeue, extraction failure, enrichment degradation and the
cascade to the next cycle.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from listing_importer.core.exceptions import GenerationError, ProviderExhaustedError
from listing_importer.queue.models import Job
from listing_importer.queue.store import QueueStore
from listing_importer.records.models import RecordStatus
from listing_importer.records.store import InMemoryRecordStore
from listing_importer.workers.orchestrator import CycleOutcome, ScrapeWorker
from listing_importer.workers.trigger import LocalTrigger, Trigger

if TYPE_CHECKING:
    from listing_importer.extraction.base import ExtractionResult


async def _submit(queue: QueueStore, records: InMemoryRecordStore, job_id: str) -> str:
    url = f"https://agency.example.com/listing/{job_id}"
    await records.create(job_id, url)
    await queue.enqueue(Job(id=job_id, target=url))
    return url


class _RecordingTrigger(Trigger):
    name = "recording"

    def __init__(self) -> None:
        self.fired = 0

    async def fire(self) -> None:
        self.fired += 1


class _BrokenTrigger(Trigger):
    name = "broken"

    async def fire(self) -> None:
        raise RuntimeError("connection refused")


class _SuspendingExtractor:
    """Yields to the event loop mid-extraction and tracks the claim count."""

    def __init__(self, queue: QueueStore, delegate) -> None:
        self._queue = queue
        self._delegate = delegate
        self.peak_in_flight = 0

    async def extract(self, url: str, *, timeout: float | None = None) -> ExtractionResult:
        in_flight = (await self._queue.stats()).in_flight_count
        self.peak_in_flight = max(self.peak_in_flight, in_flight)
        await asyncio.sleep(0.01)
        return await self._delegate.extract(url, timeout=timeout)


# ---------------------------------------------------------------------------
# Single cycle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestRunCycle:
    async def test_processes_job_end_to_end(
        self, worker: ScrapeWorker, queue_store, record_store, extractor
    ) -> None:
        url = await _submit(queue_store, record_store, "job-1")

        result = await worker.run_cycle()

        assert result.outcome is CycleOutcome.PROCESSED
        assert result.success
        assert result.job_id == "job-1"
        assert result.in_flight == 0
        assert result.ceiling == 2
        assert result.enrichment_error is None
        assert extractor.calls == [(url, 30.0)]

        record = await record_store.get("job-1")
        assert record.status is RecordStatus.COMPLETED
        assert record.normalized_content.startswith("# House on Elm Street")
        assert record.media_urls == ["https://img.example.com/1.jpg"]
        assert record.source_provider == "direct"
        assert record.error_message is None
        assert record.generated_config["title"] == "House on Elm Street"
        assert "call1_duration_ms" in record.generated_config["_metadata"]
        assert record.final_config["title"] == "Sunny Family Home Near Springfield Park"
        assert "call2_duration_ms" in record.final_config["_metadata"]

        stats = await queue_store.stats()
        assert stats.in_flight_count == 0
        assert stats.completed_today == 1
        assert stats.failed_today == 0

    async def test_empty_queue(self, worker: ScrapeWorker, extractor) -> None:
        result = await worker.run_cycle()

        assert result.outcome is CycleOutcome.QUEUE_EMPTY
        assert result.job_id is None
        assert extractor.calls == []

    async def test_extraction_failure_marks_record_error(
        self, worker: ScrapeWorker, queue_store, record_store, extractor, generation_client
    ) -> None:
        url = await _submit(queue_store, record_store, "job-1")
        extractor.failures[url] = ProviderExhaustedError(url, [("direct", "HTTP 404")])

        result = await worker.run_cycle()

        assert result.outcome is CycleOutcome.FAILED
        assert not result.success
        assert "direct: HTTP 404" in result.error
        record = await record_store.get("job-1")
        assert record.status is RecordStatus.ERROR
        assert record.error_message == result.error
        assert generation_client.calls == []

        stats = await queue_store.stats()
        assert stats.in_flight_count == 0
        assert stats.failed_today == 1

    async def test_unexpected_error_is_reported_and_slot_released(
        self, worker: ScrapeWorker, queue_store, record_store, extractor
    ) -> None:
        url = await _submit(queue_store, record_store, "job-1")
        extractor.failures[url] = RuntimeError("boom")

        result = await worker.run_cycle()

        assert result.outcome is CycleOutcome.FAILED
        assert result.error == "Unexpected error: boom"
        assert (await record_store.get("job-1")).error_message == "Unexpected error: boom"
        assert not await queue_store.is_in_flight("job-1")

    async def test_missing_record_fails_job_and_releases_slot(
        self, worker: ScrapeWorker, queue_store
    ) -> None:
        await queue_store.enqueue(Job(id="orphan", target="https://agency.example.com/x"))

        result = await worker.run_cycle()

        assert result.outcome is CycleOutcome.FAILED
        assert "orphan" in result.error
        stats = await queue_store.stats()
        assert stats.in_flight_count == 0
        assert stats.failed_today == 1

    async def test_enrichment_disabled_completes_after_extraction(
        self, queue_store, record_store, extractor, generation_client
    ) -> None:
        worker = ScrapeWorker(
            queue_store, record_store, extractor, None, max_concurrent=2, enrichment_enabled=False
        )
        await _submit(queue_store, record_store, "job-1")

        result = await worker.run_cycle()

        record = await record_store.get("job-1")
        assert result.outcome is CycleOutcome.PROCESSED
        assert record.status is RecordStatus.COMPLETED
        assert record.generated_config is None
        assert generation_client.calls == []


# ---------------------------------------------------------------------------
# Enrichment degradation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestEnrichmentFailures:
    async def test_base_call_failure_completes_with_note(
        self, worker: ScrapeWorker, queue_store, record_store, generation_client
    ) -> None:
        await _submit(queue_store, record_store, "job-1")
        generation_client.base_error = GenerationError("generation: HTTP 500")

        result = await worker.run_cycle()

        assert result.outcome is CycleOutcome.PROCESSED
        assert result.enrichment_error == "enrichment failed: generation: HTTP 500"
        record = await record_store.get("job-1")
        assert record.status is RecordStatus.COMPLETED
        assert record.error_message == "enrichment failed: generation: HTTP 500"
        assert record.normalized_content is not None
        assert record.generated_config is None
        assert (await queue_store.stats()).completed_today == 1

    async def test_refinement_failure_keeps_base_values(
        self, worker: ScrapeWorker, queue_store, record_store, generation_client
    ) -> None:
        await _submit(queue_store, record_store, "job-1")
        generation_client.refine_error = GenerationError("generation: HTTP 503 overloaded")

        result = await worker.run_cycle()

        record = await record_store.get("job-1")
        assert result.enrichment_error is None
        assert record.status is RecordStatus.COMPLETED
        assert record.final_config["title"] == "House on Elm Street"
        assert record.final_config["_metadata"]["call2_error"] == "generation: HTTP 503 overloaded"

    async def test_missing_generator_completes_with_note(
        self, worker: ScrapeWorker, queue_store, record_store
    ) -> None:
        await _submit(queue_store, record_store, "job-1")
        worker.generator = None

        result = await worker.run_cycle()

        record = await record_store.get("job-1")
        assert result.outcome is CycleOutcome.PROCESSED
        assert record.status is RecordStatus.COMPLETED
        assert record.error_message == "enrichment failed: no structured generator configured"
        assert (await queue_store.stats()).in_flight_count == 0


# ---------------------------------------------------------------------------
# Admission and claims
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestAdmission:
    async def test_skips_when_at_ceiling(
        self, worker: ScrapeWorker, queue_store, record_store, extractor
    ) -> None:
        for job_id in ("a", "b", "c"):
            await _submit(queue_store, record_store, job_id)
        await queue_store.dequeue()
        await queue_store.dequeue()

        result = await worker.run_cycle()

        assert result.outcome is CycleOutcome.CAPACITY_EXHAUSTED
        assert result.in_flight == 2
        assert result.ceiling == 2
        assert extractor.calls == []
        assert (await queue_store.stats()).queue_length == 1

    async def test_expired_claims_free_capacity_without_requeue(
        self, worker: ScrapeWorker, queue_store, record_store, clock
    ) -> None:
        for job_id in ("a", "b", "c"):
            await _submit(queue_store, record_store, job_id)
        await queue_store.dequeue()
        await queue_store.dequeue()

        clock.advance(301)
        result = await worker.run_cycle()

        assert result.outcome is CycleOutcome.PROCESSED
        assert result.job_id == "c"
        stats = await queue_store.stats()
        assert stats.queue_length == 0
        assert stats.in_flight_count == 0
        assert (await record_store.get("a")).status is RecordStatus.QUEUED

    async def test_concurrent_cycles_stay_within_ceiling(
        self, queue_store, record_store, extractor, generator
    ) -> None:
        suspending = _SuspendingExtractor(queue_store, extractor)
        worker = ScrapeWorker(queue_store, record_store, suspending, generator, max_concurrent=2)
        for job_id in ("a", "b", "c", "d", "e"):
            await _submit(queue_store, record_store, job_id)

        results = await asyncio.gather(*(worker.run_cycle() for _ in range(5)))

        outcomes = [result.outcome for result in results]
        assert outcomes.count(CycleOutcome.PROCESSED) == 2
        assert outcomes.count(CycleOutcome.CAPACITY_EXHAUSTED) == 3
        assert suspending.peak_in_flight <= 2
        assert len(extractor.calls) == 2
        stats = await queue_store.stats()
        assert stats.in_flight_count == 0
        assert stats.queue_length == 3

    async def test_rejects_non_positive_ceiling(self, queue_store, record_store, extractor, generator) -> None:
        with pytest.raises(ValueError):
            ScrapeWorker(queue_store, record_store, extractor, generator, max_concurrent=0)

    async def test_enrichment_requires_generator(self, queue_store, record_store, extractor) -> None:
        with pytest.raises(ValueError):
            ScrapeWorker(queue_store, record_store, extractor, None)


# ---------------------------------------------------------------------------
# Cascade
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestCascade:
    async def test_fires_when_work_is_waiting(self, worker: ScrapeWorker, queue_store, record_store) -> None:
        trigger = _RecordingTrigger()
        worker.trigger = trigger
        await _submit(queue_store, record_store, "a")
        await _submit(queue_store, record_store, "b")

        result = await worker.run_cycle()

        assert result.cascaded
        assert trigger.fired == 1

    async def test_no_fire_when_queue_drained(self, worker: ScrapeWorker, queue_store, record_store) -> None:
        trigger = _RecordingTrigger()
        worker.trigger = trigger
        await _submit(queue_store, record_store, "a")

        result = await worker.run_cycle()

        assert not result.cascaded
        assert trigger.fired == 0

    async def test_fires_while_another_claim_is_held(
        self, worker: ScrapeWorker, queue_store, record_store
    ) -> None:
        trigger = _RecordingTrigger()
        worker.trigger = trigger
        for job_id in ("a", "b", "c"):
            await _submit(queue_store, record_store, job_id)
        await queue_store.dequeue()

        result = await worker.run_cycle()

        assert result.job_id == "b"
        assert result.cascaded

    async def test_no_fire_when_other_workers_fill_capacity(
        self, queue_store, record_store, extractor, generator
    ) -> None:
        class _BusyNeighbourExtractor:
            """Another worker claims a job while this one is extracting."""

            async def extract(self, url: str, *, timeout: float | None = None):
                await queue_store.dequeue()
                return await extractor.extract(url, timeout=timeout)

        trigger = _RecordingTrigger()
        worker = ScrapeWorker(
            queue_store, record_store, _BusyNeighbourExtractor(), generator, trigger, max_concurrent=2
        )
        for job_id in ("a", "b", "c", "d"):
            await _submit(queue_store, record_store, job_id)
        await queue_store.dequeue()

        result = await worker.run_cycle()

        assert result.outcome is CycleOutcome.PROCESSED
        assert not result.cascaded
        assert trigger.fired == 0
        assert (await queue_store.stats()).queue_length == 1

    async def test_trigger_failure_does_not_fail_job(
        self, worker: ScrapeWorker, queue_store, record_store
    ) -> None:
        worker.trigger = _BrokenTrigger()
        await _submit(queue_store, record_store, "a")
        await _submit(queue_store, record_store, "b")

        result = await worker.run_cycle()

        assert result.outcome is CycleOutcome.PROCESSED
        assert not result.cascaded
        assert (await record_store.get("a")).status is RecordStatus.COMPLETED

    async def test_local_cascade_drains_queue_one_at_a_time(
        self, queue_store, record_store, extractor, generator
    ) -> None:
        worker = ScrapeWorker(
            queue_store, record_store, extractor, generator, max_concurrent=1, scrape_timeout=30.0
        )
        trigger = LocalTrigger(worker.run_cycle)
        worker.trigger = trigger
        for job_id in ("a", "b", "c"):
            await _submit(queue_store, record_store, job_id)

        first = await worker.run_cycle()
        await trigger.drain()

        assert first.job_id == "a"
        assert [url.rsplit("/", 1)[-1] for url, _ in extractor.calls] == ["a", "b", "c"]
        for job_id in ("a", "b", "c"):
            assert (await record_store.get(job_id)).status is RecordStatus.COMPLETED
        stats = await queue_store.stats()
        assert stats.queue_length == 0
        assert stats.in_flight_count == 0
        assert stats.completed_today == 3
        assert trigger.pending == 0


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestRunBatch:
    async def test_processes_until_queue_empty(self, worker: ScrapeWorker, queue_store, record_store) -> None:
        for job_id in ("a", "b"):
            await _submit(queue_store, record_store, job_id)

        handled = await worker.run_batch(5)

        assert handled == 2
        assert (await queue_store.stats()).completed_today == 2

    async def test_respects_max_jobs(self, worker: ScrapeWorker, queue_store, record_store) -> None:
        for job_id in ("a", "b", "c"):
            await _submit(queue_store, record_store, job_id)

        assert await worker.run_batch(2) == 2
        assert (await queue_store.stats()).queue_length == 1

    async def test_failed_jobs_count_as_handled(
        self, worker: ScrapeWorker, queue_store, record_store, extractor
    ) -> None:
        url = await _submit(queue_store, record_store, "a")
        await _submit(queue_store, record_store, "b")
        extractor.failures[url] = RuntimeError("boom")

        assert await worker.run_batch(5) == 2
        stats = await queue_store.stats()
        assert stats.failed_today == 1
        assert stats.completed_today == 1
