"""The scrape worker: one bounded-concurrency cycle per invocation.

A cycle:

1. **Admission** - if ``in_flight_count >= max_concurrent_scrapes`` return
   ``capacity_exhausted`` without touching the queue.  The check and the
   dequeue are separate operations, so the ceiling is a soft bound.
2. **Dequeue** - pop the head job and claim it with a TTL.  Nothing
   queued returns ``queue_empty``.
3. **Extract** - record goes ``scraping``; content is fetched within the
   scrape timeout and persisted.  The record becomes ``pending`` (or
   ``completed`` when enrichment is disabled); on failure it becomes
   ``error``.  Either way the claim is released and a daily counter bumped.
4. **Cascade** - with the slot free, if jobs are waiting and capacity
   allows, the trigger starts another cycle.  Trigger failures are logged.
5. **Enrich** - the two generation calls run after the slot is released.
   Their failure never fails the job: the record ends ``completed`` with an
   ``error_message`` note.

Every dequeue is matched by exactly one release, whatever happens in
step 3.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from listing_importer.core.exceptions import (
    EnrichmentError,
    ListingImporterError,
    RecordNotFoundError,
)
from listing_importer.core.logging_config import bind_job_context
from listing_importer.records.models import RecordStatus

if TYPE_CHECKING:
    from listing_importer.extraction.base import ExtractionResult
    from listing_importer.extraction.service import ContentExtractor
    from listing_importer.generation.service import StructuredGenerator
    from listing_importer.queue.models import Job
    from listing_importer.queue.store import QueueStore
    from listing_importer.records.store import RecordStore
    from listing_importer.workers.trigger import Trigger

logger = logging.getLogger(__name__)


class CycleOutcome(str, Enum):
    PROCESSED = "processed"
    FAILED = "failed"
    QUEUE_EMPTY = "queue_empty"
    CAPACITY_EXHAUSTED = "capacity_exhausted"


@dataclass
class CycleResult:
    """What one :meth:`ScrapeWorker.run_cycle` call did.

    Attributes:
        outcome: See :class:`CycleOutcome`.
        job_id: The dequeued job, when there was one.
        error: Extraction error for ``failed`` cycles.
        enrichment_error: Note stored on the record when enrichment failed.
        in_flight: In-flight count seen by the admission check.
        ceiling: Concurrency ceiling in force.
        cascaded: Whether the trigger fired after the slot was released.
    """

    outcome: CycleOutcome
    job_id: Optional[str] = None
    error: Optional[str] = None
    enrichment_error: Optional[str] = None
    in_flight: Optional[int] = None
    ceiling: Optional[int] = None
    cascaded: bool = False

    @property
    def success(self) -> bool:
        return self.outcome is CycleOutcome.PROCESSED


def _record_metric(name: str, **labels: str) -> None:
    try:
        from listing_importer.api import metrics  # noqa: PLC0415

        getattr(metrics, name).labels(**labels).inc()
    except Exception as exc:  # noqa: BLE001
        logger.debug("queue: metrics recording failed: %s", exc)


def _observe_duration(seconds: float) -> None:
    try:
        from listing_importer.api.metrics import worker_cycle_duration_seconds  # noqa: PLC0415

        worker_cycle_duration_seconds.observe(seconds)
    except Exception as exc:  # noqa: BLE001
        logger.debug("queue: metrics recording failed: %s", exc)


def extraction_fields(result: "ExtractionResult") -> dict[str, Any]:
    """Record fields persisted after a successful extraction."""
    return {
        "raw_content": result.raw_content,
        "normalized_content": result.normalized_content,
        "gallery_raw_content": result.gallery_raw_content,
        "gallery_normalized_content": result.gallery_normalized_content,
        "media_urls": result.media_urls,
        "structured_data": result.structured_data,
        "source_provider": result.source_tag,
    }


class ScrapeWorker:
    """Runs worker cycles against the queue, the record store and the services.

    Args:
        queue: Shared queue store.
        records: Record store holding the import records.
        extractor: Content extraction service.
        generator: Structured generation service.  Required when
            *enrichment_enabled* is true.
        trigger: Continuation trigger.  May be assigned after construction
            (a :class:`~listing_importer.workers.trigger.LocalTrigger` needs
            the worker first).
        max_concurrent: Admission ceiling.
        scrape_timeout: Budget for one extraction, in seconds.
        enrichment_enabled: Run the generation calls after extraction.
    """

    def __init__(
        self,
        queue: "QueueStore",
        records: "RecordStore",
        extractor: "ContentExtractor",
        generator: "StructuredGenerator | None" = None,
        trigger: "Trigger | None" = None,
        *,
        max_concurrent: int = 2,
        scrape_timeout: float = 170.0,
        enrichment_enabled: bool = True,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if enrichment_enabled and generator is None:
            raise ValueError("a generator is required when enrichment is enabled")
        self.queue = queue
        self.records = records
        self.extractor = extractor
        self.generator = generator
        self.trigger = trigger
        self.max_concurrent = max_concurrent
        self.scrape_timeout = scrape_timeout
        self.enrichment_enabled = enrichment_enabled

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleResult:
        """Admit, dequeue and process at most one job."""
        stats = await self.queue.stats()
        if stats.in_flight_count >= self.max_concurrent:
            logger.info(
                "queue: at concurrent limit (%d/%d), skipping cycle",
                stats.in_flight_count,
                self.max_concurrent,
            )
            _record_metric("scrape_jobs_total", outcome=CycleOutcome.CAPACITY_EXHAUSTED.value)
            return CycleResult(
                outcome=CycleOutcome.CAPACITY_EXHAUSTED,
                in_flight=stats.in_flight_count,
                ceiling=self.max_concurrent,
            )

        job = await self.queue.dequeue()
        if job is None:
            logger.debug("queue: nothing to process")
            _record_metric("scrape_jobs_total", outcome=CycleOutcome.QUEUE_EMPTY.value)
            return CycleResult(
                outcome=CycleOutcome.QUEUE_EMPTY,
                in_flight=stats.in_flight_count,
                ceiling=self.max_concurrent,
            )

        started = time.perf_counter()
        with bind_job_context(job.id):
            result = await self._process(job)
        result.in_flight = stats.in_flight_count
        result.ceiling = self.max_concurrent
        _observe_duration(time.perf_counter() - started)
        _record_metric("scrape_jobs_total", outcome=result.outcome.value)
        return result

    async def run_batch(self, max_jobs: int) -> int:
        """Run up to *max_jobs* cycles; stop early when nothing was processed.

        Returns:
            Number of cycles that dequeued a job (processed or failed).
        """
        handled = 0
        for _ in range(max(max_jobs, 0)):
            result = await self.run_cycle()
            if result.outcome in (CycleOutcome.QUEUE_EMPTY, CycleOutcome.CAPACITY_EXHAUSTED):
                break
            handled += 1
        logger.info("queue: batch handled %d job(s)", handled)
        return handled

    async def _process(self, job: "Job") -> CycleResult:
        logger.info("queue: processing job %s (%s)", job.id, job.target)
        extraction: "ExtractionResult | None" = None
        error: str | None = None

        try:
            await self.records.update(job.id, status=RecordStatus.SCRAPING)
            extraction = await self.extractor.extract(job.target, timeout=self.scrape_timeout)
            await self.records.update(
                job.id,
                status=RecordStatus.PENDING if self.enrichment_enabled else RecordStatus.COMPLETED,
                **extraction_fields(extraction),
            )
        except ListingImporterError as exc:
            error = str(exc)
        except Exception as exc:  # noqa: BLE001
            logger.exception("queue: unexpected error processing job %s", job.id)
            error = f"Unexpected error: {exc}"

        if error is not None:
            logger.warning("queue: job %s failed: %s", job.id, error)
            await self._mark_error(job.id, error)

        await self.queue.record_outcome(job.id, success=error is None)
        cascaded = await self._maybe_cascade()

        if error is not None:
            return CycleResult(
                outcome=CycleOutcome.FAILED, job_id=job.id, error=error, cascaded=cascaded
            )

        enrichment_error = None
        if self.enrichment_enabled and extraction is not None:
            enrichment_error = await self._enrich(job.id, extraction)
        logger.info("queue: job %s done", job.id)
        return CycleResult(
            outcome=CycleOutcome.PROCESSED,
            job_id=job.id,
            enrichment_error=enrichment_error,
            cascaded=cascaded,
        )

    async def _mark_error(self, job_id: str, message: str) -> None:
        try:
            await self.records.update(job_id, status=RecordStatus.ERROR, error_message=message)
        except RecordNotFoundError:
            logger.warning("queue: record %s no longer exists", job_id)
        except Exception:  # noqa: BLE001
            logger.exception("queue: could not mark record %s as failed", job_id)

    # ------------------------------------------------------------------
    # Cascade
    # ------------------------------------------------------------------

    async def _maybe_cascade(self) -> bool:
        if self.trigger is None:
            return False
        try:
            stats = await self.queue.stats()
        except Exception as exc:  # noqa: BLE001
            logger.warning("queue: could not read stats for cascade: %s", exc)
            _record_metric("cascade_triggers_total", status="error")
            return False

        if stats.queue_length == 0 or stats.in_flight_count >= self.max_concurrent:
            logger.debug(
                "queue: no cascade (queued=%d, in_flight=%d/%d)",
                stats.queue_length,
                stats.in_flight_count,
                self.max_concurrent,
            )
            _record_metric("cascade_triggers_total", status="skipped")
            return False

        try:
            await self.trigger.fire()
        except Exception as exc:  # noqa: BLE001
            logger.warning("queue: %s trigger failed: %s", self.trigger.name, exc)
            _record_metric("cascade_triggers_total", status="error")
            return False
        logger.info("queue: triggered next cycle (%d queued)", stats.queue_length)
        _record_metric("cascade_triggers_total", status="fired")
        return True

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def _enrich(self, job_id: str, extraction: "ExtractionResult") -> str | None:
        """Run both generation calls; return the error note if they failed."""
        try:
            await self._run_enrichment(job_id, extraction)
        except EnrichmentError as exc:
            logger.warning("queue: %s", exc)
            try:
                await self.records.update(
                    job_id, status=RecordStatus.COMPLETED, error_message=str(exc)
                )
            except Exception:  # noqa: BLE001
                logger.exception("queue: could not record enrichment failure for %s", job_id)
            return str(exc)
        return None

    async def _run_enrichment(self, job_id: str, extraction: "ExtractionResult") -> None:
        if self.generator is None:
            raise EnrichmentError("enrichment failed: no structured generator configured")
        try:
            base = await self.generator.generate_base(
                extraction.normalized_content, extraction.content_type
            )
            await self.records.update(job_id, generated_config=base.as_persisted())
            final = await self.generator.refine_config(base)
            await self.records.update(
                job_id, status=RecordStatus.COMPLETED, final_config=final.as_persisted()
            )
        except Exception as exc:  # noqa: BLE001
            raise EnrichmentError(f"enrichment failed: {exc}") from exc
