"""Wiring: build the queue store, record store and worker from settings.

Used by both the FastAPI application and the Celery tasks so the two
entry points run identical workers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from listing_importer.extraction.service import ContentExtractor
from listing_importer.generation.service import StructuredGenerator
from listing_importer.queue.storage import RedisQueueStorage
from listing_importer.queue.store import QueueStore
from listing_importer.records.sql_store import SqlRecordStore
from listing_importer.workers.orchestrator import ScrapeWorker
from listing_importer.workers.trigger import Trigger, build_trigger

if TYPE_CHECKING:
    from listing_importer.config.settings import Settings
    from listing_importer.records.store import RecordStore


def build_queue_store(settings: "Settings") -> QueueStore:
    """Queue store over Redis at ``settings.redis_url``."""
    return QueueStore(
        RedisQueueStorage.from_url(settings.redis_url),
        claim_ttl_seconds=settings.claim_ttl_seconds,
    )


def build_record_store() -> SqlRecordStore:
    """SQL record store over the application-wide session factory."""
    from listing_importer.core.database import get_session_factory  # noqa: PLC0415

    return SqlRecordStore(get_session_factory())


def build_worker(
    settings: "Settings",
    queue: QueueStore,
    records: "RecordStore",
    *,
    trigger: Trigger | None = None,
) -> ScrapeWorker:
    """A worker configured from *settings*.

    The trigger defaults to the one selected by ``CASCADE_MODE``.
    """
    worker = ScrapeWorker(
        queue,
        records,
        ContentExtractor.from_settings(settings),
        StructuredGenerator.from_settings(settings),
        max_concurrent=settings.max_concurrent_scrapes,
        scrape_timeout=settings.scrape_timeout_seconds,
        enrichment_enabled=settings.enrichment_enabled,
    )
    worker.trigger = trigger if trigger is not None else build_trigger(settings, worker.run_cycle)
    return worker
