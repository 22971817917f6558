"""FastAPI dependency injection providers.

The queue store, record store and worker are built on first use and cached
on ``app.state`` so every request shares one Redis connection pool and one
database session factory.  Tests replace them through
``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from listing_importer.config.settings import Settings, get_settings
from listing_importer.queue.store import QueueStore
from listing_importer.records.store import RecordStore
from listing_importer.workers.factory import build_queue_store, build_record_store, build_worker
from listing_importer.workers.orchestrator import ScrapeWorker


def get_app_settings() -> Settings:
    return get_settings()


def get_queue_store(
    request: Request, settings: Annotated[Settings, Depends(get_app_settings)]
) -> QueueStore:
    """Return the shared :class:`QueueStore` over ``REDIS_URL``."""
    queue = getattr(request.app.state, "queue_store", None)
    if queue is None:
        queue = build_queue_store(settings)
        request.app.state.queue_store = queue
    return queue


def get_record_store(request: Request) -> RecordStore:
    """Return the shared SQL record store."""
    records = getattr(request.app.state, "record_store", None)
    if records is None:
        records = build_record_store()
        request.app.state.record_store = records
    return records


def get_worker(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
    queue: Annotated[QueueStore, Depends(get_queue_store)],
    records: Annotated[RecordStore, Depends(get_record_store)],
) -> ScrapeWorker:
    """Return the shared worker, wired with the ``CASCADE_MODE`` trigger."""
    worker = getattr(request.app.state, "worker", None)
    if worker is None:
        worker = build_worker(settings, queue, records)
        request.app.state.worker = worker
    return worker
