"""Scrape worker, continuation triggers and Celery tasks.

The Celery app is not imported here; ``celery -A
listing_importer.workers.celery_app`` loads it explicitly.
"""

from listing_importer.workers.orchestrator import CycleOutcome, CycleResult, ScrapeWorker
from listing_importer.workers.trigger import (
    CeleryTrigger,
    HttpSelfTrigger,
    LocalTrigger,
    NullTrigger,
    Trigger,
    build_trigger,
)

__all__ = [
    "CeleryTrigger",
    "CycleOutcome",
    "CycleResult",
    "HttpSelfTrigger",
    "LocalTrigger",
    "NullTrigger",
    "ScrapeWorker",
    "Trigger",
    "build_trigger",
]
