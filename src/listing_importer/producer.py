"""Submit a listing URL for import.

Creates the ``queued`` record, appends the job to the queue and nudges the
worker.  The record exists before the job does, so a worker never dequeues a
job whose record is missing.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import httpx

from listing_importer.queue.models import Job

if TYPE_CHECKING:
    from listing_importer.queue.store import QueueStore
    from listing_importer.records.store import RecordStore
    from listing_importer.workers.trigger import Trigger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmittedImport:
    """Handle returned to the caller for status polling.

    Attributes:
        record_id: Id of the created record (and of its queue job).
        position: 1-indexed queue position right after enqueueing.
    """

    record_id: str
    position: int


def _validate_url(url: str) -> str:
    url = url.strip()
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ValueError(f"Invalid listing URL: {url!r}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValueError(f"Listing URL must be absolute http(s): {url!r}")
    return url


async def submit_import(
    url: str,
    *,
    record_store: "RecordStore",
    queue: "QueueStore",
    trigger: "Trigger | None" = None,
    record_id: Optional[str] = None,
    priority: Optional[int] = None,
) -> SubmittedImport:
    """Create a record for *url*, enqueue it and fire *trigger*.

    A failing trigger is logged and ignored; the periodic sweep picks the
    job up instead.

    Raises:
        ValueError: If *url* is not an absolute http(s) URL.
    """
    target = _validate_url(url)
    record_id = record_id or str(uuid.uuid4())

    await record_store.create(record_id, target)
    position = await queue.enqueue(Job(id=record_id, target=target, priority=priority))
    logger.info("queue: submitted %s as %s (position %d)", target, record_id, position)

    if trigger is not None:
        try:
            await trigger.fire()
        except Exception as exc:  # noqa: BLE001
            logger.warning("queue: trigger after submit failed: %s", exc)
    return SubmittedImport(record_id=record_id, position=position)
