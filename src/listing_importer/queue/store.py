"""FIFO scrape queue with in-flight claims and daily counters.

The store owns three shared structures (see :mod:`listing_importer.queue.keys`):
the pending list, one claim key per in-flight job, and a counter hash.  Every
operation is a single storage call except :meth:`QueueStore.stats`, which
reads four values independently and is therefore only eventually consistent.

Concurrency notes:

- Dequeue removes the head and writes the claim in one step, so a job is
  never observable as neither pending nor claimed.
- The capacity ceiling is enforced by the worker as check-then-act against
  :meth:`QueueStore.stats`; two workers can both pass the check and briefly
  exceed it.  The claim TTL bounds how long a crashed worker's claim counts.
"""

from __future__ import annotations

import logging

from listing_importer.core.exceptions import QueueStoreError
from listing_importer.queue import keys
from listing_importer.queue.models import Job, QueueStats
from listing_importer.queue.storage import QueueStorage, job_id_of

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_TTL_SECONDS: int = 300


class QueueStore:
    """Async queue facade over a :class:`QueueStorage` backend.

    Args:
        storage: Key-value backend (Redis or in-memory).
        claim_ttl_seconds: Lifetime of an in-flight claim written by
            :meth:`dequeue`.
    """

    def __init__(
        self,
        storage: QueueStorage,
        *,
        claim_ttl_seconds: int = DEFAULT_CLAIM_TTL_SECONDS,
    ) -> None:
        self._storage = storage
        self._claim_ttl = claim_ttl_seconds

    @property
    def storage(self) -> QueueStorage:
        return self._storage

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    async def enqueue(self, job: Job) -> int:
        """Append *job* at the tail and return its 1-indexed position."""
        position = await self._storage.push_tail(keys.SCRAPE_QUEUE, job.to_payload())
        await self._storage.increment(keys.SCRAPE_STATS, keys.TOTAL_QUEUED)
        logger.info("queue: job %s enqueued at position %d", job.id, position)
        return position

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    async def dequeue(self) -> Job | None:
        """Remove the head job and claim it.

        Returns:
            The claimed job, or ``None`` if the queue is empty.  An entry that
            cannot be decoded is dropped (and its claim, if any, removed) and
            ``None`` is returned for this call.
        """
        raw = await self._storage.pop_head_and_claim(
            keys.SCRAPE_QUEUE, keys.claim_prefix(), self._claim_ttl
        )
        if raw is None:
            return None
        try:
            job = Job.from_payload(raw)
        except QueueStoreError as exc:
            logger.error("queue: dropping undecodable entry %.200r: %s", raw, exc)
            stray_id = job_id_of(raw)
            if stray_id is not None:
                await self.release(stray_id)
            return None
        logger.debug("queue: job %s claimed (ttl=%ds)", job.id, self._claim_ttl)
        return job

    async def release(self, job_id: str) -> None:
        """Delete the claim for *job_id*.  Releasing twice is a no-op."""
        await self._storage.delete(keys.claim_key(job_id))

    async def record_outcome(self, job_id: str, success: bool) -> None:
        """Release the claim and bump the matching daily counter."""
        await self.release(job_id)
        field = keys.COMPLETED_TODAY if success else keys.FAILED_TODAY
        await self._storage.increment(keys.SCRAPE_STATS, field)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    async def position_of(self, job_id: str) -> int | None:
        """Return the 1-indexed queue position of *job_id*, or ``None``.

        Linear in the queue length.
        """
        entries = await self._storage.list_range(keys.SCRAPE_QUEUE)
        for index, raw in enumerate(entries, start=1):
            try:
                if Job.from_payload(raw).id == job_id:
                    return index
            except QueueStoreError:
                continue
        return None

    async def is_in_flight(self, job_id: str) -> bool:
        return await self._storage.get(keys.claim_key(job_id)) is not None

    async def stats(self) -> QueueStats:
        """Return an eventually consistent snapshot of the queue."""
        queue_length = await self._storage.list_length(keys.SCRAPE_QUEUE)
        in_flight = await self._storage.count_prefix(keys.claim_prefix())
        counters = await self._storage.get_counters(keys.SCRAPE_STATS)
        return QueueStats(
            queue_length=queue_length,
            in_flight_count=in_flight,
            completed_today=counters.get(keys.COMPLETED_TODAY, 0),
            failed_today=counters.get(keys.FAILED_TODAY, 0),
        )

    async def reset_daily_counters(self) -> None:
        """Zero ``completed_today`` and ``failed_today``."""
        await self._storage.reset_counters(keys.SCRAPE_STATS, keys.DAILY_COUNTERS)
        logger.info("queue: daily counters reset")
