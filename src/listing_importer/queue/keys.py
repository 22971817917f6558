"""Redis key names for the scrape queue.

All three structures live in the same Redis database as plain keys so that
any process holding ``redis_url`` shares one view of the queue:

- ``SCRAPE_QUEUE``       - list; RPUSH at the tail, LPOP at the head (FIFO).
- ``SCRAPE_PROCESSING``  - prefix for per-job claim keys
  (``queue:scrape:processing:{job_id}``), each written with a TTL.
- ``SCRAPE_STATS``       - hash of observability counters.
"""

from __future__ import annotations

SCRAPE_QUEUE: str = "queue:scrape"
SCRAPE_PROCESSING: str = "queue:scrape:processing"
SCRAPE_STATS: str = "queue:scrape:stats"

#: Counter fields inside :data:`SCRAPE_STATS`.
TOTAL_QUEUED: str = "total_queued"
COMPLETED_TODAY: str = "completed_today"
FAILED_TODAY: str = "failed_today"

#: Counters cleared by the midnight reset task.
DAILY_COUNTERS: tuple[str, ...] = (COMPLETED_TODAY, FAILED_TODAY)


def claim_key(job_id: str) -> str:
    """Return the in-flight claim key for *job_id*."""
    return f"{SCRAPE_PROCESSING}:{job_id}"


def claim_prefix() -> str:
    """Return the prefix shared by every claim key (including the separator)."""
    return f"{SCRAPE_PROCESSING}:"
