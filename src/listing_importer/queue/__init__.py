"""Redis-backed FIFO scrape queue with TTL claims and counters."""

from listing_importer.queue.models import Job, QueueStats
from listing_importer.queue.storage import (
    InMemoryQueueStorage,
    QueueStorage,
    RedisQueueStorage,
)
from listing_importer.queue.store import QueueStore

__all__ = [
    "InMemoryQueueStorage",
    "Job",
    "QueueStats",
    "QueueStorage",
    "QueueStore",
    "RedisQueueStorage",
]
