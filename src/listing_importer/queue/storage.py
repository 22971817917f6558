"""Key-value storage primitives behind the scrape queue.

:class:`~listing_importer.queue.store.QueueStore` never talks to Redis
directly; it is built on the narrow :class:`QueueStorage` interface so the
orchestration logic can run against :class:`InMemoryQueueStorage` in tests
and single-process development, and against :class:`RedisQueueStorage` in
production.

Primitives:

- list push (tail) / pop (head) / length / full range
- keyed set with TTL, get, delete, count-by-prefix
- atomic hash-field increment, read and reset
- pop-head-and-claim: remove the head entry and write its claim key in one
  step (a Lua script on Redis)
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


def job_id_of(raw: str) -> str | None:
    """Return the string ``id`` of a JSON queue entry, or ``None`` if there is none."""
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    job_id = payload.get("id")
    return job_id if isinstance(job_id, str) and job_id else None


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class QueueStorage(ABC):
    """Abstract key-value backend for the queue, claims and counters."""

    @abstractmethod
    async def push_tail(self, list_key: str, value: str) -> int:
        """Append *value* to the list; return the list length after the push."""

    @abstractmethod
    async def pop_head(self, list_key: str) -> str | None:
        """Remove and return the head of the list, or ``None`` if empty."""

    @abstractmethod
    async def list_length(self, list_key: str) -> int:
        """Return the number of entries in the list."""

    @abstractmethod
    async def list_range(self, list_key: str) -> list[str]:
        """Return every entry of the list, head first."""

    @abstractmethod
    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        """Write *key* with an expiry."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value at *key*, or ``None`` if missing or expired."""

    @abstractmethod
    async def delete(self, key: str) -> int:
        """Delete *key*; return the number of keys removed (0 if absent)."""

    @abstractmethod
    async def count_prefix(self, prefix: str) -> int:
        """Return how many live keys start with *prefix*."""

    @abstractmethod
    async def increment(self, hash_key: str, field: str, amount: int = 1) -> int:
        """Atomically add *amount* to a hash field; return the new value."""

    @abstractmethod
    async def get_counters(self, hash_key: str) -> dict[str, int]:
        """Return every field of the counter hash as integers."""

    @abstractmethod
    async def reset_counters(self, hash_key: str, fields: tuple[str, ...]) -> None:
        """Set the given counter fields back to zero."""

    async def pop_head_and_claim(
        self, list_key: str, claim_prefix: str, ttl_seconds: int
    ) -> str | None:
        """Pop the head entry and write ``{claim_prefix}{id}`` with a TTL.

        The default implementation composes :meth:`pop_head` and
        :meth:`set_with_ttl`.  Backends that can do both in one round trip
        override it.  An entry without a readable ``id`` is returned
        unclaimed so the caller can discard it.
        """
        raw = await self.pop_head(list_key)
        if raw is None:
            return None
        job_id = job_id_of(raw)
        if job_id is not None:
            await self.set_with_ttl(f"{claim_prefix}{job_id}", raw, ttl_seconds)
        return raw

    async def ping(self) -> bool:
        """Return ``True`` if the backend is reachable."""
        return True

    async def close(self) -> None:
        """Release backend resources."""


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryQueueStorage(QueueStorage):
    """Process-local backend with lazy TTL expiry.

    None of the methods await, so each one is atomic with respect to other
    coroutines on the same event loop.

    Args:
        clock: Monotonic time source in seconds.  Tests inject a fake clock
            to expire claims without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lists: dict[str, deque[str]] = {}
        self._values: dict[str, tuple[str, float]] = {}
        self._hashes: dict[str, dict[str, int]] = {}

    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [k for k, (_, expires_at) in self._values.items() if expires_at <= now]:
            del self._values[key]

    async def push_tail(self, list_key: str, value: str) -> int:
        entries = self._lists.setdefault(list_key, deque())
        entries.append(value)
        return len(entries)

    async def pop_head(self, list_key: str) -> str | None:
        entries = self._lists.get(list_key)
        if not entries:
            return None
        return entries.popleft()

    async def list_length(self, list_key: str) -> int:
        return len(self._lists.get(list_key, ()))

    async def list_range(self, list_key: str) -> list[str]:
        return list(self._lists.get(list_key, ()))

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        self._values[key] = (value, self._clock() + ttl_seconds)

    async def get(self, key: str) -> str | None:
        self._purge_expired()
        entry = self._values.get(key)
        return entry[0] if entry else None

    async def delete(self, key: str) -> int:
        self._purge_expired()
        return 1 if self._values.pop(key, None) is not None else 0

    async def count_prefix(self, prefix: str) -> int:
        self._purge_expired()
        return sum(1 for key in self._values if key.startswith(prefix))

    async def increment(self, hash_key: str, field: str, amount: int = 1) -> int:
        counters = self._hashes.setdefault(hash_key, {})
        counters[field] = counters.get(field, 0) + amount
        return counters[field]

    async def get_counters(self, hash_key: str) -> dict[str, int]:
        return dict(self._hashes.get(hash_key, {}))

    async def reset_counters(self, hash_key: str, fields: tuple[str, ...]) -> None:
        counters = self._hashes.setdefault(hash_key, {})
        for field in fields:
            counters[field] = 0


# ---------------------------------------------------------------------------
# Redis backend
# ---------------------------------------------------------------------------

# Atomic pop-and-claim.
#
# KEYS[1]  - queue list key
# ARGV[1]  - claim key prefix (including the trailing ':')
# ARGV[2]  - claim TTL in seconds
#
# Returns the popped entry, or false if the list is empty.  Entries whose
# JSON has no non-empty string id are returned without a claim.
_LUA_POP_AND_CLAIM = """
local raw = redis.call('LPOP', KEYS[1])
if not raw then
    return false
end
local ok, decoded = pcall(cjson.decode, raw)
if ok and type(decoded) == 'table' and type(decoded['id']) == 'string' and decoded['id'] ~= '' then
    redis.call('SET', ARGV[1] .. decoded['id'], raw, 'EX', tonumber(ARGV[2]))
end
return raw
"""


class RedisQueueStorage(QueueStorage):
    """Redis backend using ``redis.asyncio``.

    Typical usage::

        storage = RedisQueueStorage.from_url(settings.redis_url)
        store = QueueStore(storage, claim_ttl_seconds=settings.claim_ttl_seconds)

    Args:
        client: A ``redis.asyncio.Redis`` created with ``decode_responses=True``.
    """

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client
        self._pop_and_claim = client.register_script(_LUA_POP_AND_CLAIM)

    @classmethod
    def from_url(cls, url: str) -> "RedisQueueStorage":
        """Build a backend from a ``redis://`` URL."""
        return cls(aioredis.from_url(url, decode_responses=True))

    async def push_tail(self, list_key: str, value: str) -> int:
        return int(await self._client.rpush(list_key, value))

    async def pop_head(self, list_key: str) -> str | None:
        return await self._client.lpop(list_key)

    async def list_length(self, list_key: str) -> int:
        return int(await self._client.llen(list_key) or 0)

    async def list_range(self, list_key: str) -> list[str]:
        return list(await self._client.lrange(list_key, 0, -1))

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._client.set(key, value, ex=ttl_seconds)

    async def get(self, key: str) -> str | None:
        return await self._client.get(key)

    async def delete(self, key: str) -> int:
        return int(await self._client.delete(key))

    async def count_prefix(self, prefix: str) -> int:
        # SCAN rather than KEYS so a large keyspace does not block the server.
        count = 0
        async for _ in self._client.scan_iter(match=f"{prefix}*", count=500):
            count += 1
        return count

    async def increment(self, hash_key: str, field: str, amount: int = 1) -> int:
        return int(await self._client.hincrby(hash_key, field, amount))

    async def get_counters(self, hash_key: str) -> dict[str, int]:
        raw = await self._client.hgetall(hash_key)
        counters: dict[str, int] = {}
        for field, value in (raw or {}).items():
            try:
                counters[field] = int(value)
            except (TypeError, ValueError):
                logger.warning("queue: non-integer counter %s=%r in %s", field, value, hash_key)
        return counters

    async def reset_counters(self, hash_key: str, fields: tuple[str, ...]) -> None:
        if fields:
            await self._client.hset(hash_key, mapping={field: 0 for field in fields})

    async def pop_head_and_claim(
        self, list_key: str, claim_prefix: str, ttl_seconds: int
    ) -> str | None:
        raw = await self._pop_and_claim(keys=[list_key], args=[claim_prefix, ttl_seconds])
        return raw or None

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()
