"""Shared pytest fixtures for Listing Importer tests.

Fixture summary
---------------
clock             - Controllable monotonic clock for claim TTL expiry.
queue_store       - QueueStore over InMemoryQueueStorage driven by ``clock``.
record_store      - InMemoryRecordStore.
extractor         - StubExtractor returning canned ExtractionResults.
generation_client - StubGenerationClient returning canned JSON per call.
generator         - StructuredGenerator over ``generation_client``.
worker            - ScrapeWorker wired from the fixtures above (no trigger).

None of these need Redis, PostgreSQL or network access.  Tests that talk
HTTP mock it with respx; the SQL record store tests use aiosqlite.
"""

from __future__ import annotations

import os
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Set env vars before any application module is imported so Settings() reads
# test values during collection.

_TEST_ENV_DEFAULTS: dict[str, str] = {
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "REDIS_URL": "redis://localhost:6379/15",
    "ENVIRONMENT": "test",
    "CASCADE_MODE": "none",
    "INTERNAL_API_TOKEN": "test-internal-token",
    "OPENAI_API_KEY": "test-openai-key",
    "METRICS_ENABLED": "true",
}

for _key, _default in _TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(_key, _default)

# ---------------------------------------------------------------------------
# Application imports (after env bootstrap)
# ---------------------------------------------------------------------------

from listing_importer.config.settings import get_settings  # noqa: E402
from listing_importer.extraction.base import ExtractionResult  # noqa: E402
from listing_importer.generation.client import GenerationResponse, utc_now_iso  # noqa: E402
from listing_importer.generation.config import BASE_TEMPERATURE  # noqa: E402
from listing_importer.generation.service import StructuredGenerator  # noqa: E402
from listing_importer.queue.storage import InMemoryQueueStorage  # noqa: E402
from listing_importer.queue.store import QueueStore  # noqa: E402
from listing_importer.records.store import InMemoryRecordStore  # noqa: E402
from listing_importer.workers.orchestrator import ScrapeWorker  # noqa: E402

# Clear the lru_cache so Settings() re-reads from the patched environment.
get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Canned data
# ---------------------------------------------------------------------------

BASE_CONFIG: dict[str, Any] = {
    "description": "Bright three-bedroom house close to the park.",
    "title": "House on Elm Street",
    "language": "en",
    "beds": 3,
    "baths": 2,
    "property_type": "HOUSE",
    "address": {"city": "Springfield", "street": "12 Elm St"},
    "price_info": {"price": 450000},
    "highlights": [{"value": "Large", "title": "Garden", "icon": "tree"}],
}

REFINED: dict[str, Any] = {
    "title": "Sunny Family Home Near Springfield Park",
    "subtitle": "3 beds, 2 baths and a large garden",
    "highlights": [
        {"title": "Garden", "value": "Large lawn", "icon": "tree"},
        {"title": "Location", "value": "Next to the park", "icon": "map-pin"},
    ],
}


def make_extraction(**overrides: Any) -> ExtractionResult:
    fields: dict[str, Any] = {
        "raw_content": "<html><body><h1>House on Elm Street</h1></body></html>",
        "normalized_content": "# House on Elm Street\n\n3 beds, 2 baths. $450,000.",
        "structured_data": {"metadata": {"title": "House on Elm Street"}},
        "media_urls": ["https://img.example.com/1.jpg"],
        "provider": "direct",
        "source_tag": "direct",
    }
    fields.update(overrides)
    return ExtractionResult(**fields)


# ---------------------------------------------------------------------------
# Stubs
# ---------------------------------------------------------------------------


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubExtractor:
    """Stands in for ContentExtractor.

    ``failures`` maps a URL to the exception its extraction raises; every
    other URL yields ``result``.
    """

    def __init__(self) -> None:
        self.result = make_extraction()
        self.failures: dict[str, BaseException] = {}
        self.calls: list[tuple[str, float | None]] = []

    async def extract(self, url: str, *, timeout: float | None = None) -> ExtractionResult:
        self.calls.append((url, timeout))
        if url in self.failures:
            raise self.failures[url]
        return self.result


class StubGenerationClient:
    """Stands in for GenerationClient.

    The base call (temperature 0.3) returns ``base``; the refinement call
    returns ``refinement``.  Setting ``base_error`` / ``refine_error`` makes
    the matching call raise instead.
    """

    def __init__(self) -> None:
        self.base: dict[str, Any] = dict(BASE_CONFIG)
        self.refinement: dict[str, Any] = dict(REFINED)
        self.base_error: BaseException | None = None
        self.refine_error: BaseException | None = None
        self.calls: list[dict[str, Any]] = []

    async def complete_json(
        self,
        messages: list[dict[str, str]],
        *,
        model: str,
        temperature: float,
    ) -> GenerationResponse:
        is_base = temperature == BASE_TEMPERATURE
        self.calls.append({"messages": messages, "model": model, "temperature": temperature})
        error = self.base_error if is_base else self.refine_error
        if error is not None:
            raise error
        now = utc_now_iso()
        return GenerationResponse(
            data=dict(self.base if is_base else self.refinement),
            usage={"prompt_tokens": 100, "completion_tokens": 50, "total_tokens": 150},
            started_at=now,
            completed_at=now,
            duration_ms=5,
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def queue_store(clock: FakeClock) -> QueueStore:
    return QueueStore(InMemoryQueueStorage(clock=clock), claim_ttl_seconds=300)


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def extractor() -> StubExtractor:
    return StubExtractor()


@pytest.fixture
def generation_client() -> StubGenerationClient:
    return StubGenerationClient()


@pytest.fixture
def generator(generation_client: StubGenerationClient) -> StructuredGenerator:
    return StructuredGenerator(generation_client, model="test-model")  # type: ignore[arg-type]


@pytest.fixture
def worker(
    queue_store: QueueStore,
    record_store: InMemoryRecordStore,
    extractor: StubExtractor,
    generator: StructuredGenerator,
) -> ScrapeWorker:
    return ScrapeWorker(
        queue_store,
        record_store,
        extractor,  # type: ignore[arg-type]
        generator,
        max_concurrent=2,
        scrape_timeout=30.0,
    )
