"""Application-wide exception hierarchy for Listing Importer.

All custom exceptions subclass ``ListingImporterError``, enabling
consistent error handling and structured logging across the application.

Hierarchy::

    ListingImporterError
    ├── QueueStoreError
    ├── ExtractionError
    │   ├── ProviderError            (provider: str)
    │   └── ProviderExhaustedError   (attempts: list[tuple[str, str]])
    ├── GenerationError
    │   ├── GenerationAuthError
    │   └── GenerationRateLimitError (retry_after: float)
    ├── EnrichmentError
    └── RecordNotFoundError

``capacity_exhausted`` is deliberately absent: a full admission gate is a
normal outcome of a worker cycle, not an exception.
"""

from __future__ import annotations


class ListingImporterError(Exception):
    """Base class for all Listing Importer exceptions.

    All application-specific exceptions inherit from this class so that
    callers can catch the entire hierarchy with a single ``except`` clause
    when needed.
    """


# ---------------------------------------------------------------------------
# Queue exceptions
# ---------------------------------------------------------------------------


class QueueStoreError(ListingImporterError):
    """Raised when a queue payload cannot be encoded or decoded."""


# ---------------------------------------------------------------------------
# Extraction exceptions
# ---------------------------------------------------------------------------


class ExtractionError(ListingImporterError):
    """Base class for content extraction failures."""


class ProviderError(ExtractionError):
    """Raised when a single extraction provider fails for a URL.

    Non-fatal to the extraction call: the layer moves on to the next
    provider in its fallback order.

    Args:
        message: Human-readable description of the failure.
        provider: Name of the provider that failed (e.g. ``"firecrawl"``).
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class ProviderExhaustedError(ExtractionError):
    """Raised when every extraction provider failed for a URL.

    Fatal to the job: the worker moves the record to ``error``.

    Args:
        url: The URL that could not be extracted.
        attempts: ``(provider, error message)`` pairs in the order tried.
    """

    def __init__(self, url: str, attempts: list[tuple[str, str]] | None = None) -> None:
        self.url = url
        self.attempts = list(attempts or [])
        if self.attempts:
            detail = "; ".join(f"{name}: {error}" for name, error in self.attempts)
            message = f"All extraction providers failed for {url} ({detail})"
        else:
            message = f"No extraction provider is available for {url}"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Generation exceptions
# ---------------------------------------------------------------------------


class GenerationError(ListingImporterError):
    """Raised when the structured-generation service call fails or returns
    unusable output."""


class GenerationAuthError(GenerationError):
    """Raised on HTTP 401/403 from the generation service (invalid API key)."""


class GenerationRateLimitError(GenerationError):
    """Raised on HTTP 429 from the generation service.

    Args:
        message: Human-readable description of the rate limit.
        retry_after: Seconds to wait before retrying. Defaults to 60.
    """

    def __init__(self, message: str, retry_after: float = 60.0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class EnrichmentError(ListingImporterError):
    """Raised when the enrichment step cannot produce a configuration.

    The worker treats this as degraded quality, never as a job failure.
    """


# ---------------------------------------------------------------------------
# Record exceptions
# ---------------------------------------------------------------------------


class RecordNotFoundError(ListingImporterError):
    """Raised when a persistent record does not exist.

    Args:
        record_id: Identifier of the missing record.
    """

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Import record '{record_id}' not found")
        self.record_id = record_id
