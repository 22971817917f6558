"""Provider interface and result types for the content extraction layer."""

from __future__ import annotations

import urllib.parse
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ProviderPayload:
    """Unprocessed output of one provider fetch.

    A provider returns whichever forms it produces; the extraction service
    decides how to normalize them.

    Attributes:
        provider: Name of the provider that produced the payload.
        html: Page HTML, if the provider returns markup.
        markdown: Provider-rendered markdown (Firecrawl).
        json_data: Structured records (Apify dataset items).
        gallery_html: HTML captured after a gallery-expanding browser action.
        source_tag: Finer-grained origin, e.g. ``"apify_zillow"``.
        final_url: URL after redirects, when known.
    """

    provider: str
    html: str | None = None
    markdown: str | None = None
    json_data: Any = None
    gallery_html: str | None = None
    source_tag: str | None = None
    final_url: str | None = None


@dataclass
class ExtractionResult:
    """Normalized content for one listing URL.

    Attributes:
        raw_content: The provider's raw output.  HTML for page providers,
            pretty-printed cleaned JSON for Apify.
        normalized_content: LLM-ready text.  Never empty on a returned result.
        structured_data: Embedded machine-readable data (JSON-LD, Next.js
            hydration data, OpenGraph) or the cleaned Apify records.
        media_urls: Gallery image URLs, de-duplicated, in page order.
        gallery_raw_content: HTML of the expanded gallery, if captured.
        gallery_normalized_content: Text form of ``gallery_raw_content``.
        provider: Provider that produced the result.
        source_tag: Finer-grained origin (``apify_zillow``, ``firecrawl``...).
        duration_ms: Wall-clock time of the whole extraction call.
    """

    raw_content: str | None
    normalized_content: str
    structured_data: Any = None
    media_urls: list[str] = field(default_factory=list)
    gallery_raw_content: str | None = None
    gallery_normalized_content: str | None = None
    provider: str = ""
    source_tag: str = ""
    duration_ms: int = 0

    @property
    def content_type(self) -> str:
        """``"structured"`` for JSON-derived content, else ``"text"``."""
        return "structured" if self.provider == "apify" else "text"


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------


def hostname_of(url: str) -> str:
    """Return the lower-cased hostname of *url*, or ``""`` if unparseable."""
    try:
        return (urllib.parse.urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def host_matches(url: str, domain: str) -> bool:
    """Return ``True`` if *url* is on *domain* or its ``www.`` host."""
    host = hostname_of(url)
    return host == domain or host == f"www.{domain}"


# ---------------------------------------------------------------------------
# Provider interface
# ---------------------------------------------------------------------------


class ExtractionProvider(ABC):
    """A single way of fetching raw content for a URL.

    Subclasses set :attr:`name` and implement :meth:`fetch`.  Providers that
    only support some sites override :meth:`handles`.  Any failure inside
    :meth:`fetch` must surface as
    :class:`~listing_importer.core.exceptions.ProviderError` so that the
    extraction service can fall through to the next provider.
    """

    name: str = ""

    def handles(self, url: str) -> bool:  # noqa: ARG002
        """Return ``True`` if this provider can fetch *url*."""
        return True

    @abstractmethod
    async def fetch(
        self,
        url: str,
        *,
        client: httpx.AsyncClient,
        timeout: float,
    ) -> ProviderPayload:
        """Fetch *url* and return the provider's raw payload.

        Args:
            url: Listing URL.
            client: Shared HTTP client.
            timeout: Remaining budget for this provider in seconds.

        Raises:
            ProviderError: On any failure.
        """
