"""Content extraction entry point: provider fallback plus normalization.

:class:`ContentExtractor` tries each applicable provider in order and turns
the first usable payload into an :class:`ExtractionResult`.  Provider order:

1. URL-specific providers (Apify actors), which only handle their own sites.
2. The generic providers from ``SCRAPER_PROVIDERS``
   (default ``firecrawl, scraperapi, direct``).

Providers without credentials are never constructed.  A provider that raises
or returns no readable content is recorded and the next one is tried.  When
none succeeds, :class:`~listing_importer.core.exceptions.ProviderExhaustedError`
carries every ``(provider, error)`` pair.  The whole call, including all
fallbacks, is bounded by one timeout.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import TYPE_CHECKING, Sequence

import httpx

from listing_importer.core.exceptions import ProviderError, ProviderExhaustedError
from listing_importer.extraction.apify import ApifyProvider
from listing_importer.extraction.base import ExtractionProvider, ExtractionResult, ProviderPayload
from listing_importer.extraction.cleaners import cleaner_for
from listing_importer.extraction.config import (
    DEFAULT_SCRAPE_TIMEOUT,
    PROVIDER_DIRECT,
    PROVIDER_FIRECRAWL,
    PROVIDER_SCRAPERAPI,
)
from listing_importer.extraction.firecrawl import FirecrawlProvider
from listing_importer.extraction.http_fetcher import DirectHttpProvider
from listing_importer.extraction.json_text import format_json_as_text
from listing_importer.extraction.normalize import (
    extract_structured_data,
    finalize_text,
    normalize_html,
)
from listing_importer.extraction.processors import extract_gallery_images, process_html
from listing_importer.extraction.scraperapi import ScraperApiProvider

if TYPE_CHECKING:
    from listing_importer.config.settings import Settings

logger = logging.getLogger(__name__)


def _record_attempt(provider: str, status: str) -> None:
    try:
        from listing_importer.api.metrics import (  # noqa: PLC0415
            extraction_provider_attempts_total,
        )

        extraction_provider_attempts_total.labels(provider=provider, status=status).inc()
    except Exception as exc:  # noqa: BLE001
        logger.debug("scraper: metrics recording failed: %s", exc)


def build_providers(settings: "Settings") -> list[ExtractionProvider]:
    """Construct the provider chain described by *settings*.

    Apify comes first when a token is configured.  Generic providers follow
    in ``scraper_providers`` order; those missing credentials are skipped
    with a log line.
    """
    providers: list[ExtractionProvider] = []
    if settings.apify_api_token:
        providers.append(ApifyProvider(settings.apify_api_token, settings.apify_api_url))

    for name in settings.scraper_providers:
        if name == PROVIDER_FIRECRAWL:
            if settings.firecrawl_api_key:
                providers.append(
                    FirecrawlProvider(settings.firecrawl_api_key, settings.firecrawl_api_url)
                )
            else:
                logger.info("scraper: firecrawl disabled (FIRECRAWL_API_KEY not set)")
        elif name == PROVIDER_SCRAPERAPI:
            if settings.scraperapi_key:
                providers.append(ScraperApiProvider(settings.scraperapi_key, settings.scraperapi_url))
            else:
                logger.info("scraper: scraperapi disabled (SCRAPERAPI_KEY not set)")
        elif name == PROVIDER_DIRECT:
            providers.append(DirectHttpProvider())
        else:
            logger.warning("scraper: unknown provider '%s' in SCRAPER_PROVIDERS", name)
    return providers


class ContentExtractor:
    """Fetch and normalize listing content with provider fallback.

    Args:
        providers: Providers in the order they should be tried.
        client: Optional shared HTTP client.  When omitted a client is
            opened per :meth:`extract` call.
        default_timeout: Budget used when :meth:`extract` is called without
            one.
    """

    def __init__(
        self,
        providers: Sequence[ExtractionProvider],
        *,
        client: httpx.AsyncClient | None = None,
        default_timeout: float = DEFAULT_SCRAPE_TIMEOUT,
    ) -> None:
        self._providers = list(providers)
        self._client = client
        self._default_timeout = default_timeout

    @classmethod
    def from_settings(
        cls, settings: "Settings", *, client: httpx.AsyncClient | None = None
    ) -> "ContentExtractor":
        return cls(
            build_providers(settings),
            client=client,
            default_timeout=settings.scrape_timeout_seconds,
        )

    @property
    def providers(self) -> list[ExtractionProvider]:
        return list(self._providers)

    def providers_for(self, url: str) -> list[ExtractionProvider]:
        """Providers that handle *url*, in fallback order."""
        return [provider for provider in self._providers if provider.handles(url)]

    async def extract(self, url: str, *, timeout: float | None = None) -> ExtractionResult:
        """Extract normalized content for *url*.

        Args:
            url: Listing URL.
            timeout: Budget in seconds for the whole call, fallbacks included.

        Returns:
            An :class:`ExtractionResult` with non-empty ``normalized_content``.

        Raises:
            ProviderExhaustedError: If no provider produced readable content
                within the budget.
        """
        budget = timeout if timeout is not None else self._default_timeout
        attempts: list[tuple[str, str]] = []
        started = time.perf_counter()
        try:
            if self._client is not None:
                result = await asyncio.wait_for(
                    self._try_providers(url, self._client, budget, attempts), timeout=budget
                )
            else:
                async with httpx.AsyncClient() as client:
                    result = await asyncio.wait_for(
                        self._try_providers(url, client, budget, attempts), timeout=budget
                    )
        except asyncio.TimeoutError:
            attempts.append(("timeout", f"extraction exceeded {budget:.0f}s"))
            logger.warning("scraper: extraction of %s timed out after %.0fs", url, budget)
            raise ProviderExhaustedError(url, attempts) from None

        if result is None:
            raise ProviderExhaustedError(url, attempts)
        result.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "scraper: extracted %s via %s (%d chars, %d images, %dms)",
            url,
            result.source_tag,
            len(result.normalized_content),
            len(result.media_urls),
            result.duration_ms,
        )
        return result

    async def _try_providers(
        self,
        url: str,
        client: httpx.AsyncClient,
        budget: float,
        attempts: list[tuple[str, str]],
    ) -> ExtractionResult | None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + budget
        for provider in self.providers_for(url):
            remaining = max(deadline - loop.time(), 0.0)
            try:
                payload = await provider.fetch(url, client=client, timeout=remaining)
            except ProviderError as exc:
                logger.warning("scraper: provider %s failed for %s: %s", provider.name, url, exc)
                attempts.append((provider.name, str(exc)))
                _record_attempt(provider.name, "error")
                continue
            except httpx.HTTPError as exc:
                logger.warning("scraper: provider %s HTTP error for %s: %s", provider.name, url, exc)
                attempts.append((provider.name, f"HTTP error: {exc}"))
                _record_attempt(provider.name, "error")
                continue
            except Exception as exc:  # noqa: BLE001
                logger.exception("scraper: provider %s crashed for %s", provider.name, url)
                attempts.append((provider.name, f"Unexpected error: {exc}"))
                _record_attempt(provider.name, "error")
                continue

            try:
                result = self.build_result(url, payload)
            except Exception as exc:  # noqa: BLE001
                logger.exception(
                    "scraper: normalizing %s output failed for %s", provider.name, url
                )
                attempts.append((provider.name, f"Normalization failed: {exc}"))
                _record_attempt(provider.name, "error")
                continue
            if not result.normalized_content.strip():
                logger.warning("scraper: provider %s returned no content for %s", provider.name, url)
                attempts.append((provider.name, "no content extracted"))
                _record_attempt(provider.name, "empty")
                continue

            _record_attempt(provider.name, "success")
            return result
        return None

    @staticmethod
    def build_result(url: str, payload: ProviderPayload) -> ExtractionResult:
        """Normalize one provider payload.

        JSON payloads are cleaned with the per-site cleaner and rendered as
        labelled text.  Page payloads are narrowed by the host processor;
        provider markdown is preferred over the HTML text pass when present.
        """
        source_tag = payload.source_tag or payload.provider

        if payload.json_data is not None:
            scraper_id = source_tag.removeprefix("apify_")
            cleaner = cleaner_for(scraper_id)
            cleaned = cleaner(payload.json_data) if cleaner else payload.json_data
            return ExtractionResult(
                raw_content=json.dumps(cleaned, indent=2, ensure_ascii=False),
                normalized_content=finalize_text(format_json_as_text(cleaned), url=url),
                structured_data=cleaned,
                provider=payload.provider,
                source_tag=source_tag,
            )

        html = payload.html
        normalized = finalize_text(payload.markdown, url=url)
        if not normalized and html:
            normalized = normalize_html(process_html(url, html), url=url)

        gallery_html = payload.gallery_html
        gallery_text = normalize_html(gallery_html, url=url) if gallery_html else None

        return ExtractionResult(
            raw_content=html,
            normalized_content=normalized,
            structured_data=extract_structured_data(html),
            media_urls=extract_gallery_images(url, gallery_html or html),
            gallery_raw_content=gallery_html,
            gallery_normalized_content=gallery_text or None,
            provider=payload.provider,
            source_tag=source_tag,
        )
