"""ScraperAPI provider: proxied GET through ``api.scraperapi.com``."""

from __future__ import annotations

import logging

import httpx

from listing_importer.core.exceptions import ProviderError
from listing_importer.extraction.base import ExtractionProvider, ProviderPayload
from listing_importer.extraction.config import PROVIDER_SCRAPERAPI

logger = logging.getLogger(__name__)


class ScraperApiProvider(ExtractionProvider):
    """Fetch page HTML through ScraperAPI's rotating proxy pool.

    Args:
        api_key: ScraperAPI key.
        base_url: Endpoint, ``http://api.scraperapi.com/`` by default.
    """

    name = PROVIDER_SCRAPERAPI

    def __init__(self, api_key: str, base_url: str = "http://api.scraperapi.com/") -> None:
        self._api_key = api_key
        self._base_url = base_url

    async def fetch(
        self,
        url: str,
        *,
        client: httpx.AsyncClient,
        timeout: float,
    ) -> ProviderPayload:
        logger.info("scraper: scraperapi fetching %s", url)
        try:
            response = await client.get(
                self._base_url,
                params={"api_key": self._api_key, "url": url},
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"ScraperAPI timeout after {timeout:.0f} seconds", provider=self.name
            ) from exc
        except httpx.RequestError as exc:
            raise ProviderError(f"ScraperAPI request error: {exc}", provider=self.name) from exc

        if response.status_code >= 400:
            raise ProviderError(
                f"ScraperAPI error: {response.status_code} {response.reason_phrase}",
                provider=self.name,
            )

        html = response.text
        logger.info("scraper: scraperapi returned %d chars for %s", len(html), url)
        return ProviderPayload(provider=self.name, html=html, source_tag=self.name)
