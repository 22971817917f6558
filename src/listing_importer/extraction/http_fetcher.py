"""Direct HTTP provider: a plain ``httpx`` GET of the listing page.

Last-resort fallback when no scraping service is configured or all of them
failed.  Listing portals commonly block bare clients, so this provider
mostly succeeds on agency sites and simple pages.
"""

from __future__ import annotations

import logging

import httpx

from listing_importer.core.exceptions import ProviderError
from listing_importer.extraction.base import ExtractionProvider, ProviderPayload
from listing_importer.extraction.config import (
    BINARY_CONTENT_TYPES,
    DIRECT_FETCH_TIMEOUT,
    PROVIDER_DIRECT,
    USER_AGENT,
)

logger = logging.getLogger(__name__)


def _is_binary_content_type(content_type: str) -> bool:
    """Return ``True`` if the Content-Type indicates a non-text binary resource."""
    ct = content_type.lower().split(";")[0].strip()
    return any(ct.startswith(prefix) for prefix in BINARY_CONTENT_TYPES)


class DirectHttpProvider(ExtractionProvider):
    """Fetch the page with a single GET, following redirects."""

    name = PROVIDER_DIRECT

    async def fetch(
        self,
        url: str,
        *,
        client: httpx.AsyncClient,
        timeout: float,
    ) -> ProviderPayload:
        """GET *url* and return its HTML.

        Checks, in order: transport errors, HTTP error status, binary
        content-type.  Each maps to a :class:`ProviderError`.
        """
        try:
            response = await client.get(
                url,
                timeout=min(timeout, DIRECT_FETCH_TIMEOUT),
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            )
        except httpx.TimeoutException as exc:
            logger.warning("scraper: timeout fetching %s", url)
            raise ProviderError("timeout", provider=self.name) from exc
        except httpx.TooManyRedirects as exc:
            logger.warning("scraper: too many redirects for %s", url)
            raise ProviderError("too many redirects", provider=self.name) from exc
        except httpx.RequestError as exc:
            logger.warning("scraper: request error for %s: %s", url, exc)
            raise ProviderError(f"request error: {exc}", provider=self.name) from exc

        if response.status_code >= 400:
            logger.info("scraper: HTTP %d for %s", response.status_code, url)
            raise ProviderError(f"HTTP {response.status_code}", provider=self.name)

        content_type = response.headers.get("content-type", "")
        if _is_binary_content_type(content_type):
            logger.info("scraper: skipping binary content-type '%s' for %s", content_type, url)
            raise ProviderError(f"binary content-type: {content_type}", provider=self.name)

        return ProviderPayload(
            provider=self.name,
            html=response.text,
            source_tag=self.name,
            final_url=str(response.url),
        )
