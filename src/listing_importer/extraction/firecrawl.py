"""Firecrawl provider: headless-browser scrape via the Firecrawl REST API.

Requests markdown and HTML in one call.  For hosts with browser actions
(see :mod:`listing_importer.extraction.actions`) the second in-action
``scrape`` result is returned as the gallery HTML.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from listing_importer.core.exceptions import ProviderError
from listing_importer.extraction.actions import firecrawl_actions_for
from listing_importer.extraction.base import ExtractionProvider, ProviderPayload
from listing_importer.extraction.config import PROVIDER_FIRECRAWL

logger = logging.getLogger(__name__)

_SCRAPE_PATH = "/v1/scrape"


class FirecrawlProvider(ExtractionProvider):
    """Scrape through Firecrawl.

    Args:
        api_key: Firecrawl bearer key.
        base_url: API root, ``https://api.firecrawl.dev`` by default.
    """

    name = PROVIDER_FIRECRAWL

    def __init__(self, api_key: str, base_url: str = "https://api.firecrawl.dev") -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    def _build_body(self, url: str, timeout: float) -> dict[str, Any]:
        body: dict[str, Any] = {
            "url": url,
            "formats": ["markdown", "html", "rawHtml"],
            "timeout": int(timeout * 1000),
        }
        actions = firecrawl_actions_for(url)
        if actions:
            body["actions"] = actions
        return body

    async def fetch(
        self,
        url: str,
        *,
        client: httpx.AsyncClient,
        timeout: float,
    ) -> ProviderPayload:
        body = self._build_body(url, timeout)
        logger.info(
            "scraper: firecrawl scraping %s (actions=%d)", url, len(body.get("actions", []))
        )
        try:
            response = await client.post(
                f"{self._base_url}{_SCRAPE_PATH}",
                json=body,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"Firecrawl timeout after {timeout:.0f} seconds", provider=self.name
            ) from exc
        except httpx.RequestError as exc:
            raise ProviderError(f"Firecrawl request error: {exc}", provider=self.name) from exc

        if response.status_code >= 400:
            raise ProviderError(
                f"Firecrawl error: HTTP {response.status_code}", provider=self.name
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("Firecrawl returned invalid JSON", provider=self.name) from exc

        if not isinstance(payload, dict):
            raise ProviderError("Firecrawl returned an unexpected response shape", provider=self.name)
        if not payload.get("success", True):
            raise ProviderError(
                f"Firecrawl error: {payload.get('error') or 'unknown error'}", provider=self.name
            )

        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise ProviderError("Firecrawl returned non-object data", provider=self.name)
        markdown = data.get("markdown") or None
        html = data.get("rawHtml") or data.get("html") or None
        if not markdown and not html:
            raise ProviderError("Firecrawl returned empty content", provider=self.name)

        gallery_html = None
        actions = data.get("actions")
        scrapes = (actions.get("scrapes") if isinstance(actions, dict) else None) or []
        if isinstance(scrapes, list) and len(scrapes) >= 2 and isinstance(scrapes[-1], dict):
            gallery_html = scrapes[-1].get("html") or None

        metadata = data.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
        return ProviderPayload(
            provider=self.name,
            html=html,
            markdown=markdown,
            gallery_html=gallery_html,
            source_tag=self.name,
            final_url=metadata.get("sourceURL") or metadata.get("url"),
        )
