"""Apify provider: site-specific actors that return listing data as JSON.

An actor run is asynchronous on Apify's side, so a fetch is three steps:

1. ``POST /acts/{actor}/runs`` with the actor input; the response carries the
   run id and its default dataset id.
2. ``GET /acts/{actor}/runs/{run}`` every :data:`APIFY_POLL_INTERVAL`
   seconds until the run is ``SUCCEEDED``, ``FAILED`` or ``ABORTED``.
3. ``GET /datasets/{dataset}/items`` for the scraped records.

Only URLs with a registered actor are handled (see :data:`APIFY_SCRAPERS`).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from listing_importer.core.exceptions import ProviderError
from listing_importer.extraction.base import ExtractionProvider, ProviderPayload, host_matches
from listing_importer.extraction.config import APIFY_POLL_INTERVAL, PROVIDER_APIFY

logger = logging.getLogger(__name__)

_TERMINAL_STATUSES = frozenset({"SUCCEEDED", "FAILED", "ABORTED"})


@dataclass(frozen=True)
class ApifyScraper:
    """Configuration of one site-specific actor.

    Attributes:
        id: Short identifier, also used to pick a JSON cleaner.
        name: Display name used in logs.
        actor_id: Apify actor id (``user~actor`` form).
        domain: Site the actor handles (``www.`` variant included).
        build_input: Builds the actor input from a listing URL.
    """

    id: str
    name: str
    actor_id: str
    domain: str
    build_input: Callable[[str], dict[str, Any]]

    def handles(self, url: str) -> bool:
        return host_matches(url, self.domain)


APIFY_SCRAPERS: tuple[ApifyScraper, ...] = (
    ApifyScraper(
        id="zillow",
        name="Zillow Detail Scraper",
        actor_id="maxcopell~zillow-detail-scraper",
        domain="zillow.com",
        build_input=lambda url: {"startUrls": [{"url": url}]},
    ),
)


def find_scraper_for_url(url: str) -> ApifyScraper | None:
    """Return the first registered actor that handles *url*."""
    for scraper in APIFY_SCRAPERS:
        if scraper.handles(url):
            return scraper
    return None


class ApifyProvider(ExtractionProvider):
    """Run the actor registered for the URL's site and return its dataset.

    Args:
        api_token: Apify API token.
        base_url: API root, ``https://api.apify.com/v2`` by default.
        poll_interval: Seconds between run status checks.
    """

    name = PROVIDER_APIFY

    def __init__(
        self,
        api_token: str,
        base_url: str = "https://api.apify.com/v2",
        *,
        poll_interval: float = APIFY_POLL_INTERVAL,
    ) -> None:
        self._token = api_token
        self._base_url = base_url.rstrip("/")
        self._poll_interval = poll_interval

    def handles(self, url: str) -> bool:
        return find_scraper_for_url(url) is not None

    async def _get_json(self, client: httpx.AsyncClient, path: str, what: str) -> Any:
        response = await client.get(f"{self._base_url}{path}", params={"token": self._token})
        if response.status_code >= 400:
            raise ProviderError(
                f"Failed to {what}: HTTP {response.status_code}", provider=self.name
            )
        return response.json()

    def _data_of(self, body: Any) -> dict[str, Any]:
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise ProviderError("Apify returned an unexpected response shape", provider=self.name)
        return data

    async def fetch(
        self,
        url: str,
        *,
        client: httpx.AsyncClient,
        timeout: float,
    ) -> ProviderPayload:
        scraper = find_scraper_for_url(url)
        if scraper is None:
            raise ProviderError(f"No Apify actor registered for {url}", provider=self.name)

        logger.info("scraper: apify[%s] starting run for %s", scraper.id, url)
        try:
            run = await client.post(
                f"{self._base_url}/acts/{scraper.actor_id}/runs",
                params={"token": self._token},
                json=scraper.build_input(url),
            )
            if run.status_code >= 400:
                raise ProviderError(
                    f"Apify API error: {run.status_code} - {run.text[:200]}", provider=self.name
                )
            run_data = self._data_of(run.json())
            run_id = run_data.get("id")
            dataset_id = run_data.get("defaultDatasetId")
            status = run_data.get("status")
            if not run_id or not dataset_id:
                raise ProviderError("Apify run response missing ids", provider=self.name)

            max_polls = max(1, int(timeout // self._poll_interval)) if self._poll_interval else 1
            polls = 0
            while status not in _TERMINAL_STATUSES:
                if polls >= max_polls:
                    raise ProviderError(
                        f"Apify run timeout after {timeout:.0f} seconds", provider=self.name
                    )
                await asyncio.sleep(self._poll_interval)
                polls += 1
                status_data = await self._get_json(
                    client, f"/acts/{scraper.actor_id}/runs/{run_id}", "check run status"
                )
                status = self._data_of(status_data).get("status")
                logger.debug("scraper: apify[%s] run %s status %s", scraper.id, run_id, status)

            if status != "SUCCEEDED":
                raise ProviderError(
                    f"Apify run {str(status).lower()}: {run_id}", provider=self.name
                )

            items = await self._get_json(client, f"/datasets/{dataset_id}/items", "fetch dataset")
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"Apify timeout after {timeout:.0f} seconds", provider=self.name
            ) from exc
        except httpx.RequestError as exc:
            raise ProviderError(f"Apify request error: {exc}", provider=self.name) from exc
        except ValueError as exc:
            raise ProviderError(f"Apify returned invalid JSON: {exc}", provider=self.name) from exc

        if not items:
            raise ProviderError("Apify dataset is empty", provider=self.name)

        logger.info(
            "scraper: apify[%s] returned %d item(s) for %s",
            scraper.id,
            len(items) if isinstance(items, list) else 1,
            url,
        )
        return ProviderPayload(
            provider=self.name,
            json_data=items,
            source_tag=f"apify_{scraper.id}",
        )
