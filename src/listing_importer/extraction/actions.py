"""Per-site Firecrawl browser actions.

Some portals hide listing details behind accordions or load the full photo
gallery only after a click.  For those hosts the Firecrawl provider sends a
list of browser actions with the scrape request:

    [detail actions...] scrape  wait  click(gallery)  wait  scrape

The first ``scrape`` captures the page with details expanded; the second
captures the expanded gallery.  Hosts without an entry are scraped plainly.
"""

from __future__ import annotations

import random
from typing import Any

from listing_importer.extraction.base import host_matches

Action = dict[str, Any]

# ---------------------------------------------------------------------------
# Site selectors
# ---------------------------------------------------------------------------

#: Buttons that open the full photo gallery, keyed by domain.
_GALLERY_CLICK_SELECTORS: dict[str, str] = {
    "realtor.com": 'button[aria-label="View all listing photos"]',
    "redfin.com": "div#photoPreviewButton button",
    "homes.com": ".hero-carousel-item",
}


def _wait(low_ms: int, high_ms: int | None = None) -> Action:
    """A wait action with a jittered duration."""
    ms = low_ms if high_ms is None else random.randint(low_ms, high_ms)
    return {"type": "wait", "milliseconds": ms}


def _realtor_detail_actions() -> list[Action]:
    return [
        _wait(2000),
        {"type": "click", "selector": '[data-accordion-id="property-details"]'},
        _wait(2000),
    ]


_DETAIL_ACTIONS = {
    "realtor.com": _realtor_detail_actions,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def detail_actions_for(url: str) -> list[Action]:
    """Return the detail-expanding actions for *url* (may be empty)."""
    for domain, factory in _DETAIL_ACTIONS.items():
        if host_matches(url, domain):
            return factory()
    return []


def gallery_selector_for(url: str) -> str | None:
    """Return the CSS selector that opens the gallery on *url*'s site."""
    for domain, selector in _GALLERY_CLICK_SELECTORS.items():
        if host_matches(url, domain):
            return selector
    return None


def firecrawl_actions_for(url: str) -> list[Action] | None:
    """Return the combined action list for *url*, or ``None`` for a plain scrape.

    Only hosts with a gallery button get actions; the result always contains
    exactly two ``scrape`` steps.
    """
    selector = gallery_selector_for(url)
    if selector is None:
        return None
    actions = [a for a in detail_actions_for(url) if a["type"] != "scrape"]
    actions.extend(
        [
            {"type": "scrape"},
            _wait(1500, 2500),
            {"type": "click", "selector": selector},
            _wait(1000, 2000),
            {"type": "scrape"},
        ]
    )
    return actions
