"""Host-specific HTML processing and gallery image extraction.

Listing portals wrap the property in a lot of page furniture (sidebars with
lead forms, school ratings, similar-listing carousels).  The processors here
narrow the page to its ``<main>`` element and strip the sections that would
otherwise leak into the generation prompt.
"""

from __future__ import annotations

import logging
from typing import Callable

from bs4 import BeautifulSoup, Tag

from listing_importer.extraction.base import host_matches
from listing_importer.extraction.config import MIN_GALLERY_IMAGE_PX

logger = logging.getLogger(__name__)

HtmlProcessor = Callable[[str], str]
GalleryExtractor = Callable[[str], list[str]]

_NOISE_SELECTORS = (
    "script",
    "style",
    "noscript",
    'img[width="1"][height="1"]',
    'img[src*="tracking"]',
    'img[src*="beacon"]',
)

#: Homes.com sections that describe the area rather than the property.
HOMES_REMOVED_CLASSES: tuple[str, ...] = (
    "schools-container",
    "parks-in-area-section",
    "transportation-container",
    "area-factors-container",
    "environment-factor-container",
    "estimated-value",
    "home-valuation-report-cta-container",
    "home-values-container",
    "average-home-value-container",
    "ldp-property-history-container",
    "suggested-listings-container",
    "breadcrumbs-container",
)


def _remove_all(root: Tag, selector: str) -> int:
    removed = 0
    for element in root.select(selector):
        element.decompose()
        removed += 1
    return removed


def _main_element(raw_html: str) -> Tag | None:
    soup = BeautifulSoup(raw_html, "html.parser")
    main = soup.find("main")
    return main if isinstance(main, Tag) else None


# ---------------------------------------------------------------------------
# Processors
# ---------------------------------------------------------------------------


def process_realtor_html(raw_html: str) -> str:
    """Keep Realtor.com's ``<main>`` minus the lead-form sidebar and noise.

    Collapsed accordions and hidden elements are kept: they hold the
    amenity and description blocks.  Returns *raw_html* unchanged when the
    page has no ``<main>``.
    """
    if not raw_html or not raw_html.strip():
        return raw_html
    main = _main_element(raw_html)
    if main is None:
        logger.warning("scraper: realtor page has no <main>; keeping original HTML")
        return raw_html
    _remove_all(main, 'div[data-testid="ldp-sidebar"]')
    for selector in _NOISE_SELECTORS:
        _remove_all(main, selector)
    return str(main)


def process_homes_html(raw_html: str) -> str:
    """Keep Homes.com's ``<main>`` minus neighbourhood and valuation sections."""
    if not raw_html or not raw_html.strip():
        return raw_html
    main = _main_element(raw_html)
    if main is None:
        return raw_html
    removed = _remove_all(main, ", ".join(f".{name}" for name in HOMES_REMOVED_CLASSES))
    for selector in _NOISE_SELECTORS:
        _remove_all(main, selector)
    logger.debug("scraper: removed %d homes.com sections", removed)
    return str(main)


_PROCESSORS: dict[str, HtmlProcessor] = {
    "realtor.com": process_realtor_html,
    "homes.com": process_homes_html,
}


def processor_for(url: str) -> HtmlProcessor | None:
    """Return the host-specific processor for *url*, if one exists."""
    for domain, processor in _PROCESSORS.items():
        if host_matches(url, domain):
            return processor
    return None


def process_generic_html(raw_html: str) -> str:
    """Narrow an unknown site to ``<main>``, then ``<article>``, then ``<body>``."""
    if not raw_html or not raw_html.strip():
        return raw_html
    soup = BeautifulSoup(raw_html, "html.parser")
    for name in ("main", "article", "body"):
        element = soup.find(name)
        if isinstance(element, Tag):
            for selector in _NOISE_SELECTORS:
                _remove_all(element, selector)
            for chrome in element.find_all(["nav", "footer"]):
                chrome.decompose()
            return str(element)
    return raw_html


def process_html(url: str, raw_html: str) -> str:
    """Apply the processor for *url*'s host (generic narrowing otherwise)."""
    processor = processor_for(url) or process_generic_html
    return processor(raw_html)


# ---------------------------------------------------------------------------
# Gallery extraction
# ---------------------------------------------------------------------------


def _image_src(img: Tag) -> str | None:
    for attr in ("src", "data-src", "data-lazy", "data-original"):
        value = img.get(attr)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _dedupe(urls: list[str]) -> list[str]:
    return list(dict.fromkeys(urls))


def extract_realtor_gallery_images(html: str) -> list[str]:
    """Image URLs from Realtor.com's expanded ``gallery-photo-container`` tiles."""
    if not html or not html.strip():
        return []
    soup = BeautifulSoup(html, "html.parser")
    urls: list[str] = []
    for container in soup.select('div[data-testid="gallery-photo-container"]'):
        img = container.find("img")
        if isinstance(img, Tag):
            src = _image_src(img)
            if src:
                urls.append(src)
    return _dedupe(urls)


def _dimension(img: Tag, attr: str) -> int:
    try:
        return int(str(img.get(attr) or "0").strip().rstrip("px") or 0)
    except ValueError:
        return 0


def extract_redfin_gallery_images(html: str) -> list[str]:
    """Image URLs from Redfin gallery, photo and carousel containers.

    Images whose declared width or height is not above
    :data:`MIN_GALLERY_IMAGE_PX` are treated as icons and skipped.
    """
    if not html or not html.strip():
        return []
    soup = BeautifulSoup(html, "html.parser")
    selectors = (
        '[class*="gallery"] img',
        '[class*="photo"] img',
        '[class*="carousel"] img',
        '[id*="photo"] img',
        '[id*="gallery"] img',
        '[class*="PhotoViewer"] img',
    )
    urls: list[str] = []
    for img in soup.select(", ".join(selectors)):
        src = _image_src(img)
        if not src:
            continue
        if (
            _dimension(img, "width") > MIN_GALLERY_IMAGE_PX
            and _dimension(img, "height") > MIN_GALLERY_IMAGE_PX
        ):
            urls.append(src)
    return _dedupe(urls)


_GALLERY_EXTRACTORS: dict[str, GalleryExtractor] = {
    "realtor.com": extract_realtor_gallery_images,
    "redfin.com": extract_redfin_gallery_images,
}


def extract_gallery_images(url: str, html: str | None) -> list[str]:
    """Return gallery image URLs for *url*'s site, or ``[]`` if unsupported."""
    if not html:
        return []
    for domain, extractor in _GALLERY_EXTRACTORS.items():
        if host_matches(url, domain):
            return extractor(html)
    return []
