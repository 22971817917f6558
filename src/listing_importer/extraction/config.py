"""Constants and tuning parameters for the content extraction layer."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

#: Budget for one extraction call across all providers (seconds).
DEFAULT_SCRAPE_TIMEOUT: float = 170.0

#: Per-request timeout for a direct HTTP fetch (seconds).
DIRECT_FETCH_TIMEOUT: float = 30.0

#: Interval between Apify run status polls (seconds).
APIFY_POLL_INTERVAL: float = 5.0

# ---------------------------------------------------------------------------
# Content size guards
# ---------------------------------------------------------------------------

#: Maximum normalized text size (bytes).  Keeps record rows and generation
#: prompts bounded.
MAX_CONTENT_BYTES: int = 900 * 1024  # 900 KB

#: Paragraphs shorter than this (characters) are treated as UI chrome by the
#: structural text pass.
MIN_PARAGRAPH_CHARS: int = 10

#: Gallery images at or below this size in either dimension are icons.
MIN_GALLERY_IMAGE_PX: int = 50

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

#: User-agent string sent by the direct HTTP provider.
USER_AGENT: str = (
    "Mozilla/5.0 (compatible; ListingImporter/1.0; "
    "+https://github.com/listing-importer)"
)

#: Content-Type prefixes that indicate binary/non-text resources that should
#: be skipped without attempting extraction.
BINARY_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/zip",
        "application/octet-stream",
        "application/x-executable",
        "application/vnd.",
        "image/",
        "video/",
        "audio/",
        "font/",
    }
)

# ---------------------------------------------------------------------------
# Provider names
# ---------------------------------------------------------------------------

PROVIDER_APIFY: str = "apify"
PROVIDER_FIRECRAWL: str = "firecrawl"
PROVIDER_SCRAPERAPI: str = "scraperapi"
PROVIDER_DIRECT: str = "direct"

#: Generic providers selectable through ``SCRAPER_PROVIDERS``.
GENERIC_PROVIDERS: tuple[str, ...] = (PROVIDER_FIRECRAWL, PROVIDER_SCRAPERAPI, PROVIDER_DIRECT)
