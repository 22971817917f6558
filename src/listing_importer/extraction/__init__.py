"""Content extraction layer: provider fallback, HTML processing, normalization.

Public surface::

    from listing_importer.extraction import ContentExtractor

    extractor = ContentExtractor.from_settings(get_settings())
    result = await extractor.extract(url, timeout=170)
"""

from listing_importer.extraction.base import (
    ExtractionProvider,
    ExtractionResult,
    ProviderPayload,
)
from listing_importer.extraction.service import ContentExtractor, build_providers

__all__ = [
    "ContentExtractor",
    "ExtractionProvider",
    "ExtractionResult",
    "ProviderPayload",
    "build_providers",
]
