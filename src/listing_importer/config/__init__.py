"""Configuration package for Listing Importer.

Re-exports the settings symbols so that callers can write::

    from listing_importer.config import get_settings
"""

from __future__ import annotations

from listing_importer.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
