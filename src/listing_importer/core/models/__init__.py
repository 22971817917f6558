"""SQLAlchemy ORM models for Listing Importer.

All models are imported here so that Alembic autogenerate can discover them
via ``Base.metadata``.
"""

from __future__ import annotations

from listing_importer.core.models.base import Base, JSONType, TimestampMixin
from listing_importer.core.models.listing_import import ListingImport

__all__ = [
    "Base",
    "JSONType",
    "ListingImport",
    "TimestampMixin",
]
