"""Record types shared by the record stores, the worker and the API."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordStatus(str, Enum):
    """Lifecycle of an import record.

    ``queued -> scraping -> pending -> completed``; ``scraping -> error``.
    Enrichment failures end in ``completed`` with an error note.
    """

    QUEUED = "queued"
    SCRAPING = "scraping"
    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ImportRecord(BaseModel):
    """Persistent state of one submitted listing URL."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    target_url: str
    status: RecordStatus = RecordStatus.QUEUED
    raw_content: Optional[str] = None
    normalized_content: Optional[str] = None
    gallery_raw_content: Optional[str] = None
    gallery_normalized_content: Optional[str] = None
    media_urls: Optional[list[str]] = None
    structured_data: Optional[Any] = None
    source_provider: Optional[str] = None
    generated_config: Optional[dict[str, Any]] = None
    final_config: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


#: Fields the worker may change through ``RecordStore.update``.
UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "status",
        "raw_content",
        "normalized_content",
        "gallery_raw_content",
        "gallery_normalized_content",
        "media_urls",
        "structured_data",
        "source_provider",
        "generated_config",
        "final_config",
        "error_message",
    }
)
