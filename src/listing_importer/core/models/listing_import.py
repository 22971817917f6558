"""SQLAlchemy ORM model for listing imports.

A ``ListingImport`` row is created by the producer when a URL is submitted
and is then mutated only by the scrape worker as the job moves through
``queued -> scraping -> pending -> completed`` (or ``error``).
"""

from __future__ import annotations

from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from listing_importer.core.models.base import Base, JSONType, TimestampMixin


class ListingImport(TimestampMixin, Base):
    """One submitted listing URL and everything derived from it.

    Attributes:
        id: Record identifier, shared with the queue job id.
        target_url: The submitted listing URL.
        status: ``"queued"``, ``"scraping"``, ``"pending"``, ``"completed"``
            or ``"error"``.
        raw_content: Page HTML or cleaned scraper JSON as fetched.
        normalized_content: Readable text passed to generation.
        gallery_raw_content: HTML captured after opening the photo gallery.
        gallery_normalized_content: Readable text of the gallery page.
        media_urls: Gallery image URLs.
        structured_data: Scraper JSON or JSON-LD/OpenGraph captured from the
            page.
        source_provider: Tag of the provider that produced the content.
        generated_config: Base generation output plus ``_metadata``.
        final_config: Refined config plus ``_metadata``.
        error_message: Extraction error, or a note that enrichment failed.
    """

    __tablename__ = "listing_imports"

    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    target_url: Mapped[str] = mapped_column(sa.Text, nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(20),
        nullable=False,
        server_default=sa.text("'queued'"),
        index=True,
    )

    # Extraction output
    raw_content: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    normalized_content: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    gallery_raw_content: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    gallery_normalized_content: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    media_urls: Mapped[Optional[list[str]]] = mapped_column(JSONType, nullable=True)
    structured_data: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    source_provider: Mapped[Optional[str]] = mapped_column(sa.String(50), nullable=True)

    # Generation output
    generated_config: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    final_config: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    error_message: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ListingImport id={self.id} status={self.status}>"
