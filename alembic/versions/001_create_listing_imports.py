"""Create the listing_imports table.

One row per submitted listing URL.  The row id doubles as the scrape queue
job id.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create listing_imports and its status index."""
    op.create_table(
        "listing_imports",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("target_url", sa.Text(), nullable=False),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'queued'"),
        ),
        # Extraction output
        sa.Column("raw_content", sa.Text(), nullable=True),
        sa.Column("normalized_content", sa.Text(), nullable=True),
        sa.Column("gallery_raw_content", sa.Text(), nullable=True),
        sa.Column("gallery_normalized_content", sa.Text(), nullable=True),
        sa.Column("media_urls", postgresql.JSONB(), nullable=True),
        sa.Column("structured_data", postgresql.JSONB(), nullable=True),
        sa.Column("source_provider", sa.String(50), nullable=True),
        # Generation output
        sa.Column("generated_config", postgresql.JSONB(), nullable=True),
        sa.Column("final_config", postgresql.JSONB(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_listing_imports_status", "listing_imports", ["status"])


def downgrade() -> None:
    """Drop listing_imports."""
    op.drop_index("ix_listing_imports_status", table_name="listing_imports")
    op.drop_table("listing_imports")
