"""Pydantic request/response schemas for the queue endpoints.

Response keys are camelCase to match what the dashboard and the scheduler
already read (``jobId``, ``queueLength``, ...).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProcessScrapeRequest(BaseModel):
    """Optional body of ``POST /api/queue/process-scrape``.

    Attributes:
        batch: Jobs to process in one cron invocation (cron mode only).
        cron: Treat the call as a scheduler sweep.
    """

    batch: int = Field(default=1, ge=1, le=50)
    cron: bool = False


class QueueStatsRead(_CamelModel):
    queue_length: int
    in_flight_count: int
    completed_today: int
    failed_today: int


class QueueStatsResponse(_CamelModel):
    success: bool = True
    stats: QueueStatsRead


class ProcessScrapeResponse(_CamelModel):
    """Result of a worker invocation.

    ``job_id`` is set when a job was dequeued; ``processed`` when a cron
    batch ran; ``skipped``/``message`` when nothing was attempted.
    """

    success: bool
    job_id: Optional[str] = None
    processed: Optional[int] = None
    skipped: Optional[bool] = None
    message: Optional[str] = None
    error: Optional[str] = None


class ImportStatusResponse(_CamelModel):
    """Polling view of one import record."""

    success: bool = True
    id: str
    status: str
    position: Optional[int] = None
    in_flight: bool = False
    error_message: Optional[str] = None
    created_at: datetime
