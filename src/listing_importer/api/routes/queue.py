"""Queue route handlers.

``POST /api/queue/process-scrape``
    Worker endpoint.  Called by the self-trigger (``x-internal-token``), by
    an external scheduler (``x-cron: 1``), or freely outside production.
    Runs one worker cycle, or in cron mode a batch when nothing is in flight.

``GET /api/queue/process-scrape``
    Queue statistics.

``GET /api/queue/status/{record_id}``
    Per-import polling: record status, queue position while queued, and
    whether a worker currently holds the job.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse

from listing_importer.api.dependencies import (
    get_app_settings,
    get_queue_store,
    get_record_store,
    get_worker,
)
from listing_importer.api.limiter import limiter
from listing_importer.config.settings import Settings
from listing_importer.core.schemas.queue import (
    ImportStatusResponse,
    ProcessScrapeRequest,
    ProcessScrapeResponse,
    QueueStatsRead,
    QueueStatsResponse,
)
from listing_importer.queue.store import QueueStore
from listing_importer.records.models import RecordStatus
from listing_importer.records.store import RecordStore
from listing_importer.workers.orchestrator import CycleOutcome, CycleResult, ScrapeWorker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/queue", tags=["queue"])

INTERNAL_TOKEN_HEADER = "x-internal-token"
CRON_HEADER = "x-cron"


def _respond(body: ProcessScrapeResponse, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(body.model_dump(by_alias=True, exclude_none=True), status_code=status_code)


def _is_cron_request(request: Request) -> bool:
    return request.headers.get(CRON_HEADER) == "1"


def _is_authorized(request: Request, settings: Settings) -> bool:
    if request.headers.get(INTERNAL_TOKEN_HEADER) == settings.internal_api_token:
        return True
    if settings.trust_cron_header and _is_cron_request(request):
        return True
    return settings.environment != "production"


def _cycle_response(result: CycleResult) -> JSONResponse:
    if result.outcome is CycleOutcome.CAPACITY_EXHAUSTED:
        return _respond(
            ProcessScrapeResponse(
                success=False,
                skipped=True,
                message=f"At concurrent limit ({result.in_flight}/{result.ceiling})",
            )
        )
    if result.outcome is CycleOutcome.QUEUE_EMPTY:
        return _respond(
            ProcessScrapeResponse(success=False, message="No jobs in queue"),
            status.HTTP_404_NOT_FOUND,
        )
    if result.outcome is CycleOutcome.FAILED:
        return _respond(
            ProcessScrapeResponse(success=False, job_id=result.job_id, error=result.error),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return _respond(ProcessScrapeResponse(success=True, job_id=result.job_id))


# ---------------------------------------------------------------------------
# POST /api/queue/process-scrape
# ---------------------------------------------------------------------------


@router.post("/process-scrape")
async def process_scrape(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
    queue: Annotated[QueueStore, Depends(get_queue_store)],
    worker: Annotated[ScrapeWorker, Depends(get_worker)],
    body: Annotated[Optional[ProcessScrapeRequest], Body()] = None,
) -> JSONResponse:
    """Run the worker once (or a cron batch).

    Returns:
        200 with ``jobId`` when a job was processed; 200 ``skipped`` when at
        the concurrency limit or when a cron sweep finds nothing to do; 404
        when the queue is empty; 500 with ``jobId`` when the job failed.
    """
    if not _is_authorized(request, settings):
        logger.warning("queue: rejected unauthorized worker call")
        return JSONResponse(
            {"success": False, "message": "Unauthorized"},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    options = body or ProcessScrapeRequest()
    if options.cron or _is_cron_request(request):
        stats = await queue.stats()
        if stats.queue_length == 0 and stats.in_flight_count == 0:
            return _respond(
                ProcessScrapeResponse(success=True, skipped=True, message="Queue empty")
            )
        if stats.in_flight_count > 0:
            return _respond(
                ProcessScrapeResponse(
                    success=True,
                    skipped=True,
                    message=f"Cascade active ({stats.in_flight_count} in flight)",
                )
            )
        if options.batch > 1:
            processed = await worker.run_batch(options.batch)
            return _respond(ProcessScrapeResponse(success=True, processed=processed))

    return _cycle_response(await worker.run_cycle())


# ---------------------------------------------------------------------------
# GET /api/queue/process-scrape
# ---------------------------------------------------------------------------


@router.get("/process-scrape", response_model=QueueStatsResponse)
async def queue_stats(
    queue: Annotated[QueueStore, Depends(get_queue_store)],
) -> QueueStatsResponse:
    """Return queue length, in-flight count and today's counters."""
    stats = await queue.stats()
    return QueueStatsResponse(
        stats=QueueStatsRead(
            queue_length=stats.queue_length,
            in_flight_count=stats.in_flight_count,
            completed_today=stats.completed_today,
            failed_today=stats.failed_today,
        )
    )


# ---------------------------------------------------------------------------
# GET /api/queue/status/{record_id}
# ---------------------------------------------------------------------------


@router.get("/status/{record_id}", response_model=ImportStatusResponse)
@limiter.limit("120/minute")
async def import_status(
    request: Request,
    record_id: str,
    queue: Annotated[QueueStore, Depends(get_queue_store)],
    records: Annotated[RecordStore, Depends(get_record_store)],
) -> ImportStatusResponse | JSONResponse:
    """Return the polling view of one import."""
    record = await records.get(record_id)
    if record is None:
        return JSONResponse(
            {"success": False, "message": "Import not found"},
            status_code=status.HTTP_404_NOT_FOUND,
        )

    position = None
    if record.status is RecordStatus.QUEUED:
        position = await queue.position_of(record_id)
    return ImportStatusResponse(
        id=record.id,
        status=record.status.value,
        position=position,
        in_flight=await queue.is_in_flight(record_id),
        error_message=record.error_message,
        created_at=record.created_at,
    )
