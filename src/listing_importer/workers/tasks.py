"""Celery tasks for the scrape queue.

- ``process_next_scrape_task`` - run one worker cycle.  Sent by
  :class:`~listing_importer.workers.trigger.CeleryTrigger` when
  ``CASCADE_MODE=celery``.
- ``sweep_scrape_queue_task`` - periodic backstop (Beat, every minute):
  runs a cycle only when jobs are waiting and nothing is in flight, i.e.
  when the cascade has stopped.
- ``reset_daily_counters_task`` - zeroes ``completed_today`` and
  ``failed_today`` at midnight.

All tasks are synchronous Celery tasks that bridge to the async worker via
``asyncio.run()``.  Each builds its own Redis client and database session
factory and closes them before returning.

Error handling policy: tasks catch all exceptions at the outermost level,
log them at ERROR level, and do NOT re-raise.  A lost cycle is recovered by
the next sweep, so retries would only add load.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

import structlog

from listing_importer.config.settings import get_settings
from listing_importer.core.database import dispose_engine
from listing_importer.workers.celery_app import celery_app
from listing_importer.workers.factory import build_queue_store, build_record_store, build_worker
from listing_importer.workers.orchestrator import ScrapeWorker

logger = structlog.get_logger(__name__)
_stdlib_logger = logging.getLogger(__name__)


def _record_task(task_name: str, status: str, started: float) -> None:
    try:
        from listing_importer.api.metrics import (  # noqa: PLC0415
            celery_task_duration_seconds,
            celery_tasks_total,
        )

        celery_tasks_total.labels(task_name=task_name, status=status).inc()
        celery_task_duration_seconds.labels(task_name=task_name).observe(
            time.perf_counter() - started
        )
    except Exception as exc:  # noqa: BLE001
        _stdlib_logger.debug("%s: metrics recording failed: %s", task_name, exc)


async def _with_worker(action: Callable[[ScrapeWorker], Awaitable[dict[str, Any]]]) -> dict[str, Any]:
    settings = get_settings()
    queue = build_queue_store(settings)
    worker = build_worker(settings, queue, build_record_store())
    try:
        summary = await action(worker)
        if worker.trigger is not None:
            await worker.trigger.drain()
        return summary
    finally:
        await queue.storage.close()
        await dispose_engine()


async def _process_next(worker: ScrapeWorker) -> dict[str, Any]:
    result = await worker.run_cycle()
    return {
        "outcome": result.outcome.value,
        "job_id": result.job_id,
        "error": result.error,
        "cascaded": result.cascaded,
    }


async def _sweep(worker: ScrapeWorker) -> dict[str, Any]:
    stats = await worker.queue.stats()
    if stats.queue_length == 0 or stats.in_flight_count > 0:
        return {"outcome": "skipped", **stats.as_dict()}
    return await _process_next(worker)


# ---------------------------------------------------------------------------
# Task 1: process_next_scrape_task
# ---------------------------------------------------------------------------


@celery_app.task(
    name="listing_importer.workers.tasks.process_next_scrape_task",
    bind=True,
    acks_late=True,
    max_retries=0,
)
def process_next_scrape_task(self: Any) -> dict[str, Any]:  # noqa: ARG001
    """Run one worker cycle.

    Returns:
        Dict with ``outcome``, ``job_id``, ``error`` and ``cascaded``.
    """
    started = time.perf_counter()
    log = logger.bind(task="process_next_scrape_task")
    try:
        summary = asyncio.run(_with_worker(_process_next))
    except Exception as exc:  # noqa: BLE001
        log.error("process_next_scrape_task: cycle failed", error=str(exc), exc_info=True)
        _record_task("process_next_scrape_task", "failure", started)
        return {"outcome": "error", "error": str(exc)}
    log.info("process_next_scrape_task: complete", **summary)
    _record_task("process_next_scrape_task", "success", started)
    return summary


# ---------------------------------------------------------------------------
# Task 2: sweep_scrape_queue_task
# ---------------------------------------------------------------------------


@celery_app.task(name="listing_importer.workers.tasks.sweep_scrape_queue_task")
def sweep_scrape_queue_task() -> dict[str, Any]:
    """Restart the cascade if it has stopped with jobs still queued."""
    started = time.perf_counter()
    log = logger.bind(task="sweep_scrape_queue_task")
    try:
        summary = asyncio.run(_with_worker(_sweep))
    except Exception as exc:  # noqa: BLE001
        log.error("sweep_scrape_queue_task: sweep failed", error=str(exc), exc_info=True)
        _record_task("sweep_scrape_queue_task", "failure", started)
        return {"outcome": "error", "error": str(exc)}
    log.info("sweep_scrape_queue_task: complete", **summary)
    _record_task("sweep_scrape_queue_task", "success", started)
    return summary


# ---------------------------------------------------------------------------
# Task 3: reset_daily_counters_task
# ---------------------------------------------------------------------------


async def _reset_counters() -> None:
    queue = build_queue_store(get_settings())
    try:
        await queue.reset_daily_counters()
    finally:
        await queue.storage.close()


@celery_app.task(name="listing_importer.workers.tasks.reset_daily_counters_task")
def reset_daily_counters_task() -> dict[str, Any]:
    """Zero the daily completed/failed counters."""
    started = time.perf_counter()
    try:
        asyncio.run(_reset_counters())
    except Exception as exc:  # noqa: BLE001
        logger.error("reset_daily_counters_task: reset failed", error=str(exc), exc_info=True)
        _record_task("reset_daily_counters_task", "failure", started)
        return {"reset": False, "error": str(exc)}
    logger.info("reset_daily_counters_task: counters reset")
    _record_task("reset_daily_counters_task", "success", started)
    return {"reset": True}
