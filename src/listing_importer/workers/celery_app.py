"""Celery application for Listing Importer.

Configures the broker, result backend, serialization, task routing, and
timezone.  All configuration values are sourced from ``Settings`` so that
no secrets or environment-specific values are hard-coded here.

Usage (starting a worker)::

    celery -A listing_importer.workers.celery_app worker -Q scraping,celery --loglevel=info

Usage (starting the Beat scheduler)::

    celery -A listing_importer.workers.celery_app beat --loglevel=info
"""

from __future__ import annotations

import logging

from celery import Celery
from celery.signals import task_postrun
from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

# Load .env into os.environ before settings are read.
load_dotenv()

from listing_importer.config.settings import get_settings  # noqa: E402

settings = get_settings()

#: The global Celery application instance.
celery_app = Celery(
    "listing_importer",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["listing_importer.workers.tasks"],
)

# ---------------------------------------------------------------------------
# Core configuration
# ---------------------------------------------------------------------------

celery_app.conf.update(
    # Serialization: all task arguments and return values must be
    # JSON-serializable.
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # Acknowledge only after the task has completed.
    task_acks_late=True,
    # One cycle at a time per worker process; the queue store enforces the
    # real ceiling.
    worker_prefetch_multiplier=1,
    result_expires=3_600,
    # A cycle is bounded by the scrape timeout plus two generation calls.
    task_soft_time_limit=600,
    task_time_limit=900,
    task_routes={
        "listing_importer.workers.tasks.process_next_scrape_task": {"queue": "scraping"},
        "listing_importer.workers.tasks.sweep_scrape_queue_task": {"queue": "scraping"},
    },
    beat_schedule_filename="celerybeat-schedule",
)

# Import and apply the Beat schedule after the app is configured.
from listing_importer.workers.beat_schedule import beat_schedule  # noqa: E402

celery_app.conf.beat_schedule = beat_schedule


# ---------------------------------------------------------------------------
# Engine disposal after each task: prevents cross-task event loop errors
# ---------------------------------------------------------------------------
@task_postrun.connect
def _dispose_async_engine_after_task(**kwargs: object) -> None:  # noqa: ARG001
    """Drop pooled database connections after each task.

    Each task runs its own ``asyncio.run()`` loop; asyncpg connections kept
    in the pool would be bound to the loop that just closed.
    """
    try:
        from listing_importer.core import database as _db  # noqa: PLC0415

        if _db._engine is not None:
            _db._engine.sync_engine.dispose(close=False)
        _db._engine = None
        _db._session_factory = None
    except Exception as exc:  # noqa: BLE001
        _logger.debug("celery: engine disposal failed: %s", exc)
