"""Health check route handler.

``GET /api/health``
    Liveness check: verifies the process is alive and can reach Redis
    (``PING``) and the database (``SELECT 1``).  Always returns HTTP 200;
    the ``status`` field distinguishes ``"ok"`` from ``"degraded"``.

This endpoint is diagnostic: it must never raise HTTP 5xx errors.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Annotated

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from listing_importer import __version__
from listing_importer.api.dependencies import get_queue_store
from listing_importer.queue.store import QueueStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


async def _check_redis(queue: QueueStore) -> str:
    """Send ``PING`` through the queue store's storage backend."""
    try:
        return "ok" if await queue.storage.ping() else "error"
    except Exception:
        logger.exception("Health check: Redis unreachable")
        return "error"


async def _check_database() -> str:
    """Run ``SELECT 1`` against the configured database."""
    try:
        from listing_importer.core.database import get_session_factory  # noqa: PLC0415

        async with get_session_factory()() as session:
            await session.execute(sa.text("SELECT 1"))
        return "ok"
    except Exception:
        logger.exception("Health check: database unreachable")
        return "error"


@router.get("/api/health", include_in_schema=True)
async def system_health(
    queue: Annotated[QueueStore, Depends(get_queue_store)],
) -> JSONResponse:
    """Return process-level health including Redis and database connectivity.

    Returns:
        JSON with keys: ``status``, ``version``, ``redis``, ``database``,
        ``timestamp``.
    """
    redis_status, db_status = await asyncio.gather(_check_redis(queue), _check_database())
    payload = {
        "status": "ok" if redis_status == "ok" and db_status == "ok" else "degraded",
        "version": __version__,
        "redis": redis_status,
        "database": db_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    logger.info("system_health_check", extra={"health": payload})
    return JSONResponse(payload)
