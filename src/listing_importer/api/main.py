"""FastAPI application factory and entry point.

Creates the application instance, registers middleware and exception
handlers, and mounts the route routers.

Usage::

    # Development server (from project root)
    uvicorn listing_importer.api.main:app --reload

    # Production
    gunicorn listing_importer.api.main:app -k uvicorn.workers.UvicornWorker
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from listing_importer import __version__
from listing_importer.api.limiter import limiter
from listing_importer.config.settings import get_settings
from listing_importer.core.exceptions import RecordNotFoundError
from listing_importer.core.logging_config import configure_logging, request_id_var

# ---------------------------------------------------------------------------
# Logging configuration: applied once at module import time so that log
# records emitted during app construction are captured correctly.
# The log level is re-applied inside create_app() after settings are loaded.
# ---------------------------------------------------------------------------
configure_logging("INFO")

logger = structlog.get_logger(__name__)


def _record_http_metrics(request: Request, status_code: int, elapsed: float) -> None:
    try:
        from listing_importer.api.metrics import (  # noqa: PLC0415
            http_request_duration_seconds,
            http_requests_total,
        )

        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        http_requests_total.labels(
            method=request.method, path=path, status=str(status_code)
        ).inc()
        http_request_duration_seconds.labels(method=request.method, path=path).observe(elapsed)
    except Exception as exc:  # noqa: BLE001
        logger.debug("metrics_recording_failed", error=str(exc))


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        environment=settings.environment,
        cascade_mode=settings.cascade_mode,
        max_concurrent_scrapes=settings.max_concurrent_scrapes,
    )
    yield
    worker = getattr(application.state, "worker", None)
    if worker is not None and worker.trigger is not None:
        await worker.trigger.drain()
    queue = getattr(application.state, "queue_store", None)
    if queue is not None:
        await queue.storage.close()
    from listing_importer.core.database import dispose_engine  # noqa: PLC0415

    await dispose_engine()
    logger.info("application_shutdown")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application.

    Separated from the module-level ``app`` singleton so that tests can
    call ``create_app()`` with a patched settings environment before the
    singleton is created.

    Returns:
        A fully configured ``FastAPI`` instance.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        description="Bounded-concurrency scrape-and-enrich pipeline for listing imports.",
        version=__version__,
        debug=settings.debug,
        redirect_slashes=False,
        lifespan=_lifespan,
    )

    # ---- Rate limiting -----------------------------------------------------
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ---- Request logging middleware ----------------------------------------
    @application.middleware("http")
    async def request_logging_middleware(
        request: Request, call_next: Callable
    ) -> Response:
        """Log every request with its status and duration.

        Attaches a unique ``request_id`` to the structlog context so that all
        log lines emitted during a request can be correlated.
        """
        request_id = str(uuid.uuid4())
        request_id_var.set(request_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as exc:
            logger.error("unhandled_exception", exc_info=exc)
            raise
        finally:
            elapsed = time.perf_counter() - start
            log_fn = logger.warning if status_code >= 400 else logger.info
            log_fn(
                "request_complete",
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000, 2),
            )
            _record_http_metrics(request, status_code, elapsed)

        response.headers["X-Request-ID"] = request_id
        return response

    # ---- Exception handlers --------------------------------------------------
    @application.exception_handler(RecordNotFoundError)
    async def record_not_found_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:  # noqa: ARG001
        return JSONResponse({"success": False, "message": str(exc)}, status_code=404)

    @application.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: ARG001
        return JSONResponse(
            {"success": False, "message": "Internal server error"},
            status_code=500,
        )

    # ---- Routers -----------------------------------------------------------
    from listing_importer.api.routes import health as health_routes  # noqa: PLC0415
    from listing_importer.api.routes import queue as queue_routes  # noqa: PLC0415

    application.include_router(health_routes.router)
    application.include_router(queue_routes.router)

    # ---- Metrics -----------------------------------------------------------
    if settings.metrics_enabled:

        @application.get("/metrics", include_in_schema=False)
        async def metrics() -> Response:
            """Prometheus exposition endpoint."""
            from listing_importer.api.metrics import get_metrics_response  # noqa: PLC0415

            body, content_type = get_metrics_response()
            return Response(content=body, media_type=content_type)

    return application


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

app = create_app()
"""The FastAPI application instance.

This is the ASGI callable passed to Uvicorn / Gunicorn.
"""
