"""Structured JSON logging configuration using structlog.

Call ``configure_logging()`` once at process startup (the FastAPI app
factory and the Celery worker both do).  Modules then use either the stdlib
logging API or structlog directly:

Stdlib usage::

    import logging
    logger = logging.getLogger(__name__)
    logger.info("queue: job %s claimed", job_id)

Structlog usage (richer context binding)::

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("cycle_complete", job_id=job_id, provider="firecrawl")

Two context variables are merged into every record when set:

- ``request_id`` - populated by the request-logging middleware in
  ``api/main.py``.
- ``job_id`` - populated by the worker for the duration of one cycle via
  :func:`bind_job_context`, so extraction and generation log lines can be
  correlated with the import record they belong to.
"""

from __future__ import annotations

import logging
import logging.config
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

import structlog
from structlog.types import EventDict, WrappedLogger

# ---------------------------------------------------------------------------
# Context variables
# ---------------------------------------------------------------------------

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
"""Per-request ID propagated from the HTTP middleware to log processors."""

job_id_var: ContextVar[str | None] = ContextVar("job_id", default=None)
"""ID of the scrape job the current worker cycle is processing."""


@contextmanager
def bind_job_context(job_id: str) -> Iterator[None]:
    """Attach ``job_id`` to every log record emitted inside the block.

    Usage::

        with bind_job_context(job.id):
            await extractor.extract(job.target, timeout=...)
    """
    token = job_id_var.set(job_id)
    try:
        yield
    finally:
        job_id_var.reset(token)


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


_SECRET_SUBSTRINGS: frozenset[str] = frozenset({
    "api_key",
    "apikey",
    "password",
    "secret",
    "token",
    "credential",
    "bearer",
    "authorization",
    "x-internal-token",
})
"""Lower-cased substrings that identify log event-dict keys whose values
must be redacted before the record reaches any renderer."""


def _redact_secrets(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Replace values of secret-bearing keys with a redaction marker.

    Scans both top-level keys and any nested ``dict`` values one level deep.
    Keys are matched case-insensitively against :data:`_SECRET_SUBSTRINGS`.
    """
    redacted = "[REDACTED]"
    for key in list(event_dict.keys()):
        key_lower = key.lower()
        if any(secret in key_lower for secret in _SECRET_SUBSTRINGS):
            event_dict[key] = redacted
            continue
        # Scan one level of nested dicts (e.g. headers={...}).
        val = event_dict[key]
        if isinstance(val, dict):
            for nested_key in list(val.keys()):
                if any(secret in str(nested_key).lower() for secret in _SECRET_SUBSTRINGS):
                    val[nested_key] = redacted
    return event_dict


def _inject_context_ids(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Inject the current request ID and job ID into the event dict if set.

    Runs after ``merge_contextvars`` so explicitly bound values win.
    """
    rid = request_id_var.get()
    if rid is not None and "request_id" not in event_dict:
        event_dict["request_id"] = rid
    jid = job_id_var.get()
    if jid is not None and "job_id" not in event_dict:
        event_dict["job_id"] = jid
    return event_dict


# ---------------------------------------------------------------------------
# Public configuration entry-point
# ---------------------------------------------------------------------------


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog with JSON output for production.

    In production (log_level != ``"DEBUG"``), outputs newline-delimited JSON
    suitable for log aggregators.  In development (log_level == ``"DEBUG"``),
    uses structlog's ``ConsoleRenderer`` for human-readable coloured output.

    Standard fields added to every log record: ``timestamp``, ``level``,
    ``logger``, ``event``, plus ``request_id`` / ``job_id`` when in scope.

    Idempotent - calling it multiple times replaces the previous handlers.

    Args:
        log_level: Logging verbosity string.  Case-insensitive.
    """
    level_upper = log_level.upper()
    numeric_level = getattr(logging, level_upper, logging.INFO)
    is_development = level_upper == "DEBUG"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _inject_context_ids,
        _redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if is_development:
        final_renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(
            colors=True,
        )
    else:
        final_renderer = structlog.processors.JSONRenderer()

    # Route ``logging.getLogger(__name__)`` records through structlog's
    # ProcessorFormatter so both APIs share one output format.
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            final_renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    # Silence noisy libraries unless we are in DEBUG mode.
    if not is_development:
        for noisy_logger in ("uvicorn.access", "httpx", "httpcore"):
            logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
