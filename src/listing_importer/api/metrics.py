"""Prometheus metrics for Listing Importer.

All metrics are module-level singletons registered on the default
``REGISTRY``.  They are safe to import from multiple modules because
prometheus_client deduplicates by metric name.

Metrics defined here:

  scrape_jobs_total{outcome}
      Counter - worker cycles by outcome (processed, failed,
      capacity_exhausted, queue_empty).

  extraction_provider_attempts_total{provider, status}
      Counter - one increment per provider tried for a URL
      (success, error, empty).

  generation_calls_total{call, status}
      Counter - structured-generation calls (base, refine) by outcome.

  worker_cycle_duration_seconds
      Histogram - wall-clock duration of cycles that dequeued a job.

  cascade_triggers_total{status}
      Counter - self-trigger decisions (fired, skipped, error).

  http_requests_total{method, path, status}
      Counter - HTTP requests handled by the FastAPI application.

  http_request_duration_seconds{method, path}
      Histogram - HTTP request latency in seconds.

  celery_tasks_total{task_name, status}
      Counter - Celery task completions by task name and outcome.

  celery_task_duration_seconds{task_name}
      Histogram - Celery task duration in seconds.

Usage::

    from listing_importer.api.metrics import scrape_jobs_total
    scrape_jobs_total.labels(outcome="processed").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# ---------------------------------------------------------------------------
# Pipeline metrics
# ---------------------------------------------------------------------------

scrape_jobs_total: Counter = Counter(
    "scrape_jobs_total",
    "Worker cycles by outcome.",
    labelnames=["outcome"],
)
"""Counter incremented once per worker cycle.

Labels:
  outcome: one of processed, failed, capacity_exhausted, queue_empty
"""

extraction_provider_attempts_total: Counter = Counter(
    "extraction_provider_attempts_total",
    "Extraction provider attempts by provider and outcome.",
    labelnames=["provider", "status"],
)
"""Labels:
  provider: apify, firecrawl, scraperapi, direct
  status:   success, error, empty
"""

generation_calls_total: Counter = Counter(
    "generation_calls_total",
    "Structured generation calls by call and outcome.",
    labelnames=["call", "status"],
)

worker_cycle_duration_seconds: Histogram = Histogram(
    "worker_cycle_duration_seconds",
    "Duration of worker cycles that dequeued a job, including enrichment.",
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 180.0, 300.0, 600.0],
)

cascade_triggers_total: Counter = Counter(
    "cascade_triggers_total",
    "Self-trigger decisions taken after a job released its slot.",
    labelnames=["status"],
)
"""Labels:
  status: fired, skipped, error
"""

# ---------------------------------------------------------------------------
# HTTP metrics (populated by middleware in main.py)
# ---------------------------------------------------------------------------

http_requests_total: Counter = Counter(
    "http_requests_total",
    "HTTP requests handled by the FastAPI application.",
    labelnames=["method", "path", "status"],
)

http_request_duration_seconds: Histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds.",
    labelnames=["method", "path"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 60.0, 180.0],
)

# ---------------------------------------------------------------------------
# Celery task metrics (populated in workers/tasks.py)
# ---------------------------------------------------------------------------

celery_tasks_total: Counter = Counter(
    "celery_tasks_total",
    "Celery task completions by task name and outcome.",
    labelnames=["task_name", "status"],
)

celery_task_duration_seconds: Histogram = Histogram(
    "celery_task_duration_seconds",
    "Celery task wall-clock duration in seconds.",
    labelnames=["task_name"],
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0],
)


# ---------------------------------------------------------------------------
# Response helper
# ---------------------------------------------------------------------------


def get_metrics_response() -> tuple[bytes, str]:
    """Generate a Prometheus text-format metrics response.

    Returns:
        A tuple of (body_bytes, content_type_string) suitable for constructing
        a FastAPI ``Response`` object.
    """
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest  # noqa: PLC0415

    return generate_latest(), CONTENT_TYPE_LATEST
