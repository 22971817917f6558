"""Listing Importer - bounded-concurrency scrape-and-enrich job pipeline.

Turns a submitted listing URL into a structured, persisted record while
limiting how many external fetch operations run in parallel.

Sub-packages:
- ``config``      - environment-backed settings
- ``core``        - exceptions, logging, database, ORM models, schemas
- ``queue``       - Redis-backed FIFO, in-flight claims, counters
- ``extraction``  - pluggable content extraction providers
- ``generation``  - two-call structured generation (base + refinement)
- ``records``     - persistent record store interface and backends
- ``workers``     - orchestrator, cascade triggers, Celery tasks
- ``api``         - FastAPI application (worker endpoint, stats, status)
"""

__version__ = "0.1.0"
