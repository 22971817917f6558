"""Celery Beat periodic task schedule for Listing Importer.

Schedule overview:

+---------------------------+---------------------+-----------------------------+
| Task name                 | Schedule            | Purpose                     |
+===========================+=====================+=============================+
| sweep_scrape_queue        | Every minute        | Backstop for lost cascade   |
|                           |                     | triggers: run a cycle when  |
|                           |                     | jobs wait and nothing is in |
|                           |                     | flight.                     |
+---------------------------+---------------------+-----------------------------+
| reset_daily_counters      | 00:00 UTC           | Zero completed_today and    |
|                           |                     | failed_today.               |
+---------------------------+---------------------+-----------------------------+
"""

from __future__ import annotations

from celery.schedules import crontab

#: Celery Beat schedule dict.  Applied to ``celery_app.conf.beat_schedule``
#: in ``celery_app.py``.
beat_schedule: dict[str, dict] = {  # type: ignore[type-arg]
    "sweep_scrape_queue": {
        "task": "listing_importer.workers.tasks.sweep_scrape_queue_task",
        "schedule": crontab(minute="*"),
        "options": {
            "queue": "scraping",
            "expires": 55,  # discard if not started within 55 seconds
        },
    },
    "reset_daily_counters": {
        "task": "listing_importer.workers.tasks.reset_daily_counters_task",
        "schedule": crontab(hour=0, minute=0),
        "options": {
            "queue": "celery",
            "expires": 3_600,
        },
    },
}
