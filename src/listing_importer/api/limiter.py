"""Shared slowapi rate-limiter singleton.

Keeping the ``Limiter`` instance in its own module breaks the circular
import that would arise if route modules imported directly from ``main.py``
(which itself imports every route module).

Usage in route modules::

    from listing_importer.api.limiter import limiter

    @router.get("/status/{record_id}")
    @limiter.limit("120/minute")
    async def import_status(request: Request, ...):
        ...

The ``request`` parameter **must** be present in the route function
signature for slowapi to resolve the rate-limit key.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter: Limiter = Limiter(key_func=get_remote_address)
"""Global rate-limiter instance.

Only public polling routes are limited; the worker endpoint is called by
the scheduler and by the worker itself and is guarded by a token instead.
"""
