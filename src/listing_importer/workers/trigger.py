"""Continuation triggers: how a finished worker cycle starts the next one.

There is no long-running scheduler loop.  After a cycle frees its slot the
worker asks a :class:`Trigger` to start another cycle when work is waiting.
Which transport carries that request is a deployment choice
(``CASCADE_MODE``):

- ``http``   -> :class:`HttpSelfTrigger`, a fire-and-forget POST to the
  worker endpoint of this same application.
- ``celery`` -> :class:`CeleryTrigger`, a ``process_next_scrape_task`` message.
- ``none``   -> :class:`NullTrigger`; only the periodic sweep drives the queue.

:class:`LocalTrigger` runs the next cycle as an asyncio task in the current
process and is used by tests and single-process deployments.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Callable

import httpx

if TYPE_CHECKING:
    from listing_importer.config.settings import Settings

logger = logging.getLogger(__name__)

PROCESS_NEXT_TASK = "listing_importer.workers.tasks.process_next_scrape_task"

#: Seconds a self-trigger request may take before it is abandoned.
HTTP_TRIGGER_TIMEOUT: float = 10.0


class Trigger(ABC):
    """Start one more worker cycle, without waiting for it."""

    name: str = "trigger"

    @abstractmethod
    async def fire(self) -> None:
        """Request another cycle.

        Raises:
            Exception: If the request could not be handed off.  Callers log
                and ignore trigger failures.
        """

    async def drain(self) -> None:
        """Wait for background work started by :meth:`fire` to finish."""
        return None


class _BackgroundTrigger(Trigger):
    """Shared bookkeeping for triggers that run their work as asyncio tasks."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        # Tasks may fire further tasks, so loop until the set stays empty.
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class HttpSelfTrigger(_BackgroundTrigger):
    """POST to the worker endpoint in the background.

    Args:
        url: Absolute URL of ``/api/queue/process-scrape``.
        token: Value for the ``x-internal-token`` header.
        client_factory: Builds the HTTP client; tests inject a transport.
    """

    name = "http"

    def __init__(
        self,
        url: str,
        token: str,
        *,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        timeout: float = HTTP_TRIGGER_TIMEOUT,
    ) -> None:
        super().__init__()
        self._url = url
        self._token = token
        self._client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=timeout))

    async def fire(self) -> None:
        self._spawn(self._post())

    async def _post(self) -> None:
        try:
            async with self._client_factory() as client:
                response = await client.post(
                    self._url,
                    headers={"x-internal-token": self._token},
                    json={},
                )
            logger.info("queue: self-trigger returned HTTP %d", response.status_code)
        except httpx.TimeoutException:
            # The endpoint keeps running after the client gives up.
            logger.debug("queue: self-trigger handed off to %s", self._url)
        except httpx.HTTPError as exc:
            logger.warning("queue: self-trigger to %s failed: %s", self._url, exc)


class CeleryTrigger(Trigger):
    """Send ``process_next_scrape_task`` to the ``scraping`` queue."""

    name = "celery"

    async def fire(self) -> None:
        from listing_importer.workers.celery_app import celery_app  # noqa: PLC0415

        await asyncio.to_thread(celery_app.send_task, PROCESS_NEXT_TASK, queue="scraping")
        logger.info("queue: dispatched %s", PROCESS_NEXT_TASK)


class LocalTrigger(_BackgroundTrigger):
    """Run the next cycle in this process as a background asyncio task.

    Args:
        run_cycle: Usually ``worker.run_cycle``.
    """

    name = "local"

    def __init__(self, run_cycle: Callable[[], Awaitable[Any]]) -> None:
        super().__init__()
        self._run_cycle = run_cycle

    async def fire(self) -> None:
        self._spawn(self._run())

    async def _run(self) -> None:
        try:
            await self._run_cycle()
        except Exception:  # noqa: BLE001
            logger.exception("queue: locally triggered cycle failed")


class NullTrigger(Trigger):
    """Do nothing; the periodic sweep is the only continuation."""

    name = "none"

    async def fire(self) -> None:
        return None


def build_trigger(
    settings: "Settings",
    run_cycle: Callable[[], Awaitable[Any]] | None = None,
) -> Trigger:
    """Return the trigger selected by ``settings.cascade_mode``.

    Raises:
        ValueError: If ``local`` mode is selected without *run_cycle*.
    """
    if settings.cascade_mode == "http":
        return HttpSelfTrigger(settings.worker_url, settings.internal_api_token)
    if settings.cascade_mode == "celery":
        return CeleryTrigger()
    if settings.cascade_mode == "local":
        if run_cycle is None:
            raise ValueError("local cascade mode needs the worker's run_cycle")
        return LocalTrigger(run_cycle)
    return NullTrigger()
