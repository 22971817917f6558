"""Tests for the continuation triggers and their selection from settings."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import httpx
import pytest
import respx

from listing_importer.config.settings import Settings
from listing_importer.workers.factory import build_worker
from listing_importer.workers.trigger import (
    PROCESS_NEXT_TASK,
    CeleryTrigger,
    HttpSelfTrigger,
    LocalTrigger,
    NullTrigger,
    build_trigger,
)

_WORKER_URL = "http://importer.internal/api/queue/process-scrape"


@pytest.mark.asyncio
class TestHttpSelfTrigger:
    async def test_posts_with_internal_token(self) -> None:
        trigger = HttpSelfTrigger(_WORKER_URL, "secret-token")
        with respx.mock:
            route = respx.post(_WORKER_URL).mock(
                return_value=httpx.Response(200, json={"success": True})
            )
            await trigger.fire()
            await trigger.drain()

        assert route.call_count == 1
        assert route.calls.last.request.headers["x-internal-token"] == "secret-token"
        assert trigger.pending == 0

    async def test_fire_does_not_wait_for_response(self) -> None:
        release = asyncio.Event()

        async def _slow_handler(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return httpx.Response(200)

        trigger = HttpSelfTrigger(
            _WORKER_URL,
            "secret-token",
            client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(_slow_handler)),
        )

        await trigger.fire()
        await asyncio.sleep(0)
        assert trigger.pending == 1

        release.set()
        await trigger.drain()
        assert trigger.pending == 0

    async def test_timeout_is_swallowed(self) -> None:
        trigger = HttpSelfTrigger(_WORKER_URL, "secret-token")
        with respx.mock:
            respx.post(_WORKER_URL).mock(side_effect=httpx.ReadTimeout("slow"))
            await trigger.fire()
            await trigger.drain()

        assert trigger.pending == 0

    async def test_connection_error_is_swallowed(self) -> None:
        trigger = HttpSelfTrigger(_WORKER_URL, "secret-token")
        with respx.mock:
            route = respx.post(_WORKER_URL).mock(side_effect=httpx.ConnectError("refused"))
            await trigger.fire()
            await trigger.drain()

        assert route.called


@pytest.mark.asyncio
class TestLocalTrigger:
    async def test_runs_callable_in_background(self) -> None:
        calls: list[str] = []

        async def _cycle() -> None:
            calls.append("cycle")

        trigger = LocalTrigger(_cycle)
        await trigger.fire()
        assert calls == []

        await trigger.drain()
        assert calls == ["cycle"]

    async def test_failing_cycle_is_logged_not_raised(self) -> None:
        async def _cycle() -> None:
            raise RuntimeError("cycle exploded")

        trigger = LocalTrigger(_cycle)
        await trigger.fire()
        await trigger.drain()

        assert trigger.pending == 0


@pytest.mark.asyncio
class TestCeleryTrigger:
    async def test_sends_process_task_to_scraping_queue(self) -> None:
        fake_app = MagicMock()
        with patch("listing_importer.workers.celery_app.celery_app", fake_app):
            await CeleryTrigger().fire()

        fake_app.send_task.assert_called_once_with(PROCESS_NEXT_TASK, queue="scraping")


class TestBuildTrigger:
    def test_http_mode_targets_worker_endpoint(self) -> None:
        settings = Settings(
            _env_file=None,
            cascade_mode="http",
            app_url="https://importer.example.com/",
            internal_api_token="tok",
        )

        trigger = build_trigger(settings)

        assert isinstance(trigger, HttpSelfTrigger)
        assert trigger._url == "https://importer.example.com/api/queue/process-scrape"

    def test_celery_mode(self) -> None:
        assert isinstance(build_trigger(Settings(_env_file=None, cascade_mode="celery")), CeleryTrigger)

    def test_none_mode(self) -> None:
        assert isinstance(build_trigger(Settings(_env_file=None, cascade_mode="none")), NullTrigger)

    def test_local_mode_runs_the_given_cycle(self) -> None:
        async def run_cycle() -> None:
            return None

        trigger = build_trigger(Settings(_env_file=None, cascade_mode="local"), run_cycle)

        assert isinstance(trigger, LocalTrigger)

    def test_local_mode_requires_a_cycle(self) -> None:
        with pytest.raises(ValueError):
            build_trigger(Settings(_env_file=None, cascade_mode="local"))

    def test_build_worker_wires_local_trigger_to_itself(self, queue_store, record_store) -> None:
        worker = build_worker(Settings(_env_file=None, cascade_mode="local"), queue_store, record_store)

        assert isinstance(worker.trigger, LocalTrigger)
        assert worker.trigger._run_cycle == worker.run_cycle
