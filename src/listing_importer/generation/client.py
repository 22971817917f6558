"""HTTP client for an OpenAI-compatible chat completions endpoint.

Every call requests ``response_format={"type": "json_object"}`` and returns
the parsed object together with timing and token usage, which the
generation service stores in the record's ``_metadata``.

Error handling maps HTTP status codes to typed exceptions:

- HTTP 429 -> :class:`~listing_importer.core.exceptions.GenerationRateLimitError`
- HTTP 401/403 -> :class:`~listing_importer.core.exceptions.GenerationAuthError`
- Other non-2xx, network errors, missing or non-JSON content ->
  :class:`~listing_importer.core.exceptions.GenerationError`
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from listing_importer.core.exceptions import (
    GenerationAuthError,
    GenerationError,
    GenerationRateLimitError,
)
from listing_importer.generation.config import CHAT_COMPLETIONS_PATH

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class GenerationResponse:
    """Parsed result of one completion call.

    Attributes:
        data: The JSON object the model returned.
        usage: Token usage block from the response, if present.
        started_at: ISO timestamp taken before the request.
        completed_at: ISO timestamp taken after the response was parsed.
        duration_ms: Wall-clock duration of the call.
    """

    data: dict[str, Any]
    usage: Optional[dict[str, Any]]
    started_at: str
    completed_at: str
    duration_ms: int


class GenerationClient:
    """Thin async wrapper around ``POST {base_url}/chat/completions``.

    Args:
        api_key: Bearer key for the service.
        base_url: API root, e.g. ``https://api.openai.com/v1``.
        client: Optional shared HTTP client.  When omitted a client is
            opened per call.
        timeout: Optional request timeout in seconds.  ``None`` leaves the
            call unbounded on the client side.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}{CHAT_COMPLETIONS_PATH}"
        self._client = client
        self._timeout = timeout

    async def complete_json(
        self,
        messages: list[dict[str, str]],
        *,
        model: str,
        temperature: float,
    ) -> GenerationResponse:
        """Run one chat completion and parse its content as a JSON object.

        Raises:
            GenerationRateLimitError: On HTTP 429.
            GenerationAuthError: On HTTP 401 or 403.
            GenerationError: On any other failure.
        """
        if not self._api_key:
            raise GenerationAuthError("generation: OPENAI_API_KEY is not configured")
        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        started_at = utc_now_iso()
        started = time.perf_counter()
        logger.info(
            "generation: calling %s (temperature=%.1f, prompt_chars=%d)",
            model,
            temperature,
            sum(len(m.get("content", "")) for m in messages),
        )
        if self._client is not None:
            body = await self._post(self._client, payload, headers)
        else:
            async with httpx.AsyncClient() as client:
                body = await self._post(client, payload, headers)

        data = self._parse_content(body)
        duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info("generation: %s returned %d keys (%dms)", model, len(data), duration_ms)
        return GenerationResponse(
            data=data,
            usage=body.get("usage"),
            started_at=started_at,
            completed_at=utc_now_iso(),
            duration_ms=duration_ms,
        )

    async def _post(
        self,
        client: httpx.AsyncClient,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> dict[str, Any]:
        try:
            response = await client.post(
                self._url, json=payload, headers=headers, timeout=self._timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            code = exc.response.status_code
            if code == 429:
                retry_after = float(exc.response.headers.get("Retry-After", 60))
                raise GenerationRateLimitError(
                    "generation: HTTP 429 rate limit exceeded", retry_after=retry_after
                ) from exc
            if code in (401, 403):
                raise GenerationAuthError(f"generation: HTTP {code} invalid API key") from exc
            raise GenerationError(
                f"generation: HTTP {code} {exc.response.text[:200]}"
            ) from exc
        except httpx.RequestError as exc:
            raise GenerationError(f"generation: network error {exc}") from exc

        try:
            return response.json()  # type: ignore[no-any-return]
        except ValueError as exc:
            raise GenerationError(f"generation: response is not JSON: {exc}") from exc

    @staticmethod
    def _parse_content(body: dict[str, Any]) -> dict[str, Any]:
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise GenerationError("generation: no content in response") from exc
        if not content:
            raise GenerationError("generation: no content in response")
        try:
            data = json.loads(content)
        except ValueError as exc:
            raise GenerationError(f"generation: invalid JSON in response: {exc}") from exc
        if not isinstance(data, dict):
            raise GenerationError("generation: response JSON is not an object")
        return data
