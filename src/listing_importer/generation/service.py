"""Two-call structured generation for listing one-pagers.

Call 1 (:meth:`StructuredGenerator.generate_base`) turns normalized listing
content into a config.  Call 2 (:meth:`StructuredGenerator.refine_config`)
rewrites the title, subtitle and highlights from a narrowed view of that
config.  Each call's timing and token usage land in the config's
``_metadata`` block.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

from pydantic import ValidationError

from listing_importer.core.exceptions import GenerationError
from listing_importer.generation.client import GenerationClient, GenerationResponse
from listing_importer.generation.config import (
    BASE_TEMPERATURE,
    DEFAULT_MODEL,
    METADATA_KEY,
    REFINE_TEMPERATURE,
)
from listing_importer.generation.ordering import sort_config
from listing_importer.generation.prompts import (
    build_refinement_prompt,
    config_messages,
    refinement_messages,
)
from listing_importer.generation.refinement import (
    Refinement,
    RefinementInput,
    format_refinement_input,
    merge,
    narrow,
)
from listing_importer.generation.schema import ListingConfig

if TYPE_CHECKING:
    from listing_importer.config.settings import Settings

logger = logging.getLogger(__name__)


def _record_call(call: str, status: str) -> None:
    try:
        from listing_importer.api.metrics import generation_calls_total  # noqa: PLC0415

        generation_calls_total.labels(call=call, status=status).inc()
    except Exception as exc:  # noqa: BLE001
        logger.debug("generation: metrics recording failed: %s", exc)


def call_metadata(prefix: str, response: GenerationResponse) -> dict[str, Any]:
    """``_metadata`` entries for one call, keyed ``{prefix}_started_at`` etc."""
    return {
        f"{prefix}_started_at": response.started_at,
        f"{prefix}_completed_at": response.completed_at,
        f"{prefix}_duration_ms": response.duration_ms,
        f"{prefix}_usage": response.usage,
    }


def with_metadata(config: Mapping[str, Any], metadata: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *config* carrying *metadata* under ``_metadata``."""
    result = {k: v for k, v in config.items() if k != METADATA_KEY}
    result[METADATA_KEY] = dict(metadata)
    return result


@dataclass
class GenerationResult:
    """A generated config and the metadata accumulated so far."""

    config: dict[str, Any]
    metadata: dict[str, Any] = field(default_factory=dict)

    def as_persisted(self) -> dict[str, Any]:
        """The config with ``_metadata`` attached, as stored on the record."""
        return with_metadata(self.config, self.metadata)


class StructuredGenerator:
    """Run the base and refinement calls against a :class:`GenerationClient`."""

    def __init__(self, client: GenerationClient, *, model: str = DEFAULT_MODEL) -> None:
        self._client = client
        self._model = model

    @classmethod
    def from_settings(cls, settings: "Settings") -> "StructuredGenerator":
        client = GenerationClient(
            settings.openai_api_key,
            settings.openai_base_url,
            timeout=settings.generation_timeout_seconds,
        )
        return cls(client, model=settings.generation_model)

    async def generate_base(self, content: str, content_type: str) -> GenerationResult:
        """Call 1: fill a config from *content*.

        Raises:
            GenerationError: If the call fails or its output does not
                validate as a :class:`ListingConfig`.
        """
        try:
            response = await self._client.complete_json(
                config_messages(content, content_type),
                model=self._model,
                temperature=BASE_TEMPERATURE,
            )
        except GenerationError:
            _record_call("base", "error")
            raise

        try:
            validated = ListingConfig.model_validate(response.data)
        except ValidationError as exc:
            _record_call("base", "invalid")
            raise GenerationError(
                f"generation: base config failed validation ({exc.error_count()} errors)"
            ) from exc

        _record_call("base", "success")
        return GenerationResult(
            config=sort_config(validated.to_dict()),
            metadata=call_metadata("call1", response),
        )

    async def refine(self, projection: RefinementInput) -> tuple[Refinement, dict[str, Any]]:
        """Call 2: ask for a better title, subtitle and highlights.

        Returns:
            The parsed refinement and its ``call2_*`` metadata.

        Raises:
            GenerationError: If the call fails.
        """
        current_highlights = "\n".join(
            f"{i}. {h.get('title', '')}: {h.get('value', '')}"
            for i, h in enumerate(projection.highlights, start=1)
        )
        prompt = build_refinement_prompt(
            format_refinement_input(projection),
            current_title=projection.title,
            current_highlights=current_highlights,
        )
        try:
            response = await self._client.complete_json(
                refinement_messages(prompt),
                model=self._model,
                temperature=REFINE_TEMPERATURE,
            )
        except GenerationError:
            _record_call("refine", "error")
            raise
        _record_call("refine", "success")
        return Refinement.from_response(response.data), call_metadata("call2", response)

    async def refine_config(self, base: GenerationResult) -> GenerationResult:
        """Refine *base*, keeping its values if the refinement call fails."""
        try:
            refinement, metadata = await self.refine(narrow(base.config))
        except GenerationError as exc:
            logger.warning("generation: refinement failed, keeping base values: %s", exc)
            return GenerationResult(
                config=dict(base.config),
                metadata={**base.metadata, "call2_error": str(exc)},
            )
        return GenerationResult(
            config=sort_config(merge(base.config, refinement)),
            metadata={**base.metadata, **metadata},
        )
