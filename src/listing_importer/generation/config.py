"""Constants for the structured generation layer."""

from __future__ import annotations

#: Path of the OpenAI-compatible chat completions endpoint, relative to
#: ``OPENAI_BASE_URL``.
CHAT_COMPLETIONS_PATH: str = "/chat/completions"

#: Default model for both generation calls.
DEFAULT_MODEL: str = "gpt-4o-mini"

#: Base extraction call: low temperature for consistent field filling.
BASE_TEMPERATURE: float = 0.3

#: Refinement call: higher temperature for livelier marketing copy.
REFINE_TEMPERATURE: float = 0.8

#: Number of highlights the refinement call is asked to produce.
HIGHLIGHT_COUNT: int = 6

#: Maximum title length requested from the refinement call.
TITLE_MAX_CHARS: int = 60

#: Maximum number of photos the base call may return.
MAX_PHOTOS: int = 20

#: Content types accepted by the base call.
CONTENT_TYPE_TEXT: str = "text"
CONTENT_TYPE_STRUCTURED: str = "structured"

#: Key under which call timing and usage are stored in persisted configs.
METADATA_KEY: str = "_metadata"
