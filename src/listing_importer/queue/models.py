"""Value objects for the scrape queue: the job payload and the stats snapshot."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from listing_importer.core.exceptions import QueueStoreError


class Job(BaseModel):
    """An immutable unit of work: import the listing at ``target`` into record ``id``.

    Serialized into the Redis list with the wire keys ``id``, ``url``,
    ``createdAt`` and ``priority``.  ``target`` / ``enqueued_at`` are accepted
    on input as well.

    Attributes:
        id: Identifier of the persistent import record this job fills in.
        target: Listing URL to extract.
        enqueued_at: Epoch seconds at which the producer created the job.
        priority: Optional ordering hint.  Carried for interface
            compatibility only; dequeue order is strictly FIFO.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    target: str = Field(
        min_length=1,
        validation_alias=AliasChoices("url", "target"),
        serialization_alias="url",
    )
    enqueued_at: float = Field(
        default_factory=time.time,
        validation_alias=AliasChoices("createdAt", "enqueued_at"),
        serialization_alias="createdAt",
    )
    priority: Optional[int] = None

    def to_payload(self) -> str:
        """Encode the job as the JSON string stored in the queue."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_payload(cls, raw: str | bytes) -> "Job":
        """Decode a queue entry.

        Raises:
            QueueStoreError: If the entry is not a valid job payload.
        """
        try:
            return cls.model_validate_json(raw)
        except ValidationError as exc:
            raise QueueStoreError(f"Invalid queue entry: {exc.error_count()} error(s)") from exc


@dataclass(frozen=True)
class QueueStats:
    """Eventually consistent snapshot of queue depth, claims and counters.

    The four values are read with independent storage calls, so they are not
    guaranteed to describe the same instant.
    """

    queue_length: int
    in_flight_count: int
    completed_today: int
    failed_today: int

    def as_dict(self) -> dict[str, Any]:
        """Return the camelCase representation used by the HTTP API."""
        return {
            "queueLength": self.queue_length,
            "inFlightCount": self.in_flight_count,
            "completedToday": self.completed_today,
            "failedToday": self.failed_today,
        }
