"""
Value types shared by the Service Bus components and the blocks.

NormalizedMessage is the record emitted downstream; PollCycleResult and
ProbeResult are the typed outcomes returned instead of raised provider errors.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from config.config import (
    DEFAULT_MAX_MESSAGES,
    DEFAULT_RECEIVE_TIMEOUT_SECONDS,
    validate_queue_settings,
)

# ConsumerState keys written to the block state store
LAST_CHECK_TIME_KEY = "lastCheckTime"
LAST_MESSAGE_RECEIVED_TIME_KEY = "lastMessageReceivedTime"
CONSUMER_STATE_KEYS = (LAST_CHECK_TIME_KEY, LAST_MESSAGE_RECEIVED_TIME_KEY)


def format_utc_iso(value: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with millisecond precision and a Z suffix.

    Naive values are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def utc_now_iso() -> str:
    """Current UTC time, formatted by format_utc_iso."""
    return format_utc_iso(datetime.now(UTC))


class CycleOutcome(StrEnum):
    OK = "ok"
    ERROR = "error"


class HealthStatus(StrEnum):
    """Block health as seen by the host."""

    READY = "ready"
    FAILED = "failed"
    DRAINED = "drained"


class NormalizedMessage(BaseModel):
    """Schema for a queue message after normalization.

    Serialized with camelCase keys (``messageId``, ``enqueuedTime``...) via
    ``to_event()``. Missing provider metadata is represented as empty
    strings and an empty property mapping, never as null.

    Attributes:
        body: Parsed JSON value when the body is valid JSON, otherwise the text
        raw_body: Body text before JSON parsing
        message_id: Provider message identifier
        enqueued_time: ISO-8601 enqueue timestamp
        sequence_number: Provider sequence number as a decimal string
        content_type: Content type set by the sender
        correlation_id: Correlation identifier set by the sender
        application_properties: Sender-defined properties
    """

    body: Any = Field(default=None, description="Parsed body, or the raw text if not JSON")
    raw_body: str | None = Field(default=None, alias="rawBody")
    message_id: str = Field(default="", alias="messageId")
    enqueued_time: str = Field(default="", alias="enqueuedTime")
    sequence_number: str = Field(default="", alias="sequenceNumber")
    content_type: str = Field(default="", alias="contentType")
    correlation_id: str = Field(default="", alias="correlationId")
    application_properties: dict[str, Any] = Field(
        default_factory=dict, alias="applicationProperties"
    )

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    def to_event(self, include_raw_body: bool = True) -> dict[str, Any]:
        """Output event payload with camelCase keys."""
        data = self.model_dump(by_alias=True, mode="json")
        if not include_raw_body:
            data.pop("rawBody", None)
        return data


@dataclass(frozen=True)
class QueueConfig:
    """Settings of one queue consumer.

    Attributes:
        queue_name: Service Bus queue to consume
        max_messages: Upper bound of messages per receive call
        receive_timeout_seconds: How long a receive waits for the first message
    """

    queue_name: str
    max_messages: int = DEFAULT_MAX_MESSAGES
    receive_timeout_seconds: float = DEFAULT_RECEIVE_TIMEOUT_SECONDS

    def validate(self) -> None:
        validate_queue_settings(
            self.queue_name,
            self.max_messages,
            self.receive_timeout_seconds,
            context=f"queue '{self.queue_name}'",
        )


@dataclass
class PollCycleResult:
    """Outcome of one poll cycle.

    ``count`` is the number of messages received from the queue. ``messages``
    holds the records that were acknowledged and handed to the sink, in
    receive order; it is shorter than ``count`` when an acknowledgment
    aborted the batch. ``error`` is only set when ``outcome`` is ERROR.
    """

    outcome: CycleOutcome
    count: int = 0
    messages: list[NormalizedMessage] = field(default_factory=list)
    error: str | None = None
    checked_at: str = field(default_factory=utc_now_iso)

    @property
    def is_ok(self) -> bool:
        return self.outcome == CycleOutcome.OK


@dataclass(frozen=True)
class ProbeResult:
    ok: bool
    error: str | None = None


__all__ = [
    "CONSUMER_STATE_KEYS",
    "LAST_CHECK_TIME_KEY",
    "LAST_MESSAGE_RECEIVED_TIME_KEY",
    "CycleOutcome",
    "HealthStatus",
    "NormalizedMessage",
    "PollCycleResult",
    "ProbeResult",
    "QueueConfig",
    "utc_now_iso",
]
