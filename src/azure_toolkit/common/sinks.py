"""
Emission sink abstractions for decoupling message output from the poller.

Provides a Protocol-based interface so the poll cycle controller can hand
normalized messages to different destinations (log, JSON Lines file, a
host callback) without tight coupling to any specific implementation.
"""

import asyncio
import inspect
import json
import logging
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from core.utils.json_serializers import json_serializer

logger = logging.getLogger(__name__)


@runtime_checkable
class EmissionSink(Protocol):
    """
    Protocol for sinks that receive emitted events.

    Events are plain dicts: a NormalizedMessage payload for subscriptions, or
    the status envelope produced by the queue reader.
    """

    async def emit(self, event: dict[str, Any]) -> None:
        """Deliver a single event. Raising signals a failed emission."""
        ...


class LoggingSink:
    """Sink that logs each event at INFO. Useful for local runs."""

    def __init__(self, name: str = "events"):
        self._logger = logging.getLogger(f"{__name__}.{name}")

    async def emit(self, event: dict[str, Any]) -> None:
        self._logger.info(
            "Emitted event: %s",
            json.dumps(event, default=json_serializer, ensure_ascii=False),
            extra={"message_id": event.get("messageId")},
        )


class JsonLinesSink:
    """
    Sink that appends events to a JSON Lines (.jsonl) file.

    Every event is flushed and fsynced before emit() returns, since the
    message it carries has already been completed on the queue.
    """

    def __init__(self, output_path: str | Path):
        self.output_path = Path(output_path)
        self._lock = asyncio.Lock()
        self._events_written = 0

    @property
    def events_written(self) -> int:
        return self._events_written

    def _append(self, line: str) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_path, "a", encoding="utf-8") as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())

    async def emit(self, event: dict[str, Any]) -> None:
        line = json.dumps(event, default=json_serializer, ensure_ascii=False) + "\n"
        async with self._lock:
            await asyncio.to_thread(self._append, line)
            self._events_written += 1

        logger.debug(
            "Wrote event to file",
            extra={"path": str(self.output_path), "message_id": event.get("messageId")},
        )


class CallbackSink:
    """Sink that forwards events to a sync or async callable."""

    def __init__(self, callback: Callable[[dict[str, Any]], Awaitable[None] | None]):
        self._callback = callback

    async def emit(self, event: dict[str, Any]) -> None:
        result = self._callback(event)
        if inspect.isawaitable(result):
            await result


class CollectingSink:
    """Sink that keeps every emitted event in memory."""

    def __init__(self):
        self.events: list[dict[str, Any]] = []

    async def emit(self, event: dict[str, Any]) -> None:
        self.events.append(event)


def create_sink(sink_type: str = "log", path: str = "", name: str = "events") -> EmissionSink:
    """Build a sink from its configured type ("log" or "jsonl")."""
    if sink_type == "jsonl":
        return JsonLinesSink(path)
    if sink_type == "log":
        return LoggingSink(name)
    raise ValueError(f"Unknown sink type: {sink_type}")


__all__ = [
    "CallbackSink",
    "CollectingSink",
    "EmissionSink",
    "JsonLinesSink",
    "LoggingSink",
    "create_sink",
]
