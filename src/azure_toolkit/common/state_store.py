"""Block state store for consumer timestamps.

Holds the small key-value record a block keeps between poll cycles
(``lastCheckTime`` and ``lastMessageReceivedTime``). Last write wins; no
transactional guarantees.

Architecture:
- Protocol-based design for easy extension
- Two implementations: InMemoryStateStore and JsonFileStateStore
- Factory function selects implementation based on configuration
- Atomic writes for crash safety

Usage:
    store = create_state_store("state/orders.json")
    await store.set("lastCheckTime", "2026-01-05T14:30:00.000Z")
    last = await store.get("lastCheckTime")
    await store.delete_many(["lastCheckTime", "lastMessageReceivedTime"])
"""

import asyncio
import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class StateStore(Protocol):
    """Protocol for block state persistence."""

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete_many(self, keys: Iterable[str]) -> None:
        """Remove the given keys. Missing keys are ignored."""
        ...


class InMemoryStateStore:
    """Process-local state store. State is lost on restart."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class JsonFileStateStore:
    """Local JSON file state store.

    Stores one block's state as a flat JSON object. Uses the atomic write
    pattern (write to temp file, then os.replace).
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._lock = asyncio.Lock()

        logger.debug("JsonFileStateStore initialized", extra={"path": str(self._path)})

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}

        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(
                "Failed to load block state, starting fresh",
                extra={"path": str(self._path), "error": str(e)},
            )
            return {}

        if not isinstance(data, dict):
            logger.warning(
                "Ignoring block state with unexpected layout",
                extra={"path": str(self._path)},
            )
            return {}
        return data

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")

        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        # Atomic replace
        os.replace(temp_path, self._path)

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._load().get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = self._load()
            data[key] = value
            self._write(data)

    async def delete_many(self, keys: Iterable[str]) -> None:
        async with self._lock:
            data = self._load()
            removed = [key for key in keys if data.pop(key, None) is not None]
            if not removed:
                return
            if data:
                self._write(data)
            else:
                self._path.unlink(missing_ok=True)

            logger.debug(
                "Deleted block state keys",
                extra={"path": str(self._path), "count": len(removed)},
            )


def create_state_store(path: str | Path | None = None) -> StateStore:
    """Create a JSON file store when a path is configured, otherwise an in-memory store."""
    if path:
        return JsonFileStateStore(path)
    return InMemoryStateStore()


__all__ = [
    "InMemoryStateStore",
    "JsonFileStateStore",
    "StateStore",
    "create_state_store",
]
