"""Shared JSON serialization utilities for type-safe JSON encoding."""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID


def _serialize_known_type(obj: Any) -> tuple[bool, Any]:
    """Try to serialize by known type. Returns (handled, result)."""
    if isinstance(obj, (datetime, date)):
        return True, obj.isoformat()
    if isinstance(obj, Decimal):
        return True, float(obj)
    if isinstance(obj, (Path, UUID)):
        return True, str(obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return True, bytes(obj).decode("utf-8", errors="replace")
    return False, None


def json_serializer(obj: Any) -> Any:
    """
    JSON ``default=`` hook for message bodies, application properties and logs.

    - datetime/date -> ISO 8601 string
    - Decimal -> float
    - Path/UUID -> string
    - bytes -> UTF-8 text (invalid sequences replaced)
    - Enums -> value
    - Objects -> their __dict__
    - Everything else -> string
    """
    handled, result = _serialize_known_type(obj)
    if handled:
        return result
    if hasattr(obj, "value"):
        return obj.value
    if hasattr(obj, "__dict__"):
        return obj.__dict__
    return str(obj)


__all__ = ["json_serializer"]
