"""
Message normalization.

Converts a received Service Bus message into a NormalizedMessage. Pure and
total: malformed or missing fields degrade to defaults, never to errors.

Body decoding:
    - str is used as-is
    - bytes / bytearray / memoryview are decoded as UTF-8 (invalid bytes replaced)
    - an iterable of byte chunks (the SDK's AMQP data body) is joined, then decoded
    - anything else (AMQP value/sequence bodies) is serialized to JSON

The decoded text is then parsed as JSON; ``body`` holds the parsed value when
parsing succeeds and the text otherwise. ``raw_body`` always holds the text.
"""

import json
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from core.utils.json_serializers import json_serializer

from azure_toolkit.common.types import NormalizedMessage, format_utc_iso


_BYTES_TYPES = (bytes, bytearray, memoryview)


def _decode_bytes(value: bytes | bytearray | memoryview) -> str:
    return bytes(value).decode("utf-8", errors="replace")


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, _BYTES_TYPES):
        return _decode_bytes(value)
    return str(value)


def body_to_text(body: Any) -> str:
    """Render a provider body as text."""
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    if isinstance(body, _BYTES_TYPES):
        return _decode_bytes(body)

    if isinstance(body, Iterable) and not isinstance(body, (Mapping, list, tuple)):
        # Data bodies are generators of byte sections; materialize once
        chunks = list(body)
        if all(isinstance(chunk, _BYTES_TYPES) for chunk in chunks):
            return _decode_bytes(b"".join(bytes(chunk) for chunk in chunks))
        body = chunks

    try:
        return json.dumps(body, default=json_serializer, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(body)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_body(text: str) -> Any:
    """Return the parsed JSON value of text, or the text itself.

    NaN, Infinity and -Infinity are not JSON and leave the text unparsed.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (json.JSONDecodeError, ValueError):
        return text


def _format_enqueued_time(value: Any) -> str:
    if isinstance(value, datetime):
        return format_utc_iso(value)
    if value in (None, ""):
        return ""
    return str(value)


def _format_sequence_number(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, int):
        return str(value)
    return _to_text(value)


def _normalize_property(value: Any) -> Any:
    if isinstance(value, _BYTES_TYPES):
        return _decode_bytes(value)
    return value


def _normalize_properties(properties: Any) -> dict[str, Any]:
    if not properties or not isinstance(properties, Mapping):
        return {}
    return {
        _to_text(key): _normalize_property(value) for key, value in properties.items()
    }


def normalize(raw: Any) -> NormalizedMessage:
    """
    Normalize a received message.

    Args:
        raw: A ServiceBusReceivedMessage, or any object exposing ``body``,
            ``message_id``, ``enqueued_time_utc``, ``sequence_number``,
            ``content_type``, ``correlation_id`` and ``application_properties``

    Returns:
        NormalizedMessage with camelCase serialization. Normalizing the same
        message twice yields equal records.
    """
    raw_body = body_to_text(getattr(raw, "body", None))

    return NormalizedMessage(
        body=parse_body(raw_body),
        raw_body=raw_body,
        message_id=_to_text(getattr(raw, "message_id", None) or ""),
        enqueued_time=_format_enqueued_time(getattr(raw, "enqueued_time_utc", None)),
        sequence_number=_format_sequence_number(getattr(raw, "sequence_number", None)),
        content_type=_to_text(getattr(raw, "content_type", None) or ""),
        correlation_id=_to_text(getattr(raw, "correlation_id", None) or ""),
        application_properties=_normalize_properties(
            getattr(raw, "application_properties", None)
        ),
    )


__all__ = ["body_to_text", "normalize", "parse_body"]
