"""Log formatters for JSON and console output."""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from core.logging.context import get_log_context
from core.utils.json_serializers import json_serializer


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    Redacts shared access signatures and keys before logging.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # Correlation
        "message_id",
        "correlation_id",
        "sequence_number",
        "duration_ms",
        # Errors
        "error_category",
        "error_message",
        "error",
        "error_type",
        "operation",
        # Poll cycle metrics
        "outcome",
        "count",
        "messages_received",
        "messages_emitted",
        "max_messages",
        "configured_max_messages",
        "receive_timeout_seconds",
        # Lifecycle
        "status",
        "previous_status",
        "description",
        "interval_seconds",
        # Connection
        "namespace",
        "auth_mode",
        "endpoint",
        "port",
        "path",
    ]

    # Type mapping for numeric fields so they are not serialized as strings
    NUMERIC_FIELDS = {
        "duration_ms": float,
        "receive_timeout_seconds": float,
        "interval_seconds": float,
        "count": int,
        "messages_received": int,
        "messages_emitted": int,
        "max_messages": int,
        "configured_max_messages": int,
        "port": int,
    }

    # Fields that may carry a connection string or endpoint
    SECRET_FIELDS = ["endpoint", "error", "error_message", "namespace"]

    # Pattern to match shared access key material in connection strings and URLs
    SENSITIVE_PARAMS_PATTERN = re.compile(
        r"(SharedAccessKey|SharedAccessSignature|sig|token|key)=[^;&\s]*",
        re.IGNORECASE,
    )

    def _sanitize_value(self, key: str, value: Any) -> Any:
        if key in self.SECRET_FIELDS and isinstance(value, str):
            return self.SENSITIVE_PARAMS_PATTERN.sub(r"\1=[REDACTED]", value)
        return value

    def _ensure_type(self, field: str, value: Any) -> Any:
        if field not in self.NUMERIC_FIELDS or value is None:
            return value

        expected_type = self.NUMERIC_FIELDS[field]
        try:
            return expected_type(value)
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _base_log_entry(record: logging.LogRecord) -> dict[str, Any]:
        return {
            "ts": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

    @staticmethod
    def _inject_context(log_entry: dict[str, Any], log_context: dict[str, Any]) -> None:
        for field in ("block", "queue_name", "cycle_id"):
            if log_context[field]:
                log_entry[field] = log_context[field]

    def _inject_extra_fields(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                typed_value = self._ensure_type(field, value)
                log_entry[field] = self._sanitize_value(field, typed_value)

    def _inject_exception(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        if not record.exc_info:
            return

        exc_type, exc_value, _ = record.exc_info
        log_entry["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "stacktrace": self.formatException(record.exc_info),
        }

    def format(self, record: logging.LogRecord) -> str:
        log_entry = self._base_log_entry(record)
        self._inject_context(log_entry, get_log_context())

        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        self._inject_extra_fields(log_entry, record)
        self._inject_exception(log_entry, record)

        return json.dumps(log_entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter with color-coded log levels.

    Colors are auto-disabled when output is not a TTY (pipes, files).
    """

    COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stdout.isatty()

    def _format_level_name(self, record: logging.LogRecord) -> str:
        level_name = record.levelname
        color = self.COLORS.get(record.levelno, "") if self._use_colors else ""
        if not color:
            return level_name
        return f"{color}{level_name}{self.RESET}"

    @staticmethod
    def _build_prefix(level_name: str, log_context: dict[str, Any]) -> str:
        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            level_name,
        ]

        if log_context["block"]:
            parts.append(f"[{log_context['block']}]")
        if log_context["queue_name"]:
            parts.append(f"[{log_context['queue_name']}]")

        return " - ".join(parts)

    @staticmethod
    def _build_tags(record: logging.LogRecord, log_context: dict[str, Any]) -> list[str]:
        cycle_id = log_context.get("cycle_id")
        message_id = getattr(record, "message_id", None)

        tags = []
        if cycle_id:
            tags.append(f"[{cycle_id}]")
        if message_id:
            tags.append(f"[mid:{str(message_id)[:8]}]")
        return tags

    def format(self, record: logging.LogRecord) -> str:
        log_context = get_log_context()

        level_name = self._format_level_name(record)
        prefix = self._build_prefix(level_name, log_context)
        tags = self._build_tags(record, log_context)

        line = f"{prefix} - {' '.join(tags)} {record.getMessage()}" if tags else f"{prefix} - {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line
