"""Tests for JSON and console log formatters."""

import json
import logging
import sys

from core.logging.context import set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter


def _make_record(
    msg="test message",
    level=logging.INFO,
    name="test.logger",
    exc_info=None,
    **extras,
):
    record = logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extras.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_formats_basic_json_with_required_fields(self):
        formatter = JSONFormatter()
        output = json.loads(formatter.format(_make_record()))

        assert output["level"] == "INFO"
        assert output["logger"] == "test.logger"
        assert output["message"] == "test message"
        assert output["ts"].endswith("Z")
        assert "file" not in output

    def test_includes_block_and_cycle_from_context(self):
        set_log_context(block="orders", queue_name="orders-q", cycle_id="c-1")
        output = json.loads(JSONFormatter().format(_make_record()))

        assert output["block"] == "orders"
        assert output["queue_name"] == "orders-q"
        assert output["cycle_id"] == "c-1"

    def test_extra_fields_and_numeric_coercion(self):
        record = _make_record(
            message_id="msg-1",
            outcome="ok",
            count="3",
            duration_ms="12.5",
            not_a_known_field="ignored",
        )
        output = json.loads(JSONFormatter().format(record))

        assert output["message_id"] == "msg-1"
        assert output["outcome"] == "ok"
        assert output["count"] == 3
        assert output["duration_ms"] == 12.5
        assert "not_a_known_field" not in output

    def test_invalid_numeric_value_becomes_null(self):
        output = json.loads(JSONFormatter().format(_make_record(count="many")))
        assert output["count"] is None

    def test_redacts_shared_access_key(self):
        record = _make_record(
            error="Endpoint=sb://contoso/;SharedAccessKeyName=root;SharedAccessKey=abc123",
        )
        output = json.loads(JSONFormatter().format(record))

        assert "abc123" not in output["error"]
        assert "SharedAccessKey=[REDACTED]" in output["error"]

    def test_error_records_include_file_location(self):
        output = json.loads(JSONFormatter().format(_make_record(level=logging.ERROR)))
        assert output["file"] == "test.py:42"

    def test_includes_exception_details(self):
        try:
            raise ValueError("boom")
        except ValueError:
            exc_info = sys.exc_info()

        output = json.loads(JSONFormatter().format(_make_record(level=logging.ERROR, exc_info=exc_info)))

        assert output["exception"]["type"] == "ValueError"
        assert output["exception"]["message"] == "boom"
        assert "Traceback" in output["exception"]["stacktrace"]


class TestConsoleFormatter:

    def test_includes_level_context_and_message(self):
        set_log_context(block="orders", cycle_id="c-20260105-143000-ab12")
        formatter = ConsoleFormatter()
        formatter._use_colors = False

        line = formatter.format(_make_record(message_id="0123456789abcdef"))

        assert " - INFO - [orders] - " in line
        assert "[c-20260105-143000-ab12]" in line
        assert "[mid:01234567]" in line
        assert line.endswith("test message")

    def test_colors_when_enabled(self):
        formatter = ConsoleFormatter()
        formatter._use_colors = True

        line = formatter.format(_make_record(level=logging.WARNING))

        assert "\033[33mWARNING\033[0m" in line
