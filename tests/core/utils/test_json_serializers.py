"""Tests for the shared JSON serializer."""

import json
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from uuid import UUID

from core.utils.json_serializers import json_serializer


class Color(Enum):
    RED = "red"


class Point:
    def __init__(self):
        self.x = 1
        self.y = 2


class TestJsonSerializer:
    def test_datetime_and_date(self):
        assert json_serializer(datetime(2026, 1, 5, 14, 30, tzinfo=UTC)) == "2026-01-05T14:30:00+00:00"
        assert json_serializer(date(2026, 1, 5)) == "2026-01-05"

    def test_decimal_becomes_float(self):
        assert json_serializer(Decimal("1.25")) == 1.25

    def test_path_and_uuid(self):
        assert json_serializer(Path("/tmp/x")) == "/tmp/x"
        uid = UUID("12345678-1234-5678-1234-567812345678")
        assert json_serializer(uid) == str(uid)

    def test_bytes_decoded_with_replacement(self):
        assert json_serializer(b"hello") == "hello"
        assert json_serializer(b"\xff") == "\ufffd"

    def test_enum_value(self):
        assert json_serializer(Color.RED) == "red"

    def test_object_dict(self):
        assert json_serializer(Point()) == {"x": 1, "y": 2}

    def test_used_as_default_hook(self):
        payload = {"at": datetime(2026, 1, 5, tzinfo=UTC), "raw": b"abc"}
        assert json.loads(json.dumps(payload, default=json_serializer)) == {
            "at": "2026-01-05T00:00:00+00:00",
            "raw": "abc",
        }
