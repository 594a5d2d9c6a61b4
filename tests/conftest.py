"""
pytest configuration for toolkit tests.

Adds src directory to Python path for imports and provides in-memory fakes
of the Service Bus client, receiver and received message.
"""

import json
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from core.auth.credentials import ServiceBusCredentials  # noqa: E402
from core.logging.context import clear_log_context  # noqa: E402

TEST_CONNECTION_STRING = (
    "Endpoint=sb://contoso.servicebus.windows.net/;"
    "SharedAccessKeyName=RootManageSharedAccessKey;SharedAccessKey=c2VjcmV0"
)


@dataclass
class FakeMessage:
    """Stand-in for azure.servicebus.ServiceBusReceivedMessage."""

    body: Any = b'{"orderId": 1}'
    message_id: str | None = "msg-1"
    enqueued_time_utc: datetime | None = field(
        default_factory=lambda: datetime(2026, 1, 5, 14, 30, tzinfo=UTC)
    )
    sequence_number: int | None = 1
    content_type: str | None = "application/json"
    correlation_id: str | None = None
    application_properties: dict | None = None


class FakeReceiver:
    """
    In-memory queue receiver.

    receive_messages() pops from ``queue``; peek_messages() leaves it intact.
    Set ``receive_error``, ``peek_error`` or ``close_error`` to make the
    matching call raise. ``complete_error`` is raised when the completion
    with index ``complete_error_at`` is attempted.
    """

    def __init__(self, messages: list | None = None):
        self.queue: list = list(messages or [])
        self.completed: list = []
        self.receive_calls: list[tuple[int, float]] = []
        self.peek_calls: list[int] = []
        self.close_calls = 0

        self.receive_error: Exception | None = None
        self.peek_error: Exception | None = None
        self.close_error: Exception | None = None
        self.complete_error: Exception | None = None
        self.complete_error_at = 0

    async def receive_messages(self, max_message_count=None, max_wait_time=None):
        self.receive_calls.append((max_message_count, max_wait_time))
        if self.receive_error:
            raise self.receive_error
        count = max_message_count or len(self.queue)
        batch, self.queue = self.queue[:count], self.queue[count:]
        return batch

    async def complete_message(self, message):
        if self.complete_error is not None and len(self.completed) == self.complete_error_at:
            raise self.complete_error
        self.completed.append(message)

    async def peek_messages(self, max_message_count=1):
        self.peek_calls.append(max_message_count)
        if self.peek_error:
            raise self.peek_error
        return self.queue[:max_message_count]

    async def close(self):
        self.close_calls += 1
        if self.close_error:
            raise self.close_error


class FakeClient:
    def __init__(self, receiver: FakeReceiver):
        self.receiver = receiver
        self.queue_names: list[str] = []
        self.close_calls = 0
        self.receiver_error: Exception | None = None

    def get_queue_receiver(self, queue_name: str):
        self.queue_names.append(queue_name)
        if self.receiver_error:
            raise self.receiver_error
        return self.receiver

    async def close(self):
        self.close_calls += 1


class FakeClientFactory:
    """Callable passed as ``client_factory``; records every client it builds."""

    def __init__(self, receiver: FakeReceiver):
        self.receiver = receiver
        self.clients: list[FakeClient] = []
        self.error: Exception | None = None
        self.receiver_error: Exception | None = None

    def __call__(self, credentials):
        if self.error:
            raise self.error
        client = FakeClient(self.receiver)
        client.receiver_error = self.receiver_error
        self.clients.append(client)
        return client


def make_message(index: int = 1, body: Any = None, **kwargs) -> FakeMessage:
    """Build a FakeMessage whose id and sequence number derive from index."""
    if body is None:
        body = json.dumps({"orderId": index}).encode("utf-8")
    kwargs.setdefault("message_id", f"msg-{index}")
    kwargs.setdefault("sequence_number", index)
    return FakeMessage(body=body, **kwargs)


@pytest.fixture(autouse=True)
def reset_log_context():
    """Log context is process global; isolate it per test."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def receiver():
    return FakeReceiver()


@pytest.fixture
def client_factory(receiver):
    return FakeClientFactory(receiver)


@pytest.fixture
def credentials():
    return ServiceBusCredentials(connection_string=TEST_CONNECTION_STRING)


@pytest.fixture
def message_factory():
    return make_message
