"""
Scoped Service Bus queue session.

A session owns one client and one queue receiver for the duration of a poll
cycle, probe, or one-shot read. ``open_session`` guarantees that ``close()``
runs exactly once on every exit path; close failures are logged and never
mask the outcome of the work done inside the session.

Usage:
    async with open_session(credentials, "orders") as session:
        for raw in await session.receive(max_count=10, timeout=5):
            await session.acknowledge(raw)
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from core.auth.credentials import ServiceBusCredentials, create_servicebus_client
from core.errors.exceptions import ToolkitError
from core.errors.servicebus_classifier import classify_servicebus_error
from core.logging.utilities import log_exception

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ServiceBusCredentials], Any]


class QueueSession:
    """
    Receive, complete and peek operations against one queue.

    Provider exceptions are converted into ConnectivityError / AuthError
    (receive, peek) or AcknowledgmentError (acknowledge).
    """

    def __init__(self, client: Any, receiver: Any, queue_name: str):
        self._client = client
        self._receiver = receiver
        self.queue_name = queue_name
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"Session for queue '{self.queue_name}' is closed")

    async def receive(self, max_count: int, timeout: float) -> list[Any]:
        """
        Receive up to max_count messages, waiting at most timeout seconds.

        Returns an empty list when nothing arrives in time.
        """
        self._ensure_open()
        try:
            messages = await self._receiver.receive_messages(
                max_message_count=max_count,
                max_wait_time=timeout,
            )
        except Exception as e:
            raise classify_servicebus_error(e, "receive", {"queue_name": self.queue_name}) from e
        return list(messages or [])

    async def acknowledge(self, message: Any) -> None:
        """Complete a received message, removing it from the queue."""
        self._ensure_open()
        try:
            await self._receiver.complete_message(message)
        except Exception as e:
            raise classify_servicebus_error(
                e,
                "acknowledge",
                {
                    "queue_name": self.queue_name,
                    "message_id": str(getattr(message, "message_id", "") or ""),
                },
            ) from e

    async def peek(self, count: int = 1) -> list[Any]:
        """Browse up to count messages without locking or removing them."""
        self._ensure_open()
        try:
            messages = await self._receiver.peek_messages(max_message_count=count)
        except Exception as e:
            raise classify_servicebus_error(e, "peek", {"queue_name": self.queue_name}) from e
        return list(messages or [])

    async def close(self) -> None:
        """Close the receiver and the client. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        for label, resource in (("receiver", self._receiver), ("client", self._client)):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                log_exception(
                    logger,
                    e,
                    f"Failed to close Service Bus {label}",
                    level=logging.WARNING,
                    include_traceback=False,
                    queue_name=self.queue_name,
                )


@asynccontextmanager
async def open_session(
    credentials: ServiceBusCredentials,
    queue_name: str,
    client_factory: ClientFactory | None = None,
) -> AsyncIterator[QueueSession]:
    """
    Open a session on queue_name and close it on exit.

    Args:
        credentials: Namespace credentials
        queue_name: Queue to receive from
        client_factory: Builds the provider client (default: create_servicebus_client)

    Raises:
        ConfigurationError: If the credentials are unusable
        ConnectivityError / AuthError: If the client or receiver cannot be created
    """
    factory = client_factory or create_servicebus_client
    client = None
    try:
        client = factory(credentials)
        receiver = client.get_queue_receiver(queue_name=queue_name)
    except ToolkitError:
        if client is not None:
            await QueueSession(client, None, queue_name).close()
        raise
    except Exception as e:
        if client is not None:
            await QueueSession(client, None, queue_name).close()
        raise classify_servicebus_error(e, "open", {"queue_name": queue_name}) from e

    session = QueueSession(client, receiver, queue_name)
    logger.debug("Opened Service Bus session", extra={"queue_name": queue_name})
    try:
        yield session
    finally:
        await session.close()


__all__ = ["ClientFactory", "QueueSession", "open_session"]
