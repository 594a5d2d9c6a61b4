"""
Service Bus queue reader block.

Reads on demand: every input event receives at most one message (waiting
up to one second), completes it, and emits a status envelope:

    {"status": "connected", "checkedAt": "...", "message": {...} | null}
    {"status": "error", "checkedAt": "...", "message": null}

Failures are reported as an ``error`` envelope instead of being raised.
The emitted message includes ``rawBody``.
"""

import logging
from typing import Any

from core.logging.context_managers import LogContext
from core.logging.utilities import log_exception

from azure_toolkit.blocks.base import Block, BlockKind
from azure_toolkit.common import metrics
from azure_toolkit.common.types import utc_now_iso
from azure_toolkit.servicebus.normalizer import normalize
from azure_toolkit.servicebus.session import open_session

logger = logging.getLogger(__name__)

READ_MAX_MESSAGES = 1
READ_TIMEOUT_SECONDS = 1.0

STATUS_CONNECTED = "connected"
STATUS_ERROR = "error"


class QueueReaderBlock(Block):
    """One-shot queue reader driven by input events."""

    kind = BlockKind.QUEUE_READER

    async def read(self) -> dict[str, Any]:
        """Receive and complete at most one message. Never raises."""
        checked_at = utc_now_iso()
        queue_name = self.config.queue_name

        try:
            self.queue_config.validate()
            self.credentials.validate()
            message = None
            async with open_session(self.credentials, queue_name, self.client_factory) as session:
                received = await session.receive(READ_MAX_MESSAGES, READ_TIMEOUT_SECONDS)
                metrics.record_messages_received(queue_name, len(received))
                if received:
                    message = normalize(received[0])
                    await session.acknowledge(received[0])
                    metrics.record_message_acknowledged(queue_name)
        except Exception as e:
            log_exception(logger, e, "Queue read failed", include_traceback=False)
            return {"status": STATUS_ERROR, "checkedAt": checked_at, "message": None}

        return {
            "status": STATUS_CONNECTED,
            "checkedAt": checked_at,
            "message": message.to_event(include_raw_body=True) if message else None,
        }

    async def on_trigger(self, event: dict[str, Any] | None = None) -> dict[str, Any] | None:
        """Handle an input event: read, then emit the envelope."""
        if self.is_drained:
            return None

        with LogContext(block=self.name, queue_name=self.config.queue_name):
            envelope = await self.read()
            try:
                await self.sink.emit(envelope)
            except Exception as e:
                log_exception(logger, e, "Failed to emit queue read result", status=envelope["status"])
            return envelope


__all__ = ["QueueReaderBlock"]
