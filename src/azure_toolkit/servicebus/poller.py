"""
Poll cycle controller.

One cycle: open a session, receive up to ``max_messages`` within
``receive_timeout_seconds``, then for each message in receive order
normalize it, acknowledge it, and hand it to the emission sink.

Delivery is at-least-once:
    - a message is completed before it is emitted, so a failing sink loses
      that emission (it is logged) but never stalls the batch
    - an acknowledgment failure aborts the rest of the batch; messages
      already emitted stand
    - a receive failure reports an error with zero messages

Provider exceptions never escape run_cycle(); callers branch on
PollCycleResult.outcome. The consumer timestamps are written before the
result is returned, on every outcome.
"""

import logging
import time
from dataclasses import replace

from config.config import MAX_MESSAGES_CEILING
from core.auth.credentials import ServiceBusCredentials
from core.errors.exceptions import AcknowledgmentError, describe_exception
from core.logging.context_managers import LogContext
from core.logging.setup import generate_cycle_id
from core.logging.utilities import log_exception, log_with_context

from azure_toolkit.common import metrics
from azure_toolkit.common.sinks import EmissionSink
from azure_toolkit.common.state_store import StateStore
from azure_toolkit.common.types import (
    LAST_CHECK_TIME_KEY,
    LAST_MESSAGE_RECEIVED_TIME_KEY,
    CycleOutcome,
    NormalizedMessage,
    PollCycleResult,
    QueueConfig,
    utc_now_iso,
)
from azure_toolkit.servicebus.normalizer import normalize
from azure_toolkit.servicebus.session import ClientFactory, open_session

logger = logging.getLogger(__name__)


def clamp_max_messages(config: QueueConfig) -> tuple[QueueConfig, str | None]:
    """Cap max_messages at the provider ceiling, returning the warning issued, if any."""
    if config.max_messages <= MAX_MESSAGES_CEILING:
        return config, None
    warning = (
        f"Max messages per poll ({config.max_messages}) exceeds the limit "
        f"and will be truncated to {MAX_MESSAGES_CEILING}"
    )
    return replace(config, max_messages=MAX_MESSAGES_CEILING), warning


class PollCycleController:
    """
    Runs poll cycles for one block.

    Args:
        state_store: Block state store receiving the consumer timestamps
        sink: Destination for normalized messages
        client_factory: Builds the provider client (tests pass a fake)
        include_raw_body: Emit ``rawBody`` alongside the parsed body

    Attributes:
        last_warnings: Warnings issued while preparing the most recent cycle
    """

    def __init__(
        self,
        state_store: StateStore,
        sink: EmissionSink,
        client_factory: ClientFactory | None = None,
        include_raw_body: bool = False,
    ):
        self.state_store = state_store
        self.sink = sink
        self.client_factory = client_factory
        self.include_raw_body = include_raw_body
        self.last_warnings: list[str] = []

    def prepare(self, config: QueueConfig) -> QueueConfig:
        """
        Validate and clamp a queue configuration.

        Raises:
            ConfigurationError: On a missing queue name or non-positive settings
        """
        self.last_warnings = []
        config.validate()
        config, warning = clamp_max_messages(config)
        if warning:
            self.last_warnings.append(warning)
            logger.warning(
                warning,
                extra={"queue_name": config.queue_name, "max_messages": MAX_MESSAGES_CEILING},
            )
        return config

    async def _emit(self, message: NormalizedMessage, queue_name: str) -> None:
        try:
            await self.sink.emit(message.to_event(include_raw_body=self.include_raw_body))
        except Exception as e:
            metrics.record_message_emitted(queue_name, success=False)
            log_exception(
                logger,
                e,
                "Failed to emit acknowledged message",
                message_id=message.message_id,
                sequence_number=message.sequence_number,
            )
            return
        metrics.record_message_emitted(queue_name)

    async def _record_state(self, received: int, checked_at: str) -> None:
        try:
            await self.state_store.set(LAST_CHECK_TIME_KEY, checked_at)
            if received > 0:
                await self.state_store.set(LAST_MESSAGE_RECEIVED_TIME_KEY, checked_at)
        except Exception as e:
            log_exception(logger, e, "Failed to record consumer state", count=received)

    async def run_cycle(
        self,
        config: QueueConfig,
        credentials: ServiceBusCredentials,
    ) -> PollCycleResult:
        """
        Run one poll cycle.

        Raises:
            ConfigurationError: Before any I/O, if the queue settings or the
                credentials are invalid
        """
        config = self.prepare(config)
        credentials.validate()

        with LogContext(cycle_id=generate_cycle_id(), queue_name=config.queue_name):
            start = time.perf_counter()
            received = 0
            emitted: list[NormalizedMessage] = []
            error: str | None = None

            try:
                async with open_session(
                    credentials, config.queue_name, self.client_factory
                ) as session:
                    raw_messages = await session.receive(
                        config.max_messages, config.receive_timeout_seconds
                    )
                    received = len(raw_messages)
                    metrics.record_messages_received(config.queue_name, received)

                    for raw in raw_messages:
                        message = normalize(raw)
                        await session.acknowledge(raw)
                        metrics.record_message_acknowledged(config.queue_name)
                        await self._emit(message, config.queue_name)
                        emitted.append(message)

            except AcknowledgmentError as e:
                error = describe_exception(e)
                metrics.record_acknowledgment_failure(config.queue_name)
                log_exception(
                    logger,
                    e,
                    "Acknowledgment failed, aborting remaining batch",
                    include_traceback=False,
                    message_id=e.message_id,
                    count=received,
                    messages_emitted=len(emitted),
                )
            except Exception as e:
                error = describe_exception(e)
                log_exception(
                    logger,
                    e,
                    "Poll cycle failed",
                    include_traceback=False,
                    count=received,
                    messages_emitted=len(emitted),
                )

            checked_at = utc_now_iso()
            await self._record_state(received, checked_at)

            outcome = CycleOutcome.OK if error is None else CycleOutcome.ERROR
            duration = time.perf_counter() - start
            metrics.record_poll_cycle(config.queue_name, outcome.value, duration)

            log_with_context(
                logger,
                logging.INFO if outcome == CycleOutcome.OK else logging.WARNING,
                "Poll cycle complete",
                outcome=outcome.value,
                count=received,
                messages_emitted=len(emitted),
                duration_ms=round(duration * 1000, 2),
                error=error,
            )

            return PollCycleResult(
                outcome=outcome,
                count=received,
                messages=emitted,
                error=error,
                checked_at=checked_at,
            )


__all__ = ["PollCycleController", "clamp_max_messages"]
