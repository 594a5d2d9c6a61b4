"""
Block lifecycle state machine.

Converges a block's health to the verdict of the connectivity probe:

    (inactive) --activate, probe ok-->     ready
    (inactive) --activate, probe fails-->  failed
    ready      --probe fails-->            failed
    failed     --probe succeeds-->         ready
    ready|failed --drain-->                drained (terminal)

A poll cycle never sets health itself. When a cycle reports an error, or
when the scheduled trigger finds the block failed, the machine re-probes
and applies the table above. Once drained, probe results are ignored.

Configuration errors mark the block failed and are not re-probed by the
scheduled trigger; an explicit activate() (a new sync) re-validates.
"""

import asyncio
import logging
from collections.abc import Callable

from core.auth.credentials import ServiceBusCredentials
from core.errors.exceptions import ConfigurationError
from core.logging.context_managers import LogContext

from azure_toolkit.common import metrics
from azure_toolkit.common.state_store import StateStore
from azure_toolkit.common.types import (
    CONSUMER_STATE_KEYS,
    CycleOutcome,
    HealthStatus,
    PollCycleResult,
    ProbeResult,
    QueueConfig,
)
from azure_toolkit.servicebus.health_check import probe
from azure_toolkit.servicebus.poller import PollCycleController
from azure_toolkit.servicebus.session import ClientFactory

logger = logging.getLogger(__name__)

StatusListener = Callable[[HealthStatus, str | None], None]


class LifecycleStateMachine:
    """
    Health state of one subscription block.

    All probes and poll cycles run under a single asyncio.Lock, so they
    never overlap for the same block.

    Attributes:
        status: Current health, None until the first activation
        description: Probe diagnostic while failed
        configuration_error: True when the failure came from invalid settings
    """

    def __init__(
        self,
        name: str,
        config: QueueConfig,
        credentials: ServiceBusCredentials,
        controller: PollCycleController,
        state_store: StateStore,
        client_factory: ClientFactory | None = None,
    ):
        self.name = name
        self.config = config
        self.credentials = credentials
        self.controller = controller
        self.state_store = state_store
        self.client_factory = client_factory

        self.status: HealthStatus | None = None
        self.description: str | None = None
        self.configuration_error = False

        self._lock = asyncio.Lock()
        self._listeners: list[StatusListener] = []

    def add_listener(self, listener: StatusListener) -> None:
        """Register a callable invoked with (status, description) on every transition."""
        self._listeners.append(listener)

    @property
    def is_drained(self) -> bool:
        return self.status == HealthStatus.DRAINED

    def _set_status(self, status: HealthStatus, description: str | None = None) -> None:
        previous = self.status
        self.status = status
        self.description = description if status == HealthStatus.FAILED else None

        if previous != status:
            log_level = logging.WARNING if status == HealthStatus.FAILED else logging.INFO
            logger.log(
                log_level,
                f"Block status changed: {previous.value if previous else None} -> {status.value}",
                extra={
                    "status": status.value,
                    "previous_status": previous.value if previous else None,
                    "description": self.description,
                },
            )
        metrics.update_block_health(self.name, status)
        for listener in self._listeners:
            listener(status, self.description)

    def apply_probe_result(self, result: ProbeResult) -> HealthStatus | None:
        """Apply a probe verdict. Ignored once the block is drained."""
        if self.is_drained:
            logger.debug("Ignoring probe result for drained block")
            return self.status

        self.configuration_error = False
        if result.ok:
            self._set_status(HealthStatus.READY)
        else:
            self._set_status(HealthStatus.FAILED, result.error or "Connection failed")
        return self.status

    def _fail_configuration(self, error: ConfigurationError) -> None:
        if self.is_drained:
            return
        self._set_status(HealthStatus.FAILED, error.message)
        self.configuration_error = True

    async def _probe(self) -> HealthStatus | None:
        if self.is_drained:
            return self.status
        try:
            self.config.validate()
            self.credentials.validate()
        except ConfigurationError as e:
            self._fail_configuration(e)
            return self.status

        result = await probe(self.config, self.credentials, self.client_factory)
        return self.apply_probe_result(result)

    async def activate(self) -> HealthStatus | None:
        """Run the activation probe (the block's sync) and apply its verdict."""
        with LogContext(block=self.name, queue_name=self.config.queue_name):
            async with self._lock:
                # Surfaces the clamping warning at activation time
                try:
                    self.controller.prepare(self.config)
                except ConfigurationError as e:
                    self._fail_configuration(e)
                    return self.status
                return await self._probe()

    async def on_schedule(self) -> PollCycleResult | None:
        """
        Handle one scheduled trigger.

        Returns:
            The poll cycle result, or None when no cycle ran (failed,
            drained, or not yet activated)
        """
        with LogContext(block=self.name, queue_name=self.config.queue_name):
            async with self._lock:
                if self.status == HealthStatus.FAILED:
                    if not self.configuration_error:
                        await self._probe()
                    return None

                if self.status != HealthStatus.READY:
                    return None

                try:
                    result = await self.controller.run_cycle(self.config, self.credentials)
                except ConfigurationError as e:
                    self._fail_configuration(e)
                    return None

                if result.outcome == CycleOutcome.ERROR:
                    await self._probe()
                return result

    async def drain(self) -> HealthStatus:
        """Move to the terminal drained state and clear the consumer timestamps."""
        with LogContext(block=self.name, queue_name=self.config.queue_name):
            self._set_status(HealthStatus.DRAINED)
            # Wait for an in-flight cycle so its timestamps are cleared too
            async with self._lock:
                await self.state_store.delete_many(CONSUMER_STATE_KEYS)
            logger.info("Block drained, consumer state cleared")
            return HealthStatus.DRAINED


__all__ = ["LifecycleStateMachine", "StatusListener"]
