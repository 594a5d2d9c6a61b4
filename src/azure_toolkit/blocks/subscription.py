"""
Service Bus subscription block.

Polls a queue on a schedule and emits every received message. Health is
owned by a LifecycleStateMachine: on_sync runs the activation probe,
on_trigger runs the scheduled poll, on_drain is terminal.
"""

import logging
from typing import Any

from config.config import BlockConfig
from core.auth.credentials import ServiceBusCredentials

from azure_toolkit.blocks.base import Block, BlockKind
from azure_toolkit.blocks.lifecycle import LifecycleStateMachine
from azure_toolkit.common.sinks import EmissionSink
from azure_toolkit.common.state_store import StateStore
from azure_toolkit.common.types import HealthStatus, PollCycleResult
from azure_toolkit.servicebus.poller import PollCycleController
from azure_toolkit.servicebus.session import ClientFactory

logger = logging.getLogger(__name__)


class SubscriptionBlock(Block):
    """Scheduled queue consumer with at-least-once delivery."""

    kind = BlockKind.SUBSCRIPTION

    def __init__(
        self,
        config: BlockConfig,
        credentials: ServiceBusCredentials,
        state_store: StateStore | None = None,
        sink: EmissionSink | None = None,
        client_factory: ClientFactory | None = None,
    ):
        super().__init__(config, credentials, state_store, sink, client_factory)
        self.controller = PollCycleController(
            state_store=self.state_store,
            sink=self.sink,
            client_factory=client_factory,
        )
        self.lifecycle = LifecycleStateMachine(
            name=config.name,
            config=self.queue_config,
            credentials=credentials,
            controller=self.controller,
            state_store=self.state_store,
            client_factory=client_factory,
        )
        self.lifecycle.add_listener(self._notify)

    @property
    def status(self) -> HealthStatus | None:
        return self.lifecycle.status

    @property
    def description(self) -> str | None:
        return self.lifecycle.description

    async def on_sync(self) -> HealthStatus | None:
        return await self.lifecycle.activate()

    async def on_drain(self) -> HealthStatus | None:
        return await self.lifecycle.drain()

    async def on_trigger(self, event: dict[str, Any] | None = None) -> PollCycleResult | None:
        return await self.lifecycle.on_schedule()


__all__ = ["SubscriptionBlock"]
