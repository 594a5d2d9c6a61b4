"""
Block interface.

A block is one configured unit the host drives through three hooks:

    on_sync    - (re)activation; validates connectivity
    on_drain   - removal; terminal
    on_trigger - a scheduled tick or an input event
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import StrEnum
from typing import Any, ClassVar

from config.config import BlockConfig
from core.auth.credentials import ServiceBusCredentials

from azure_toolkit.common.scheduler import FrequencySchedule
from azure_toolkit.common.sinks import EmissionSink, LoggingSink
from azure_toolkit.common.state_store import InMemoryStateStore, StateStore
from azure_toolkit.common.types import HealthStatus, QueueConfig
from azure_toolkit.servicebus.session import ClientFactory

logger = logging.getLogger(__name__)

BlockStatusListener = Callable[[str, HealthStatus, str | None], None]


class BlockKind(StrEnum):
    SUBSCRIPTION = "subscription"
    QUEUE_READER = "queue_reader"


class Block(ABC):
    """
    Base class for toolkit blocks.

    Args:
        config: Block settings
        credentials: Namespace credentials shared by the app
        state_store: Per-block durable state (default: in-memory)
        sink: Destination of emitted events (default: log)
        client_factory: Builds the provider client (tests pass a fake)
    """

    kind: ClassVar[BlockKind]
    config_class: ClassVar[type[BlockConfig]] = BlockConfig

    def __init__(
        self,
        config: BlockConfig,
        credentials: ServiceBusCredentials,
        state_store: StateStore | None = None,
        sink: EmissionSink | None = None,
        client_factory: ClientFactory | None = None,
    ):
        self.config = config
        self.credentials = credentials
        self.state_store = state_store or InMemoryStateStore()
        self.sink = sink or LoggingSink(config.name)
        self.client_factory = client_factory
        self._status: HealthStatus | None = None
        self._description: str | None = None
        self._listeners: list[BlockStatusListener] = []

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def status(self) -> HealthStatus | None:
        return self._status

    @property
    def description(self) -> str | None:
        return self._description

    @property
    def queue_config(self) -> QueueConfig:
        return QueueConfig(
            queue_name=self.config.queue_name,
            max_messages=self.config.max_messages,
            receive_timeout_seconds=self.config.receive_timeout_seconds,
        )

    @property
    def schedule(self) -> FrequencySchedule:
        return FrequencySchedule(
            interval=self.config.schedule.interval,
            unit=self.config.schedule.unit,
        )

    @property
    def is_drained(self) -> bool:
        return self.status == HealthStatus.DRAINED

    def add_status_listener(self, listener: BlockStatusListener) -> None:
        """Register a callable invoked with (block name, status, description)."""
        self._listeners.append(listener)

    def _notify(self, status: HealthStatus, description: str | None = None) -> None:
        self._status = status
        self._description = description
        for listener in self._listeners:
            listener(self.name, status, description)

    async def on_sync(self) -> HealthStatus | None:
        self._notify(HealthStatus.READY)
        return self.status

    async def on_drain(self) -> HealthStatus | None:
        self._notify(HealthStatus.DRAINED)
        return self.status

    @abstractmethod
    async def on_trigger(self, event: dict[str, Any] | None = None) -> Any:
        """Handle a scheduled tick or an input event."""


__all__ = ["Block", "BlockKind", "BlockStatusListener"]
