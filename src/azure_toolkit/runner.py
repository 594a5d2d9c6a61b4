"""Block runners: build blocks from configuration and drive them until shutdown."""

import asyncio
import contextlib
import logging

from config.config import AppConfig, BlockConfig
from core.auth.credentials import ServiceBusCredentials
from core.logging.context import set_log_context

from azure_toolkit.blocks import Block, create_block
from azure_toolkit.common.health import StatusServer
from azure_toolkit.common.scheduler import PollScheduler
from azure_toolkit.common.sinks import create_sink
from azure_toolkit.common.state_store import create_state_store
from azure_toolkit.common.types import (
    LAST_CHECK_TIME_KEY,
    LAST_MESSAGE_RECEIVED_TIME_KEY,
    HealthStatus,
)
from azure_toolkit.servicebus.session import ClientFactory

logger = logging.getLogger(__name__)


def build_block(
    block_config: BlockConfig,
    credentials: ServiceBusCredentials,
    client_factory: ClientFactory | None = None,
) -> Block:
    """Instantiate a configured block with its state store and sink."""
    return create_block(
        block_config.kind,
        block_config,
        credentials,
        state_store=create_state_store(block_config.state_path),
        sink=create_sink(block_config.sink.type, block_config.sink.path, name=block_config.name),
        client_factory=client_factory,
    )


def select_blocks(app_config: AppConfig, block_name: str = "all") -> list[BlockConfig]:
    if block_name == "all":
        return list(app_config.blocks)
    return [app_config.get_block(block_name)]


async def publish_status(block: Block, status_server: StatusServer | None) -> None:
    """Push a block's health and consumer timestamps to the status server."""
    if status_server is None or block.status is None:
        return
    status_server.update_block(
        block.name,
        status=block.status,
        description=block.description,
        last_check_time=await block.state_store.get(LAST_CHECK_TIME_KEY),
        last_message_received_time=await block.state_store.get(LAST_MESSAGE_RECEIVED_TIME_KEY),
    )


async def run_block(
    block: Block,
    shutdown_event: asyncio.Event,
    status_server: StatusServer | None = None,
    once: bool = False,
) -> None:
    """
    Activate a block, then run its trigger on schedule until shutdown.

    With ``once`` a single trigger runs after activation and the block
    returns without draining.
    """
    set_log_context(block=block.name)
    logger.info("Starting %s block %s", block.kind.value, block.name)

    await block.on_sync()
    await publish_status(block, status_server)

    async def trigger() -> None:
        try:
            await block.on_trigger()
        finally:
            await publish_status(block, status_server)

    scheduler = PollScheduler(
        trigger,
        block.schedule,
        name=block.name,
        should_stop=lambda: block.is_drained,
    )

    if once:
        await scheduler.run_once()
        return

    async def shutdown_watcher() -> None:
        await shutdown_event.wait()
        logger.info("Shutdown signal received, stopping block %s", block.name)
        scheduler.stop()

    watcher_task = asyncio.create_task(shutdown_watcher())
    try:
        await scheduler.run()
    finally:
        watcher_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher_task

    if block.status == HealthStatus.DRAINED:
        await publish_status(block, status_server)


__all__ = ["build_block", "publish_status", "run_block", "select_blocks"]
