"""
Toolkit blocks and the block registry.

Maps each BlockKind to the class implementing it:

    subscription  - scheduled poll with lifecycle health
    queue_reader  - one-shot read per input event
"""

from typing import Any

from config.config import BlockConfig
from core.auth.credentials import ServiceBusCredentials
from core.errors.exceptions import ConfigurationError

from azure_toolkit.blocks.base import Block, BlockKind
from azure_toolkit.blocks.queue_reader import QueueReaderBlock
from azure_toolkit.blocks.subscription import SubscriptionBlock

BLOCK_REGISTRY: dict[BlockKind, type[Block]] = {
    BlockKind.SUBSCRIPTION: SubscriptionBlock,
    BlockKind.QUEUE_READER: QueueReaderBlock,
}


def create_block(
    kind: BlockKind | str,
    config: BlockConfig,
    credentials: ServiceBusCredentials,
    **kwargs: Any,
) -> Block:
    """
    Build a block by kind.

    Raises:
        ConfigurationError: If the kind is unknown
    """
    try:
        block_kind = BlockKind(kind)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown block kind: '{kind}'. Expected one of {[k.value for k in BlockKind]}",
            cause=e,
        ) from e

    block_class = BLOCK_REGISTRY[block_kind]
    return block_class(config, credentials, **kwargs)


__all__ = [
    "BLOCK_REGISTRY",
    "Block",
    "BlockKind",
    "QueueReaderBlock",
    "SubscriptionBlock",
    "create_block",
]
