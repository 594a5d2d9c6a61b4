"""Configuration loading for the Azure Toolkit.

Configuration is loaded from a single YAML file (default
``src/config/config.yaml``):

    app:
      namespace: ${SERVICEBUS_NAMESPACE}
      access_token: ${SERVICEBUS_ACCESS_TOKEN:-}
      access_token_expiry: ${SERVICEBUS_ACCESS_TOKEN_EXPIRY:-}
      connection_string: ${SERVICEBUS_CONNECTION_STRING:-}
    blocks:
      - kind: subscription
        name: orders
        queue_name: orders

Usage:
    >>> from config import get_config
    >>> config = get_config()
    >>> block = config.get_block("orders")
"""

from config.config import (
    MAX_MESSAGES_CEILING,
    SCHEDULE_UNITS,
    AppConfig,
    BlockConfig,
    ScheduleConfig,
    SinkConfig,
    get_config,
    load_config,
    reset_config,
    set_config,
    validate_queue_settings,
)

__all__ = [
    # Config functions
    "load_config",
    "get_config",
    "set_config",
    "reset_config",
    "validate_queue_settings",
    # Config classes
    "AppConfig",
    "BlockConfig",
    "ScheduleConfig",
    "SinkConfig",
    # Constants
    "MAX_MESSAGES_CEILING",
    "SCHEDULE_UNITS",
]
