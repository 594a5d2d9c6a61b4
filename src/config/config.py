"""Azure Toolkit configuration from YAML file.

Loads from config/config.yaml:
- app: Service Bus namespace and credentials shared by every block
- blocks: one entry per queue consumer (subscription or queue reader)

Environment variables ARE supported using ${VAR_NAME} and
${VAR_NAME:-default} syntax in YAML files.
"""

import json
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.auth.credentials import ServiceBusCredentials
from core.errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Provider ceiling for a single receive call
MAX_MESSAGES_CEILING = 2047
DEFAULT_MAX_MESSAGES = 10
DEFAULT_RECEIVE_TIMEOUT_SECONDS = 5.0
DEFAULT_SCHEDULE_INTERVAL = 30
DEFAULT_SCHEDULE_UNIT = "seconds"

SCHEDULE_UNITS = {
    "seconds": 1,
    "minutes": 60,
    "hours": 3600,
    "days": 86400,
}

BLOCK_KINDS = ("subscription", "queue_reader")
SINK_TYPES = ("log", "jsonl")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


# Default config file: config/config.yaml in src/ directory
DEFAULT_CONFIG_FILE = Path(__file__).parent.parent / "config" / "config.yaml"


def validate_queue_settings(
    queue_name: Any,
    max_messages: Any,
    receive_timeout_seconds: Any,
    context: str = "block",
) -> None:
    """Validate the settings of a queue consumer.

    Values above MAX_MESSAGES_CEILING are accepted here; they are clamped
    with a warning when a poll cycle runs.

    Raises:
        ConfigurationError: On a missing queue name, a non-positive or
            non-integer max_messages, or a non-positive receive timeout
    """
    if not isinstance(queue_name, str) or not queue_name.strip():
        raise ConfigurationError(f"{context}: queue_name is required")

    if isinstance(max_messages, bool) or not isinstance(max_messages, int) or max_messages < 1:
        raise ConfigurationError(
            f"{context}: max_messages must be a positive integer, got {max_messages!r}"
        )

    if (
        isinstance(receive_timeout_seconds, bool)
        or not isinstance(receive_timeout_seconds, (int, float))
        or receive_timeout_seconds <= 0
    ):
        raise ConfigurationError(
            f"{context}: receive_timeout_seconds must be a positive number, got {receive_timeout_seconds!r}"
        )


@dataclass
class ScheduleConfig:
    """Frequency of the scheduled poll trigger."""

    interval: int = DEFAULT_SCHEDULE_INTERVAL
    unit: str = DEFAULT_SCHEDULE_UNIT

    @property
    def seconds(self) -> float:
        return float(self.interval * SCHEDULE_UNITS[self.unit])

    def validate(self, context: str = "schedule") -> None:
        if self.unit not in SCHEDULE_UNITS:
            raise ConfigurationError(
                f"{context}: unit must be one of {list(SCHEDULE_UNITS)}, got '{self.unit}'"
            )
        if isinstance(self.interval, bool) or not isinstance(self.interval, int) or self.interval < 1:
            raise ConfigurationError(
                f"{context}: interval must be a positive integer, got {self.interval!r}"
            )


@dataclass
class SinkConfig:
    """Where emitted messages go: the log, or a JSON Lines file."""

    type: str = "log"
    path: str = ""

    def validate(self, context: str = "sink") -> None:
        if self.type not in SINK_TYPES:
            raise ConfigurationError(f"{context}: type must be one of {list(SINK_TYPES)}, got '{self.type}'")
        if self.type == "jsonl" and not self.path:
            raise ConfigurationError(f"{context}: path is required for jsonl sinks")


@dataclass
class BlockConfig:
    """One configured block.

    Configuration structure:
        blocks:
          - kind: subscription
            name: orders
            queue_name: orders
            max_messages: 10
            receive_timeout_seconds: 5
            schedule: {interval: 30, unit: seconds}
            state_path: state/orders.json
            sink: {type: jsonl, path: out/orders.jsonl}
    """

    name: str
    queue_name: str
    kind: str = "subscription"
    max_messages: int = DEFAULT_MAX_MESSAGES
    receive_timeout_seconds: float = DEFAULT_RECEIVE_TIMEOUT_SECONDS
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    state_path: str = ""
    sink: SinkConfig = field(default_factory=SinkConfig)

    def validate(self) -> None:
        context = f"blocks.{self.name or '<unnamed>'}"
        if not self.name:
            raise ConfigurationError(f"{context}: name is required")
        if self.kind not in BLOCK_KINDS:
            raise ConfigurationError(f"{context}: kind must be one of {list(BLOCK_KINDS)}, got '{self.kind}'")
        validate_queue_settings(
            self.queue_name, self.max_messages, self.receive_timeout_seconds, context
        )
        self.schedule.validate(f"{context}.schedule")
        self.sink.validate(f"{context}.sink")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlockConfig":
        schedule = data.get("schedule") or {}
        sink = data.get("sink") or {}
        if isinstance(sink, str):
            sink = {"type": sink}
        return cls(
            name=str(data.get("name") or data.get("queue_name") or ""),
            queue_name=data.get("queue_name", ""),
            kind=data.get("kind", "subscription"),
            max_messages=data.get("max_messages", DEFAULT_MAX_MESSAGES),
            receive_timeout_seconds=data.get("receive_timeout_seconds", DEFAULT_RECEIVE_TIMEOUT_SECONDS),
            schedule=ScheduleConfig(
                interval=schedule.get("interval", DEFAULT_SCHEDULE_INTERVAL),
                unit=schedule.get("unit", DEFAULT_SCHEDULE_UNIT),
            ),
            state_path=data.get("state_path", ""),
            sink=SinkConfig(type=sink.get("type", "log"), path=sink.get("path", "")),
        )


@dataclass
class AppConfig:
    """Toolkit configuration: namespace credentials plus the configured blocks."""

    credentials: ServiceBusCredentials = field(default_factory=ServiceBusCredentials)
    blocks: list[BlockConfig] = field(default_factory=list)

    def get_block(self, name: str) -> BlockConfig:
        for block in self.blocks:
            if block.name == name:
                return block
        raise ConfigurationError(
            f"Unknown block '{name}'. Configured blocks: {[b.name for b in self.blocks]}"
        )

    def validate(self) -> None:
        """Validate configuration for correctness and constraints."""
        self.credentials.validate()

        seen: set[str] = set()
        for block in self.blocks:
            block.validate()
            if block.name in seen:
                raise ConfigurationError(f"Duplicate block name: '{block.name}'")
            seen.add(block.name)


def _parse_expiry(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"app.access_token_expiry must be epoch milliseconds, got {value!r}", cause=e
        ) from e


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load toolkit configuration from config.yaml.

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigurationError: If the file is structurally invalid
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n" f"Expected file: config/config.yaml"
        )

    logger.info("Loading configuration from file: %s", config_path)
    yaml_data = _expand_env_vars(load_yaml(config_path))

    app = yaml_data.get("app") or {}
    blocks = yaml_data.get("blocks") or []
    if not isinstance(blocks, list):
        raise ConfigurationError("Invalid config file: 'blocks:' must be a list")

    config = AppConfig(
        credentials=ServiceBusCredentials(
            namespace=app.get("namespace", "") or "",
            connection_string=app.get("connection_string", "") or "",
            access_token=app.get("access_token", "") or "",
            access_token_expiry=_parse_expiry(app.get("access_token_expiry")),
        ),
        blocks=[BlockConfig.from_dict(entry) for entry in blocks],
    )

    logger.debug(
        "Configuration loaded: auth_mode=%s, blocks=%s",
        config.credentials.auth_mode,
        [b.name for b in config.blocks],
    )
    config.validate()
    return config


_app_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or load the singleton config instance."""
    global _app_config
    if _app_config is None:
        _app_config = load_config()
    return _app_config


def set_config(config: AppConfig) -> None:
    """Set the singleton config instance (useful for testing)."""
    global _app_config
    _app_config = config


def reset_config() -> None:
    """Reset the singleton config instance (forces reload on next get_config() call)."""
    global _app_config
    _app_config = None


def _cli_main() -> int:
    """CLI entry point for config validation."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Azure Toolkit Configuration Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate configuration
  python -m config.config --validate

  # Use custom config file, JSON output
  python -m config.config --config /path/to/config.yaml --validate --json
        """,
    )
    parser.add_argument("--validate", action="store_true", help="Validate configuration")
    parser.add_argument("--config", type=Path, help="Path to config.yaml (default: src/config/config.yaml)")
    parser.add_argument("--json", action="store_true", help="Output in JSON format")

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    if not args.validate:
        parser.print_help()
        return 0

    try:
        config = load_config(config_path=args.config)
    except (FileNotFoundError, ConfigurationError) as e:
        if args.json:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"✗ Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps({"validation": {"passed": True, "blocks": [b.name for b in config.blocks]}}))
    else:
        print("✓ Configuration validation passed")
        print(f"  - Authentication: {config.credentials.auth_mode}")
        for block in config.blocks:
            print(f"  - Block {block.name} ({block.kind}): queue {block.queue_name}")
    return 0


if __name__ == "__main__":
    sys.exit(_cli_main())
