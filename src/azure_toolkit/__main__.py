"""Azure Toolkit block runner. Use --help for usage."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from prometheus_client import start_http_server

from config.config import DEFAULT_CONFIG_FILE, load_config
from core.errors.exceptions import ConfigurationError
from core.logging.setup import setup_logging
from core.logging.utilities import log_startup_banner

from azure_toolkit.common.health import StatusServer
from azure_toolkit.common.signals import setup_shutdown_signal_handlers
from azure_toolkit.runner import build_block, run_block, select_blocks

# Project root directory (where .env file is located)
# __main__.py is at src/azure_toolkit/__main__.py, so root is 3 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run Azure Service Bus toolkit blocks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run every configured block until SIGINT/SIGTERM
    python -m azure_toolkit

    # Run one block with a custom config file
    python -m azure_toolkit --config ./config.yaml --block orders

    # Run a single trigger per block and exit
    python -m azure_toolkit --once
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to config.yaml (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--block",
        default="all",
        help="Name of the block to run (default: all)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Activate each block, run one trigger, and exit",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Log directory path (default: from LOG_DIR env var or ./logs)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Write JSON logs to stdout instead of console format plus log files",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Port for the Prometheus metrics server (default: disabled)",
    )
    parser.add_argument(
        "--status-port",
        type=int,
        default=None,
        help="Port for the /health status server (default: disabled)",
    )

    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    try:
        app_config = load_config(args.config)
        block_configs = select_blocks(app_config, args.block)
    except (FileNotFoundError, ConfigurationError) as e:
        logger.error("Invalid configuration", extra={"error": str(e)})
        return 2

    if not block_configs:
        logger.error("No blocks configured")
        return 2

    if args.metrics_port is not None:
        start_http_server(args.metrics_port)
        logger.info("Metrics server started", extra={"port": args.metrics_port})

    status_server = StatusServer(port=args.status_port, enabled=args.status_port is not None)
    await status_server.start()

    shutdown_event = asyncio.Event()
    setup_shutdown_signal_handlers(shutdown_event.set)

    credentials = app_config.credentials
    blocks = [build_block(block_config, credentials) for block_config in block_configs]

    log_startup_banner(
        logger,
        "Azure Toolkit",
        blocks=", ".join(block.name for block in blocks),
        auth_mode=credentials.auth_mode,
        status_port=status_server.actual_port,
        metrics_port=args.metrics_port,
        mode="once" if args.once else "scheduled",
    )

    try:
        await asyncio.gather(
            *(run_block(block, shutdown_event, status_server, once=args.once) for block in blocks)
        )
    finally:
        await status_server.stop()
        await credentials.close()

    logger.info("Azure Toolkit shutdown complete")
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv(PROJECT_ROOT / ".env")
    args = parse_args(argv)

    log_dir = args.log_dir or os.getenv("LOG_DIR")
    setup_logging(
        name="azure_toolkit",
        log_dir=Path(log_dir) if log_dir else None,
        json_format=True,
        console_level=getattr(logging, args.log_level),
        log_to_stdout=args.json_logs,
    )

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
