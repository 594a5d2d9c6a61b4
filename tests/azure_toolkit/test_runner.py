"""Tests for the block runner and the command-line entry point."""

import asyncio
import json
from pathlib import Path

import pytest

from azure_toolkit.__main__ import parse_args, run
from azure_toolkit.blocks import QueueReaderBlock, SubscriptionBlock
from azure_toolkit.common.health import StatusServer
from azure_toolkit.common.sinks import JsonLinesSink
from azure_toolkit.common.state_store import JsonFileStateStore
from azure_toolkit.common.types import HealthStatus
from azure_toolkit.runner import build_block, publish_status, run_block, select_blocks
from config.config import AppConfig, BlockConfig, ScheduleConfig, SinkConfig
from core.errors.exceptions import ConfigurationError


@pytest.fixture
def subscription_config(tmp_path):
    return BlockConfig(
        name="orders",
        queue_name="orders",
        schedule=ScheduleConfig(interval=1, unit="hours"),
        state_path=str(tmp_path / "state" / "orders.json"),
        sink=SinkConfig(type="jsonl", path=str(tmp_path / "out" / "orders.jsonl")),
    )


class TestBuildBlock:
    def test_subscription_with_file_store_and_jsonl_sink(self, subscription_config, credentials):
        block = build_block(subscription_config, credentials)

        assert isinstance(block, SubscriptionBlock)
        assert isinstance(block.state_store, JsonFileStateStore)
        assert isinstance(block.sink, JsonLinesSink)

    def test_queue_reader(self, credentials):
        block = build_block(BlockConfig(name="r", queue_name="q", kind="queue_reader"), credentials)
        assert isinstance(block, QueueReaderBlock)


class TestSelectBlocks:
    def test_all_and_by_name(self):
        config = AppConfig(blocks=[BlockConfig(name="a", queue_name="q"), BlockConfig(name="b", queue_name="q")])

        assert [b.name for b in select_blocks(config)] == ["a", "b"]
        assert [b.name for b in select_blocks(config, "b")] == ["b"]
        with pytest.raises(ConfigurationError):
            select_blocks(config, "c")


class TestRunBlock:
    @pytest.mark.asyncio
    async def test_once_activates_and_polls(
        self, subscription_config, credentials, client_factory, receiver, message_factory, tmp_path
    ):
        receiver.queue = [message_factory(1), message_factory(2)]
        block = build_block(subscription_config, credentials, client_factory=client_factory)
        status_server = StatusServer(port=None)

        await run_block(block, asyncio.Event(), status_server, once=True)

        assert block.status == HealthStatus.READY
        lines = (tmp_path / "out" / "orders.jsonl").read_text().splitlines()
        assert [json.loads(line)["messageId"] for line in lines] == ["msg-1", "msg-2"]

        entry = status_server.snapshot()["orders"]
        assert entry["status"] == "ready"
        assert entry["lastCheckTime"] is not None
        assert entry["lastMessageReceivedTime"] == entry["lastCheckTime"]

    @pytest.mark.asyncio
    async def test_scheduled_run_stops_on_shutdown(self, subscription_config, credentials, client_factory, receiver):
        block = build_block(subscription_config, credentials, client_factory=client_factory)
        shutdown_event = asyncio.Event()

        task = asyncio.create_task(run_block(block, shutdown_event))
        await asyncio.sleep(0.05)
        shutdown_event.set()
        await asyncio.wait_for(task, timeout=2)

        assert len(receiver.receive_calls) == 1

    @pytest.mark.asyncio
    async def test_publish_status_reports_failure(self, credentials, client_factory, receiver):
        receiver.peek_error = OSError("connection refused")
        block = build_block(BlockConfig(name="orders", queue_name="orders"), credentials, client_factory)
        status_server = StatusServer(port=None)

        await block.on_sync()
        await publish_status(block, status_server)

        entry = status_server.snapshot()["orders"]
        assert entry["status"] == "failed"
        assert "connection refused" in entry["description"]

    @pytest.mark.asyncio
    async def test_publish_status_skips_inactive_block(self, credentials):
        block = build_block(BlockConfig(name="orders", queue_name="orders"), credentials)
        status_server = StatusServer(port=None)

        await publish_status(block, status_server)

        assert status_server.snapshot() == {}


class TestCli:
    def test_parse_args_defaults(self):
        args = parse_args([])

        assert args.config is None
        assert args.block == "all"
        assert args.once is False
        assert args.log_level == "INFO"
        assert args.metrics_port is None
        assert args.status_port is None

    def test_parse_args_options(self):
        args = parse_args(
            ["--config", "c.yaml", "--block", "orders", "--once", "--json-logs", "--status-port", "8081"]
        )

        assert args.config == Path("c.yaml")
        assert args.block == "orders"
        assert args.once is True
        assert args.json_logs is True
        assert args.status_port == 8081

    @pytest.mark.asyncio
    async def test_run_with_missing_config_returns_error(self, tmp_path):
        args = parse_args(["--config", str(tmp_path / "missing.yaml")])
        assert await run(args) == 2

    @pytest.mark.asyncio
    async def test_run_with_unknown_block_returns_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("app: {namespace: contoso}\nblocks:\n  - name: orders\n    queue_name: orders\n")
        args = parse_args(["--config", str(path), "--block", "missing"])

        assert await run(args) == 2

    @pytest.mark.asyncio
    async def test_run_without_blocks_returns_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("app: {namespace: contoso}\nblocks: []\n")

        assert await run(parse_args(["--config", str(path)])) == 2


class TestCredentialsShared:
    def test_blocks_share_credentials(self, credentials):
        a = build_block(BlockConfig(name="a", queue_name="q"), credentials)
        b = build_block(BlockConfig(name="b", queue_name="q"), credentials)
        assert a.credentials is b.credentials is credentials
