"""
Unit tests for StatusServer.

Test Coverage:
    - Server initialization and configuration
    - Lifecycle management (start/stop)
    - Liveness, readiness and status endpoints
    - Block state bookkeeping (descriptions, drained timestamps)

No infrastructure required - all tests use real HTTP endpoints.
"""

import aiohttp
import pytest

from azure_toolkit.common.health import StatusServer
from azure_toolkit.common.types import HealthStatus


async def _get(server: StatusServer, path: str):
    async with (
        aiohttp.ClientSession() as session,
        session.get(f"http://localhost:{server.actual_port}{path}") as resp,
    ):
        return resp.status, await resp.json()


class TestStatusServerInitialization:
    """Test server initialization and configuration."""

    def test_initialization_with_default_config(self):
        server = StatusServer(port=8080)

        assert server.port == 8080
        assert server.is_enabled is True
        assert server.is_ready is False
        assert server.actual_port is None

    def test_initialization_with_port_none_disables_server(self):
        assert StatusServer(port=None).is_enabled is False

    def test_initialization_with_enabled_false(self):
        assert StatusServer(port=8080, enabled=False).is_enabled is False

    @pytest.mark.asyncio
    async def test_disabled_server_start_is_noop(self):
        server = StatusServer(port=None)
        await server.start()
        await server.stop()
        assert server.actual_port is None


class TestBlockBookkeeping:
    def test_update_and_snapshot(self):
        server = StatusServer(port=None)

        server.update_block(
            "orders",
            status=HealthStatus.READY,
            last_check_time="2026-01-05T14:30:00.000Z",
            last_message_received_time="2026-01-05T14:29:00.000Z",
        )

        assert server.snapshot() == {
            "orders": {
                "status": "ready",
                "description": None,
                "lastCheckTime": "2026-01-05T14:30:00.000Z",
                "lastMessageReceivedTime": "2026-01-05T14:29:00.000Z",
            }
        }

    def test_description_cleared_when_recovered(self):
        server = StatusServer(port=None)
        server.update_block("orders", status=HealthStatus.FAILED, description="Unauthorized")
        assert server.snapshot()["orders"]["description"] == "Unauthorized"

        server.update_block("orders", status=HealthStatus.READY)
        assert server.snapshot()["orders"]["description"] is None

    def test_drained_clears_timestamps(self):
        server = StatusServer(port=None)
        server.update_block("orders", status=HealthStatus.READY, last_check_time="t")

        server.update_block("orders", status=HealthStatus.DRAINED)

        entry = server.snapshot()["orders"]
        assert entry["status"] == "drained"
        assert entry["lastCheckTime"] is None

    def test_readiness_rules(self):
        server = StatusServer(port=None)
        assert server.is_ready is False

        server.update_block("a", status=HealthStatus.READY)
        server.update_block("b", status=HealthStatus.DRAINED)
        assert server.is_ready is True

        server.update_block("c", status=HealthStatus.FAILED, description="down")
        assert server.is_ready is False


class TestStatusServerEndpoints:
    @pytest.mark.asyncio
    async def test_endpoints(self):
        server = StatusServer(port=0)
        await server.start()

        try:
            assert server.actual_port is not None
            assert server.actual_port > 0

            status, body = await _get(server, "/health/live")
            assert status == 200
            assert body["status"] == "alive"

            status, body = await _get(server, "/health/ready")
            assert status == 503
            assert body["status"] == "not_ready"

            server.update_block("orders", status=HealthStatus.FAILED, description="Unauthorized")
            status, body = await _get(server, "/health/ready")
            assert status == 503
            assert body["not_ready"] == {"orders": "failed"}

            server.update_block("orders", status=HealthStatus.READY, last_check_time="t1")
            status, body = await _get(server, "/health/ready")
            assert status == 200

            status, body = await _get(server, "/health/status")
            assert status == 200
            assert body["blocks"]["orders"]["status"] == "ready"
            assert body["blocks"]["orders"]["lastCheckTime"] == "t1"
        finally:
            await server.stop()

        assert server.actual_port is None

    @pytest.mark.asyncio
    async def test_port_conflict_continues_without_server(self):
        first = StatusServer(port=0)
        await first.start()
        try:
            second = StatusServer(port=first.actual_port)
            await second.start()

            assert second.is_enabled is False
            assert second.actual_port is None
            await second.stop()
        finally:
            await first.stop()
