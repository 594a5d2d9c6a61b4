"""
Health and status endpoints for toolkit blocks.

Provides Kubernetes-compatible probes plus a status view of every block:
- /health/live - Liveness probe (is the process running?)
- /health/ready - Readiness probe (are all blocks ready?)
- /health/status - Per-block health, failure description and consumer timestamps

Usage:
    from azure_toolkit.common.health import StatusServer

    status_server = StatusServer(port=8080)
    await status_server.start()

    status_server.update_block("orders", status=HealthStatus.READY)

    await status_server.stop()
"""

import asyncio
import logging
import threading
from datetime import UTC, datetime
from typing import Any

from aiohttp import web

from azure_toolkit.common.types import HealthStatus

logger = logging.getLogger(__name__)


class StatusServer:
    """
    HTTP server exposing block health.

    Runs aiohttp on a dedicated thread with its own event loop so a busy
    poll cycle never delays a probe response.

    Readiness Check:
        Returns 200 OK only if at least one block is registered and every
        block that is not drained is ``ready``. Returns 503 otherwise.

    Example:
        >>> server = StatusServer(port=0)
        >>> await server.start()
        >>> server.update_block("orders", status=HealthStatus.FAILED, description="Unauthorized")
        >>> await server.stop()
    """

    def __init__(self, port: int | None = 8080, enabled: bool = True):
        """
        Initialize status server.

        Args:
            port: HTTP port to listen on. Use 0 for dynamic port assignment,
                  or None to disable the server (default: 8080)
            enabled: Whether to enable the server. If False, start() and
                     stop() become no-ops.
        """
        self.port = port
        self._enabled = enabled and port is not None
        self._started_at = datetime.now(UTC)
        self._actual_port: int | None = None
        self._blocks: dict[str, dict[str, Any]] = {}

        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

        # Thread management for isolated event loop
        self._thread: threading.Thread | None = None
        self._server_started = threading.Event()
        self._shutdown_event = threading.Event()
        self._state_lock = threading.Lock()

    def update_block(
        self,
        name: str,
        status: HealthStatus | None = None,
        description: str | None = None,
        last_check_time: str | None = None,
        last_message_received_time: str | None = None,
    ) -> None:
        """
        Record the latest known state of a block.

        Only non-None arguments are updated, except ``description`` which is
        cleared whenever a status other than ``failed`` is reported.
        """
        with self._state_lock:
            entry = self._blocks.setdefault(
                name,
                {
                    "status": None,
                    "description": None,
                    "lastCheckTime": None,
                    "lastMessageReceivedTime": None,
                },
            )
            old_status = entry["status"]
            if status is not None:
                entry["status"] = status.value
                if status != HealthStatus.FAILED:
                    entry["description"] = None
            if description is not None:
                entry["description"] = description
            if last_check_time is not None:
                entry["lastCheckTime"] = last_check_time
            if last_message_received_time is not None:
                entry["lastMessageReceivedTime"] = last_message_received_time
            if status == HealthStatus.DRAINED:
                entry["lastCheckTime"] = None
                entry["lastMessageReceivedTime"] = None

        if status is not None and old_status != status.value:
            logger.info(
                f"Block status changed: {old_status} -> {status.value}",
                extra={"block": name, "status": status.value, "previous_status": old_status},
            )

    def snapshot(self) -> dict[str, dict[str, Any]]:
        with self._state_lock:
            return {name: dict(entry) for name, entry in self._blocks.items()}

    @property
    def is_ready(self) -> bool:
        blocks = self.snapshot()
        active = [b for b in blocks.values() if b["status"] != HealthStatus.DRAINED.value]
        return bool(active) and all(b["status"] == HealthStatus.READY.value for b in active)

    async def handle_liveness(self, request: web.Request) -> web.Response:
        """Handle GET /health/live: 200 while the process is running."""
        uptime_seconds = (datetime.now(UTC) - self._started_at).total_seconds()
        return web.json_response(
            {
                "status": "alive",
                "uptime_seconds": int(uptime_seconds),
                "timestamp": datetime.now(UTC).isoformat(),
            },
            status=200,
        )

    async def handle_readiness(self, request: web.Request) -> web.Response:
        """Handle GET /health/ready: 200 if every active block is ready, 503 otherwise."""
        blocks = self.snapshot()
        ready = self.is_ready
        not_ready = {
            name: entry["status"]
            for name, entry in blocks.items()
            if entry["status"] not in (HealthStatus.READY.value, HealthStatus.DRAINED.value)
        }
        return web.json_response(
            {
                "status": "ready" if ready else "not_ready",
                "not_ready": not_ready,
                "timestamp": datetime.now(UTC).isoformat(),
            },
            status=200 if ready else 503,
        )

    async def handle_status(self, request: web.Request) -> web.Response:
        """Handle GET /health/status: health and consumer timestamps of every block."""
        return web.json_response(
            {
                "blocks": self.snapshot(),
                "timestamp": datetime.now(UTC).isoformat(),
            },
            status=200,
        )

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health/live", self.handle_liveness)
        app.router.add_get("/health/ready", self.handle_readiness)
        app.router.add_get("/health/status", self.handle_status)
        return app

    def _run_server_thread(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._serve())
        except Exception as e:
            logger.error(f"Status server thread error: {e}", exc_info=True)
        finally:
            # Unblock start() if the server never came up
            self._server_started.set()
            loop.close()

    async def _serve(self) -> None:
        try:
            self._runner = web.AppRunner(self.create_app())
            await self._runner.setup()
            self._site = web.TCPSite(self._runner, "0.0.0.0", self.port, reuse_address=True)
            await self._site.start()

            # Capture actual port (important when using port=0)
            if self._site._server and self._site._server.sockets:
                self._actual_port = self._site._server.sockets[0].getsockname()[1]
            else:
                self._actual_port = self.port

            logger.info(
                "Status server started",
                extra={"port": self._actual_port, "path": "/health/status"},
            )
            self._server_started.set()

            while not self._shutdown_event.is_set():
                await asyncio.sleep(0.2)
        finally:
            if self._runner:
                await self._runner.cleanup()
                self._runner = None

    async def start(self) -> None:
        """
        Start the status HTTP server in a dedicated thread.

        A port that cannot be bound is logged and the toolkit continues
        without the status surface.
        """
        if not self._enabled:
            logger.debug("Status server is disabled, skipping start")
            return

        if self._thread is not None and self._thread.is_alive():
            return

        self._thread = threading.Thread(
            target=self._run_server_thread,
            name="status-server",
            daemon=True,
        )
        self._thread.start()

        started = await asyncio.to_thread(self._server_started.wait, 5.0)
        if not started or self._actual_port is None:
            logger.warning("Continuing without status server", extra={"port": self.port})
            self._enabled = False

    async def stop(self) -> None:
        if not self._enabled or not self._thread:
            return

        self._shutdown_event.set()
        await asyncio.to_thread(self._thread.join, 5.0)

        if self._thread.is_alive():
            logger.warning("Status server thread did not stop cleanly")
        else:
            logger.info("Status server stopped")

        self._thread = None
        self._actual_port = None
        self._server_started.clear()
        self._shutdown_event.clear()

    @property
    def actual_port(self) -> int | None:
        return self._actual_port

    @property
    def is_enabled(self) -> bool:
        return self._enabled


__all__ = ["StatusServer"]
