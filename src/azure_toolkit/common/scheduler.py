"""
Frequency-based scheduler for block triggers.

Each block gets its own PollScheduler. A trigger is awaited to completion
before the next one is scheduled, and an asyncio.Lock makes the trigger
single-flight even when run_once() is called while the loop is running.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from config.config import DEFAULT_SCHEDULE_INTERVAL, DEFAULT_SCHEDULE_UNIT, SCHEDULE_UNITS
from core.errors.exceptions import ConfigurationError
from core.logging.utilities import log_exception

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrequencySchedule:
    """Fixed-interval schedule, e.g. every 30 seconds."""

    interval: int = DEFAULT_SCHEDULE_INTERVAL
    unit: str = DEFAULT_SCHEDULE_UNIT

    def __post_init__(self):
        if self.unit not in SCHEDULE_UNITS:
            raise ConfigurationError(
                f"Schedule unit must be one of {list(SCHEDULE_UNITS)}, got '{self.unit}'"
            )
        if self.interval <= 0:
            raise ConfigurationError(f"Schedule interval must be positive, got {self.interval}")

    @property
    def seconds(self) -> float:
        return float(self.interval * SCHEDULE_UNITS[self.unit])


class PollScheduler:
    """
    Runs a trigger at a fixed interval until stopped.

    The first trigger fires immediately. Exceptions raised by the trigger
    are logged and do not stop the loop. When ``should_stop`` returns True
    after a trigger (for example once a block is drained) the loop exits.

    Example:
        >>> scheduler = PollScheduler(block.on_trigger, FrequencySchedule(30, "seconds"), name="orders")
        >>> task = asyncio.create_task(scheduler.run())
        >>> ...
        >>> scheduler.stop()
        >>> await task
    """

    def __init__(
        self,
        trigger: Callable[[], Awaitable[object]],
        schedule: FrequencySchedule | None = None,
        name: str = "block",
        should_stop: Callable[[], bool] | None = None,
    ):
        self._trigger = trigger
        self.schedule = schedule or FrequencySchedule()
        self.name = name
        self._should_stop = should_stop or (lambda: False)
        self._lock = asyncio.Lock()
        self._shutdown_event = asyncio.Event()
        self._runs = 0

    @property
    def runs(self) -> int:
        return self._runs

    @property
    def is_stopped(self) -> bool:
        return self._shutdown_event.is_set()

    async def run_once(self) -> None:
        """Run a single trigger, waiting for any trigger already in flight."""
        async with self._lock:
            self._runs += 1
            try:
                await self._trigger()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log_exception(logger, e, "Scheduled trigger failed", block=self.name)

    async def run(self) -> None:
        """Main scheduling loop."""
        logger.info(
            "Scheduler started",
            extra={"block": self.name, "interval_seconds": self.schedule.seconds},
        )

        while not self._shutdown_event.is_set():
            await self.run_once()
            if self._should_stop():
                logger.info("Scheduler finished", extra={"block": self.name})
                break
            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=self.schedule.seconds,
                )
            except TimeoutError:
                pass

    def stop(self) -> None:
        self._shutdown_event.set()


__all__ = ["FrequencySchedule", "PollScheduler"]
