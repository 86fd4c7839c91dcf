"""Periodic stats reporting loop."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

import psutil

from shared.models import MonitorConfig, TickOutcome
from reporter.core.exceptions import NotifyError, StatsError
from reporter.core.formatting import build_report_message
from reporter.core.notifier import TelegramNotifier
from reporter.core.stats_client import StatsClient

logger = logging.getLogger(__name__)


def collect_system_metrics() -> Dict[str, float]:
    """Host CPU and memory usage for the report footer."""
    return {
        "cpu_percent": psutil.cpu_percent(interval=None),
        "memory_percent": psutil.virtual_memory().percent,
    }


@dataclass
class MonitorStats:
    """Per-outcome tick counters, for monitoring the monitor."""
    ticks: int = 0
    reported: int = 0
    stats_failures: int = 0
    delivery_failures: int = 0
    errors: int = 0
    last_outcome: Optional[TickOutcome] = None

    def record(self, outcome: TickOutcome):
        self.ticks += 1
        self.last_outcome = outcome
        if outcome == TickOutcome.REPORTED:
            self.reported += 1
        elif outcome == TickOutcome.STATS_FAILED:
            self.stats_failures += 1
        elif outcome == TickOutcome.DELIVERY_FAILED:
            self.delivery_failures += 1
        else:
            self.errors += 1


class ConnectionMonitor:
    """Queries proxy stats on a fixed schedule and reports them to Telegram.

    Ticks fire at start + k * interval. A tick that runs past its slot
    skips the missed slots instead of queueing them, so ticks never overlap.
    Failures are logged and never stop the loop.
    """

    def __init__(
        self,
        config: MonitorConfig,
        stats_client: StatsClient,
        notifier: TelegramNotifier,
        server_name: Optional[str] = None,
        include_system_metrics: bool = False,
        shutdown_grace: float = 15.0,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.config = config
        self.stats_client = stats_client
        self.notifier = notifier
        self.server_name = server_name
        self.include_system_metrics = include_system_metrics
        self.shutdown_grace = shutdown_grace
        self.clock = clock
        self.stats = MonitorStats()

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        """Start the monitor loop in the background and return immediately."""
        if self.is_running:
            logger.warning("Connection monitor already running")
            return

        if self.include_system_metrics:
            # First cpu_percent() call only sets the baseline
            psutil.cpu_percent(interval=None)

        self._running = True
        self._stop_event.clear()
        self._task = asyncio.create_task(self._monitor_loop())
        logger.info(
            f"Connection monitoring started - will send updates to Telegram "
            f"every {self.config.interval:g}s"
        )

    async def stop(self):
        """Stop the loop, letting an in-flight tick finish within the grace period."""
        self._running = False
        self._stop_event.set()

        if self._task:
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=self.shutdown_grace)
            except asyncio.TimeoutError:
                logger.warning(
                    f"In-flight tick still running after {self.shutdown_grace:g}s, cancelling"
                )
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass

        await self.notifier.aclose()
        logger.info("Connection monitor stopped")

    async def wait_closed(self):
        """Wait until the loop task has finished."""
        if self._task:
            await asyncio.wait({self._task})

    async def run_once(self) -> TickOutcome:
        """Run a single tick and record its outcome."""
        outcome = await self._tick()
        self.stats.record(outcome)
        return outcome

    async def _monitor_loop(self):
        """Main monitor loop."""
        loop = asyncio.get_running_loop()
        interval = self.config.interval
        next_tick = loop.time() + interval

        while self._running:
            if await self._wait_until(next_tick):
                break

            await self.run_once()

            next_tick += interval
            now = loop.time()
            if next_tick <= now:
                skipped = int((now - next_tick) // interval) + 1
                next_tick += skipped * interval
                logger.warning(f"Tick overran its interval, skipping {skipped} tick(s)")

    async def _wait_until(self, deadline: float) -> bool:
        """Sleep until the deadline. Returns True if stop was requested."""
        delay = deadline - asyncio.get_running_loop().time()
        if delay <= 0:
            return self._stop_event.is_set()
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    async def _tick(self) -> TickOutcome:
        try:
            try:
                snapshot = await self.stats_client.query()
            except StatsError as e:
                logger.error(f"Error getting stats: {e}")
                return TickOutcome.STATS_FAILED

            metrics = collect_system_metrics() if self.include_system_metrics else None
            message = build_report_message(
                snapshot,
                timestamp=self.clock(),
                server_name=self.server_name,
                system_metrics=metrics
            )

            try:
                await self.notifier.send(
                    self.config.bot_token.get_secret_value(),
                    self.config.chat_id,
                    message
                )
            except NotifyError as e:
                logger.error(f"Failed to send message: {e}")
                return TickOutcome.DELIVERY_FAILED

            logger.info("Message sent successfully")
            return TickOutcome.REPORTED
        except Exception as e:
            logger.exception(f"Unexpected error in monitor tick: {e}")
            return TickOutcome.ERROR
