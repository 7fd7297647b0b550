"""Base class for the self-throttled check loops.

Each loop does its work, then sleeps for the interval. A slow cycle
stretches the period instead of overlapping the next one, so at most one
record per task is ever in flight.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from pydantic import BaseModel

from monitoring_agent.bus.connector import Publisher
from monitoring_agent.errors import PublishError
from monitoring_agent.stats import TaskCounters

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs ``run_cycle`` forever, sleeping ``interval`` seconds after each.

    Lifecycle:
        task = SomeTask(...)
        await task.start()
        ...
        await task.stop()
    """

    name = "periodic"

    def __init__(
        self,
        publisher: Publisher,
        subject: str,
        interval: float,
        counters: TaskCounters | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"{self.name} interval must be positive, got {interval}")
        self.publisher = publisher
        self.subject = subject
        self.interval = interval
        self.counters = counters if counters is not None else TaskCounters()
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop(), name=f"monitoring-{self.name}")
        logger.info(
            "%s task started (subject=%s, interval=%.1fs)",
            self.name, self.subject, self.interval,
        )

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("%s task stopped", self.name)

    async def run_cycle(self) -> None:
        raise NotImplementedError

    # -- internals -------------------------------------------------------------

    async def _loop(self) -> None:
        while self._running:
            self.counters.cycles += 1
            self.counters.last_cycle = datetime.now(timezone.utc).isoformat()
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.counters.last_error = f"{type(e).__name__}: {e}"
                logger.exception("%s cycle failed", self.name)

            await asyncio.sleep(self.interval)

    async def publish(self, record: BaseModel) -> bool:
        """Single publish attempt. Failures are logged; the next cycle retries."""
        try:
            await self.publisher.publish(self.subject, record)
        except PublishError as e:
            self.counters.publish_failures += 1
            self.counters.last_error = str(e)
            logger.error("%s: %s", self.name, e)
            return False
        self.counters.published += 1
        return True
