"""Interval scheduler for periodic jobs.

The hosting process creates a ``Ticker`` and runs ``run_forever`` as a
background task; cancelling that task is the only way to stop it. A
failing iteration is logged and the loop carries on.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

log = structlog.get_logger()


class Ticker:
    def __init__(
        self,
        name: str,
        interval_s: float,
        job: Callable[[], Awaitable[Any]],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.name = name
        self.interval_s = interval_s
        self._job = job
        self._sleep = sleep
        self.iterations = 0
        self.failures = 0

    async def tick(self) -> bool:
        """Run the job once; returns False if it raised."""
        self.iterations += 1
        try:
            await self._job()
        except Exception:
            self.failures += 1
            log.error("ticker_iteration_failed", ticker=self.name,
                      iteration=self.iterations, exc_info=True)
            return False
        return True

    async def run_forever(self) -> None:
        log.info("ticker_started", ticker=self.name, interval_s=self.interval_s)
        while True:
            await self._sleep(self.interval_s)
            await self.tick()
