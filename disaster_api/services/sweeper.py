"""Periodic background removal of expired cache entries."""

from __future__ import annotations

import asyncio
import logging

from disaster_api.services.cache import CacheManager

log = logging.getLogger(__name__)

SWEEP_INTERVAL = 60 * 60


class CacheSweeper:
    """Runs `CacheManager.sweep()` on a fixed interval as one asyncio task.

    The task is owned by whoever calls `start()` and must be cancelled with
    `stop()`. A failing cycle is logged and the next one still runs.
    """

    def __init__(self, cache: CacheManager, interval: float = SWEEP_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.cache = cache
        self.interval = interval
        self.cycles = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="cache-sweeper")
        log.info("Cache sweeper started (every %ss)", self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.info("Cache sweeper stopped")

    async def run_once(self) -> int | None:
        self.cycles += 1
        try:
            return await self.cache.sweep()
        except Exception:
            log.exception("Scheduled cache cleanup failed")
            return None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.run_once()
