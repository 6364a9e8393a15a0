"""Periodic removal of expired sessions that are never read again."""
import asyncio
import logging
import threading
from typing import Optional

from memri.services.sessions.service import SessionService

logger = logging.getLogger(__name__)


class SessionSweeper:
    """
    Run ``SessionService.sweep`` on a fixed interval.

    Sweeps never overlap. When a sweep runs past one or more ticks those
    ticks are skipped rather than queued, and the schedule stays aligned to
    the original start time.
    """

    def __init__(self, service: SessionService, interval: float):
        if interval <= 0:
            raise ValueError("Sweep interval must be positive")
        self.service = service
        self.interval = interval
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> Optional[int]:
        """Sweep now. Returns None when another sweep is still in progress."""
        if not self._lock.acquire(blocking=False):
            logger.warning("Session sweep already in progress, skipping")
            return None
        try:
            return self.service.sweep()
        finally:
            self._lock.release()

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while True:
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                logger.exception("Unexpected error during session sweep")

            next_tick += self.interval
            now = loop.time()
            if now > next_tick:
                missed = int((now - next_tick) // self.interval) + 1
                logger.warning("Session sweep overran, skipping %d tick(s)", missed)
                next_tick += missed * self.interval

            await asyncio.sleep(next_tick - now)

    def start(self) -> None:
        """Start sweeping in the running event loop (first sweep is immediate)."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Session sweeper started (every %ss)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session sweeper stopped")
