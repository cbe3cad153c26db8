"""
Cleanup reaper for finished jobs.

The reaper runs periodically to reclaim COMPLETED and FAILED jobs whose
retention window has passed, so a long-running process does not hold every
result it ever produced.
"""

import asyncio
import logging

from sitescan.config import get_settings
from sitescan.queue.job_queue import JobQueue

logger = logging.getLogger(__name__)


class Reaper:
    """
    Periodic cleanup loop for a JobQueue.

    Each run:
    1. Removes finished jobs older than the queue's retention window
    2. Refreshes the queue depth gauges
    """

    def __init__(self, queue: JobQueue, interval_seconds: float | None = None):
        """
        Initialize the reaper.

        Args:
            queue: The queue to sweep.
            interval_seconds: Seconds between runs. Defaults to settings.
        """
        settings = get_settings()
        self.queue = queue
        self.interval = interval_seconds or settings.queue_cleanup_interval_seconds
        self._running = False
        self._wakeup = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Run the cleanup loop until stopped."""
        logger.info(f"Reaper starting with interval {self.interval}s")
        self._running = True
        self._wakeup.clear()

        while self._running:
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval)
            except TimeoutError:
                pass

            if not self._running:
                break

            try:
                removed = self.run_once()
                if removed > 0:
                    logger.info(f"Reclaimed {removed} finished jobs")
            except Exception as e:
                logger.exception(f"Error in reaper loop: {e}")

        logger.info("Reaper stopped")

    async def stop(self) -> None:
        """Stop the reaper."""
        logger.info("Reaper stopping")
        self._running = False
        self._wakeup.set()

    def run_once(self) -> int:
        """
        Run one sweep (for tests or on-demand cleanup).

        Returns:
            Number of jobs removed.
        """
        removed = self.queue.cleanup()
        self.queue.get_stats()
        return removed
