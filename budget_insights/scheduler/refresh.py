"""Periodic analysis refresh tied to the consuming surface's lifecycle"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from budget_insights.config import settings

logger = logging.getLogger(__name__)

RefreshRun = Callable[[bool], Awaitable[object]]


class RefreshScheduler:
    """
    Re-runs the analysis on a fixed interval while the surface is active.

    Deactivation cancels the loop; activation starts it again with an
    immediate run. A change of accounting period triggers a forced run that
    bypasses the delivery cadence gate.
    """

    def __init__(self, run: RefreshRun, interval_seconds: Optional[float] = None):
        self.run = run
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.refresh_interval_seconds
        )
        self._task: Optional[asyncio.Task] = None
        self._period_key: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_cancelled(self) -> bool:
        """Cancellation probe handed to scheduled runs"""
        return not self.is_active

    async def _refresh_loop(self) -> None:
        logger.info(f"Starting refresh loop (interval: {self.interval_seconds}s)")

        while True:
            try:
                await self.run(False)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduled analysis run failed")

            await asyncio.sleep(self.interval_seconds)

    async def activate(self) -> None:
        if self.is_active:
            return

        self._task = asyncio.create_task(self._refresh_loop())
        logger.info("Refresh scheduler activated")

    async def deactivate(self) -> None:
        if self._task is None:
            return

        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Refresh scheduler deactivated")

    async def set_active_period(self, period_key: str) -> bool:
        """
        Record the active accounting period.

        Returns True when the key changed from a previously known period and
        a forced run was issued.
        """
        previous, self._period_key = self._period_key, period_key
        if previous is None or previous == period_key:
            return False

        logger.info(f"Accounting period changed from {previous} to {period_key}, forcing analysis")
        try:
            await self.run(True)
        except Exception:
            logger.exception("Forced analysis run failed")
        return True
