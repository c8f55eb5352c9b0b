# catalog_admin/refresher.py
import asyncio
import logging
from typing import Optional, Set

from .viewmodel import ProductListViewModel

logger = logging.getLogger(__name__)

REFRESH_INTERVAL = 30.0


class AutoRefresher:
    """
    Periodic catalog refresh on the running event loop.

    Each tick spawns its own refresh task and never waits for earlier ones,
    so a hung request cannot hold back the next tick. When fetches overlap,
    whichever response arrives last is what the view-model keeps.
    """

    def __init__(self, view_model: ProductListViewModel, interval: float = REFRESH_INTERVAL):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.view_model = view_model
        self.interval = interval
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        if self.running:
            return
        self._timer = asyncio.get_running_loop().create_task(self._run())
        logger.info("Auto-refresh started. Interval: %g seconds", self.interval)

    def stop(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        logger.info("Auto-refresh stopped")

    def trigger(self) -> asyncio.Task:
        """Fire one refresh without waiting on it."""
        task = asyncio.get_running_loop().create_task(self.view_model.refresh())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every refresh started so far to finish."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight))

    async def _run(self) -> None:
        while True:
            self.trigger()
            await asyncio.sleep(self.interval)
