"""
Polling sync loop.

The spreadsheet has no change feed, so the dashboard polls it: every tick
re-reads orders, menu, and the "last seen" watermark, and raises one alert
for all orders newer than the watermark.

Timestamps are compared as raw strings. That is only correct while the
sheet writes lexically monotonic timestamps (e.g. "YYYY-MM-DD HH:MM:SS").
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel

from orderdesk.models import MenuItem, Order
from orderdesk.storage.base import LAST_SEEN_ORDER_KEY, Storage

logger = logging.getLogger(__name__)

NotifyFn = Callable[[List[str]], Awaitable[None]]


class SyncResult(BaseModel):
    """What one tick observed."""

    orders: List[Order]
    menu: List[MenuItem]
    arrived: List[str] = []
    notified: bool = False
    watermark: Optional[str] = None


async def sync_once(storage: Storage, notify: NotifyFn) -> SyncResult:
    """
    Run one tick against `storage`.

    - No watermark yet: seed it with the newest order's timestamp, no alert.
    - Newest order newer than the watermark: alert once with every order
      newer than the watermark, then advance the watermark.

    Errors from storage propagate to the caller.
    """
    orders = await storage.get_orders()
    menu = await storage.get_menu()
    watermark = await storage.get_meta(LAST_SEEN_ORDER_KEY)

    result = SyncResult(orders=orders, menu=menu, watermark=watermark)
    newest = orders[0] if orders else None
    if newest is None:
        return result

    if not watermark:
        await storage.update_meta(LAST_SEEN_ORDER_KEY, newest.created_at)
        result.watermark = newest.created_at
        logger.info(f"Watermark seeded at {newest.created_at}")
        return result

    if newest.created_at > watermark:
        arrived = [o for o in orders if o.created_at > watermark]
        if arrived:
            result.arrived = [o.order_id for o in arrived]
            await notify(result.arrived)
            result.notified = True
            await storage.update_meta(LAST_SEEN_ORDER_KEY, newest.created_at)
            result.watermark = newest.created_at

    return result


class SyncLoop:
    """
    Fixed-interval scheduler for a tick job.

    At most one tick runs at a time: a tick requested while another is in
    flight is skipped. stop() cancels the pending timer and waits for the
    task to finish.
    """

    def __init__(self, job: Callable[[], Awaitable[None]], interval: Callable[[], float]):
        """
        Args:
            job: coroutine function run once per tick
            interval: returns the current polling interval in seconds; read
                before every sleep so settings changes apply on the next cycle
        """
        self._job = job
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._in_flight = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def run_once(self) -> bool:
        """Run the job now. Returns False if a tick was already in flight."""
        if self._in_flight:
            logger.debug("Tick already in flight, skipping")
            return False
        self._in_flight = True
        try:
            await self._job()
        finally:
            self._in_flight = False
        return True

    async def _run(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Sync tick crashed")
            if self._task is not asyncio.current_task():
                # stopped from inside the job
                return
            await asyncio.sleep(self._interval())

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Sync loop started (every {self._interval()}s)")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        logger.info("Sync loop stopped")
        if task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "SyncLoop":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
