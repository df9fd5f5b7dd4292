"""Fetch-and-aggregate refresh loop for one dashboard view.

Every refresh takes a new generation number.  A finished load is applied only
if its generation is still the latest one started and the refresher has not
been closed, so the most recently *started* request wins regardless of the
order in which responses arrive.  A transport failure keeps the last good
state and records the error; any other error is logged and polling goes on.
Concurrent first requests for one view share a single initial load.
"""

import asyncio
import logging
from collections import OrderedDict
from typing import Awaitable, Callable, Generic, Hashable, Optional, TypeVar

from .sales_client import SalesSourceError

logger = logging.getLogger(__name__)

TODAY_REFRESH_SECONDS = 5 * 60
DASHBOARD_REFRESH_SECONDS = 15 * 60
MAX_LIVE_VIEWS = 16

T = TypeVar("T")
Loader = Callable[[], Awaitable[T]]


class DashboardRefresher(Generic[T]):
    def __init__(self, load: Loader, interval: float, name: str = "dashboard"):
        self._load = load
        self.interval = interval
        self.name = name
        self.state: Optional[T] = None
        self.error: Optional[SalesSourceError] = None
        self.loading = False
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stale(self) -> bool:
        """True when the current state survived a failed refresh."""
        return self.error is not None and self.state is not None

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    async def refresh(self) -> bool:
        """Run one load. Returns True if its result was applied."""
        if self._closed:
            return False
        self._generation += 1
        generation = self._generation
        self.loading = True

        try:
            result = await self._load()
        except SalesSourceError as exc:
            if not self._is_current(generation):
                return False
            self.error = exc
            self.loading = False
            logger.warning("[%s] refresh %d failed, keeping last state: %s", self.name, generation, exc)
            return False
        except Exception:
            if self._is_current(generation):
                self.loading = False
            raise

        if not self._is_current(generation):
            logger.info(
                "[%s] discarding result of refresh %d (latest is %d)",
                self.name, generation, self._generation,
            )
            return False

        self.state = result
        self.error = None
        self.loading = False
        return True

    async def change_loader(self, load: Loader) -> bool:
        """Swap the loader (e.g. a new date range) and refresh immediately."""
        self._load = load
        return await self.refresh()

    # ── Periodic polling ──────────────────────────────────────────────────────

    async def _poll(self, initial_delay: float) -> None:
        await asyncio.sleep(initial_delay)
        while not self._closed:
            try:
                await self.refresh()
            except Exception:
                logger.exception("[%s] refresh raised; polling continues", self.name)
            await asyncio.sleep(self.interval)

    def start(self, *, load_now: bool = True) -> None:
        if self._closed:
            raise RuntimeError(f"refresher {self.name!r} is closed")
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._poll(0 if load_now else self.interval))

    async def close(self) -> None:
        """Stop polling. Results of loads still in flight are discarded."""
        self._closed = True
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


class DashboardHub:
    """Live refreshers keyed by view + parameters, oldest evicted first."""

    def __init__(self, max_views: int = MAX_LIVE_VIEWS):
        self.max_views = max_views
        self._views: "OrderedDict[Hashable, DashboardRefresher]" = OrderedDict()
        self._first_loads: dict[Hashable, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._views)

    def get(self, key: Hashable) -> Optional[DashboardRefresher]:
        return self._views.get(key)

    async def view(self, key: Hashable, load: Loader, interval: float) -> DashboardRefresher:
        """Return the live refresher for ``key``, loading and scheduling it on first use."""
        refresher = self._views.get(key)
        if refresher is not None:
            self._views.move_to_end(key)
            first_load = self._first_loads.get(key)
            if first_load is not None:
                # share the in-flight first load instead of starting a newer generation
                await asyncio.shield(first_load)
            return refresher

        refresher = DashboardRefresher(load, interval, name=str(key))
        self._views[key] = refresher
        first_load = asyncio.create_task(refresher.refresh())
        self._first_loads[key] = first_load
        try:
            await asyncio.shield(first_load)
        finally:
            self._first_loads.pop(key, None)
        if not refresher.closed:
            refresher.start(load_now=False)

        while len(self._views) > self.max_views:
            _, oldest = self._views.popitem(last=False)
            await oldest.close()
        return refresher

    async def close_all(self) -> None:
        views = list(self._views.values())
        self._views.clear()
        for refresher in views:
            await refresher.close()
