import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from affiliate_sync.config import Settings, settings as default_settings
from affiliate_sync.schemas.snapshot import PageContext
from affiliate_sync.services.store import AffiliateStore

logger = logging.getLogger(__name__)


class PollingTier(str, Enum):
    FAST = "fast"
    MEDIUM = "medium"
    HEAVY = "heavy"


class PollingScheduler:
    """
    Three background refresh loops over one ``AffiliateStore``.

    Each tier wakes on its own period but only fetches when the store's
    snapshot is stale, so a manual refresh that just stamped ``last_update``
    holds every tier off for a full TTL window. Stopping cancels the loops
    only; a tier fetch already running, or a pending hierarchy request, is
    left to land.
    """

    def __init__(self, store: AffiliateStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or default_settings
        self._running = False
        self._page_context: PageContext | None = None
        self._tasks: dict[PollingTier, asyncio.Task] = {}
        self._cycles: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending_cycles(self) -> int:
        return len(self._cycles)

    @property
    def page_context(self) -> PageContext | None:
        return self._page_context

    @property
    def tiers(self) -> list[PollingTier]:
        return list(self._tasks)

    def interval(self, tier: PollingTier) -> float:
        return {
            PollingTier.FAST: self.settings.fast_poll_interval_seconds,
            PollingTier.MEDIUM: self.settings.medium_poll_interval_seconds,
            PollingTier.HEAVY: self.settings.heavy_poll_interval_seconds,
        }[tier]

    def _refresh_for(self, tier: PollingTier) -> Callable[[], Awaitable[None]]:
        if tier == PollingTier.FAST:
            return self.store.refresh_activation
        if tier == PollingTier.MEDIUM:
            if self._page_context == PageContext.WITHDRAWAL:
                return self.store.refresh_withdrawal_balance
            return self.store.refresh_program_and_balance
        return self.store.refresh_commissions_and_history

    async def start(self, page_context: PageContext | str | None = None) -> None:
        """Start all tier loops. Calling it while already running is a no-op."""
        if self._running:
            logger.debug("Polling already running")
            return

        self._running = True
        self._page_context = PageContext(page_context) if page_context else None

        for tier in PollingTier:
            # The withdrawal page only needs the balance, which medium covers.
            if tier == PollingTier.FAST and self._page_context == PageContext.WITHDRAWAL:
                continue
            self._tasks[tier] = asyncio.create_task(self._poll_loop(tier))

        logger.info(
            f"Polling started (context={self._page_context.value if self._page_context else 'default'}, "
            f"tiers={[tier.value for tier in self._tasks]})"
        )

    async def stop(self) -> None:
        self._running = False

        tasks = list(self._tasks.values())
        self._tasks.clear()
        self._page_context = None

        for task in tasks:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if tasks:
            logger.info("Polling stopped")

    async def tick(self, tier: PollingTier) -> bool:
        """
        Run one tier cycle: refresh when the snapshot is stale.

        Returns True when a fetch ran. Failures are logged and left in the
        snapshot's ``error`` field; they never stop the loop.
        """
        if not self.store.is_stale():
            age = self.store.cache_age()
            logger.debug(f"{tier.value} tier skipped, cache age {age:.1f}s")
            return False

        try:
            await self._refresh_for(tier)()
        except Exception as e:
            logger.error(f"Error in {tier.value} polling tier: {e}")
        return True

    async def _poll_loop(self, tier: PollingTier) -> None:
        period = self.interval(tier)
        while self._running:
            try:
                await asyncio.sleep(period)
                # Own task, so cancelling the loop does not abort a fetch mid-flight.
                cycle = asyncio.create_task(self.tick(tier))
                self._cycles.add(cycle)
                cycle.add_done_callback(self._cycles.discard)
                await asyncio.wait({cycle})
            except asyncio.CancelledError:
                break
