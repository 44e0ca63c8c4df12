"""
Sync coordinator: keeps a published StatsUpdate current.

Two independent triggers feed the same recompute path:

1. A live push subscription on the remote source (always tier LIVE).
2. A fallback timer that forces a full tiered fetch when nothing has been
   published for a whole refresh interval, in case the push feed stalls.

Newly recorded sessions are folded into the held record set and published
before the remote write completes.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from memtrack.domain.constants import AUTO_REFRESH_INTERVAL
from memtrack.domain.stats.errors import StorageQuotaExceeded
from memtrack.domain.stats.models import (
    AppendResult,
    DateRange,
    PeriodMode,
    SessionRecord,
    SourceTier,
    StatsUpdate,
)
from memtrack.domain.stats.ports import RemoteSessionSource, StatsSink, Unsubscribe

from .service import SessionStatsService

logger = logging.getLogger(__name__)

StatsListener = Callable[[StatsUpdate], None]


class SyncCoordinator:
    """
    Owns the live subscription, the fallback refresh timer and the held record set
    for one consumer (one screen).

    All state is touched only from the event loop the coordinator runs on.
    A generation counter is bumped on every teardown; fetches and pushes that
    belong to an older generation are discarded instead of published.
    """

    def __init__(
        self,
        service: SessionStatsService,
        remote: RemoteSessionSource,
        on_stats_updated: StatsListener,
        *,
        mode: PeriodMode | str = PeriodMode.TODAY,
        custom_range: DateRange | None = None,
        refresh_interval: float = AUTO_REFRESH_INTERVAL,
        stats_sink: StatsSink | None = None,
        owns_remote: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            service: Computes StatsUpdate values and owns the tiered store.
            remote: Source of the live push subscription.
            on_stats_updated: Called with every published StatsUpdate.
            mode: Initial period mode.
            custom_range: Date range for the custom mode.
            refresh_interval: Seconds between fallback timer checks.
            stats_sink: Optional external stats document updated after live fetches.
            owns_remote: Close `remote` on dispose.
            clock: Monotonic clock, injectable for tests.
        """
        self._service = service
        self._remote = remote
        self._listener = on_stats_updated
        self._mode = PeriodMode.parse(mode)
        self._custom_range = custom_range
        self._interval = refresh_interval
        self._sink = stats_sink
        self._owns_remote = owns_remote
        self._clock = clock

        self._records: list[SessionRecord] = []
        self._tier = SourceTier.FALLBACK
        self._latest: StatsUpdate | None = None
        self._last_update = clock()
        self._generation = 0
        self._unsubscribe: Unsubscribe | None = None
        self._timer: asyncio.Task | None = None
        self._disposed = False

    @property
    def mode(self) -> PeriodMode:
        return self._mode

    @property
    def tier(self) -> SourceTier:
        return self._tier

    @property
    def records(self) -> list[SessionRecord]:
        return list(self._records)

    @property
    def latest(self) -> StatsUpdate | None:
        """The most recently published update."""
        return self._latest

    @property
    def is_subscribed(self) -> bool:
        return self._unsubscribe is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def start(self) -> None:
        """Load and publish once, then open the subscription and start the timer."""
        if self._disposed:
            raise RuntimeError("SyncCoordinator has been disposed")

        generation = self._generation
        await self._load(generation)
        if generation != self._generation:
            return

        self._subscribe(generation)
        self._timer = asyncio.create_task(self._refresh_loop(generation))
        logger.info(
            f"Sync started for user={self._service.store.user.user_id} "
            f"(mode={self._mode.value}, interval={self._interval}s)"
        )

    async def set_period(self, mode: PeriodMode | str, custom_range: DateRange | None = None) -> None:
        """Switch period mode: cancel subscription and timer, then start again."""
        if self._disposed:
            logger.warning("set_period called after dispose; ignoring")
            return
        await self._teardown()
        self._mode = PeriodMode.parse(mode)
        self._custom_range = custom_range
        await self.start()

    async def refresh(self) -> None:
        """Force a full tiered fetch and republish."""
        if self._disposed:
            return
        await self._load(self._generation)

    async def record_new_session(self, record: SessionRecord) -> AppendResult:
        """
        Reflect a just-finished session immediately, then persist it.

        The new record is prepended to the held set and published before the
        remote write is awaited.
        """
        if not self._disposed:
            self._records = [record, *self._records]
            self._publish()

        try:
            return await self._service.store.append(record)
        except StorageQuotaExceeded as e:
            logger.error(f"Durable session write failed, storage is full: {e}")
            return AppendResult(remote_ok=bool(e.remote_ok), durable_ok=False)

    async def dispose(self) -> None:
        """Cancel the subscription and timer. Idempotent; nothing is published afterwards."""
        if self._disposed:
            return
        self._disposed = True
        await self._teardown()
        if self._owns_remote:
            await self._remote.aclose()
        logger.info("Sync disposed")

    async def _teardown(self) -> None:
        self._generation += 1

        if self._unsubscribe is not None:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            try:
                unsubscribe()
            except Exception as e:
                logger.warning(f"Error while cancelling live subscription: {e}")

        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass

    def _is_stale(self, generation: int) -> bool:
        return self._disposed or generation != self._generation

    async def _load(self, generation: int) -> None:
        result = await self._service.store.fetch(period_hint=self._mode)
        if self._is_stale(generation):
            logger.debug("Discarding fetch that completed after teardown")
            return

        self._records = list(result.records)
        self._tier = result.tier
        self._publish()

        if self._sink is not None and result.tier is SourceTier.LIVE:
            await self._push_summary(result.records)

    async def _push_summary(self, records: Sequence[SessionRecord]) -> None:
        summary = self._service.build_summary(records)
        try:
            await self._sink.update_user_stats(self._service.store.user.user_id, summary)
        except Exception as e:
            logger.error(f"Failed to update remote stats: {e}")

    def _subscribe(self, generation: int) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        def on_push(records: list[SessionRecord]) -> None:
            if self._is_stale(generation):
                return
            logger.debug(f"Received live push with {len(records)} sessions")
            self._records = list(records)
            self._tier = SourceTier.LIVE
            self._service.store.cache_records(records)
            self._publish(live_push=True)

        try:
            self._unsubscribe = self._remote.subscribe(self._service.store.user.user_id, on_push)
        except Exception as e:
            logger.warning(f"Failed to subscribe to live sessions, relying on refresh timer: {e}")

    async def _refresh_loop(self, generation: int) -> None:
        while not self._is_stale(generation):
            await asyncio.sleep(self._interval)
            if self._is_stale(generation):
                return
            if self._clock() - self._last_update >= self._interval:
                logger.info("Auto-refreshing session stats (fallback)")
                await self._load(generation)

    def _publish(self, live_push: bool = False) -> None:
        update = self._service.build_update(
            self._records,
            self._tier,
            self._mode,
            self._custom_range,
            live_push=live_push,
        )
        self._last_update = self._clock()
        self._latest = update
        try:
            self._listener(update)
        except Exception as e:
            logger.error(f"Stats listener raised: {e}", exc_info=True)
