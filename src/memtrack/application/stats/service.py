"""
Session Stats Service — Application layer orchestrator.

Turns a record set into the StatsUpdate view model. Every trigger (initial
load, live push, fallback timer, newly recorded session) goes through
`build_update`, so they all produce identical output for identical input.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, tzinfo

from memtrack.domain.constants import NO_ACTIVITY_TODAY_LABEL, NO_DATA_LABEL
from memtrack.domain.stats.models import (
    CanonicalCategory,
    DateRange,
    PeriodMode,
    SessionRecord,
    SourceTier,
    StatsSummary,
    StatsUpdate,
    TimeBucket,
)

from .insights import generate_insights
from .metrics_calculator import MetricsCalculator
from .session_store import SessionStore
from .time_buckets import build_buckets

logger = logging.getLogger(__name__)


class SessionStatsService:
    """
    Application service for computing period stats from session records.

    Depends on SessionStore for one-shot reports; `build_update` itself is pure.
    """

    def __init__(
        self,
        store: SessionStore,
        calculator: MetricsCalculator | None = None,
    ):
        """
        Args:
            store: Tiered session store for the current user.
            calculator: Optional custom calculator; uses default if not provided.
        """
        self.store = store
        self._calc = calculator or MetricsCalculator()

    @property
    def calculator(self) -> MetricsCalculator:
        return self._calc

    @property
    def tz(self) -> tzinfo:
        return self.store.user.tz

    def build_update(
        self,
        records: Sequence[SessionRecord],
        tier: SourceTier,
        mode: PeriodMode | str,
        custom_range: DateRange | None = None,
        *,
        now: datetime | None = None,
        live_push: bool = False,
    ) -> StatsUpdate:
        """
        Compute overall, per-category and per-bucket stats for a period.

        With no records at all, labels collapse to a single "No Data" entry
        (or "No Activity Today") and each series to [0].
        """
        mode = PeriodMode.parse(mode)
        filtered = self._calc.filter_by_period(records, mode, custom_range, now=now, tz=self.tz)
        overall = self._calc.aggregate(filtered)
        per_category = self._calc.per_category(filtered)

        if records:
            buckets = build_buckets(mode, records, custom_range=custom_range, now=now, tz=self.tz)
            series = self._calc.category_series(records, buckets)
            labels = [b.label for b in buckets]
        else:
            buckets = [self._placeholder_bucket(mode, custom_range, now)]
            series = {c: [0] for c in CanonicalCategory}
            labels = [buckets[0].label]

        logger.debug(
            f"Recomputed {mode.value} stats: {len(filtered)}/{len(records)} sessions, "
            f"{len(buckets)} buckets, tier={tier.value}"
        )

        return StatsUpdate(
            overall=overall,
            per_category=per_category,
            per_bucket_series=series,
            buckets=buckets,
            tier=tier,
            mode=mode,
            labels=labels,
            has_data=bool(records),
            live_push=live_push,
            insights=generate_insights(overall),
        )

    def _placeholder_bucket(
        self, mode: PeriodMode, custom_range: DateRange | None, now: datetime | None
    ) -> TimeBucket:
        """Single "No Data" bucket spanning the period, or today when the period has no span."""
        buckets = build_buckets(mode, [], custom_range=custom_range, now=now, tz=self.tz)
        if not buckets:
            buckets = build_buckets(PeriodMode.TODAY, [], now=now, tz=self.tz)
        label = NO_ACTIVITY_TODAY_LABEL if mode is PeriodMode.TODAY else NO_DATA_LABEL
        return TimeBucket(
            key=buckets[0].key, label=label, start=buckets[0].start, end=buckets[-1].end
        )

    def build_summary(
        self, records: Sequence[SessionRecord], *, now: datetime | None = None
    ) -> StatsSummary:
        """All-time overall metrics plus rolling accuracy, for the external stats sink."""
        now = now or datetime.now(self.tz)
        return StatsSummary(
            overall=self._calc.aggregate(records),
            accuracy_over_time=self._calc.accuracy_over_time(records, now=now, tz=self.tz),
            last_updated=now,
        )

    async def get_report(
        self,
        mode: PeriodMode | str,
        custom_range: DateRange | None = None,
    ) -> StatsUpdate:
        """Fetch through the tiered store and compute stats for one period."""
        result = await self.store.fetch(period_hint=mode)
        return self.build_update(result.records, result.tier, mode, custom_range)
