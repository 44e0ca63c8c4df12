"""
Metrics calculator for aggregating session records.

This is a pure computation module with no I/O.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, tzinfo

from memtrack.domain.constants import ROLLING_MONTH_DAYS, ROLLING_WEEK_DAYS
from memtrack.domain.stats.models import (
    AggregateMetrics,
    CanonicalCategory,
    DateRange,
    PeriodMode,
    RollingAccuracy,
    SessionRecord,
    TimeBucket,
)

from .categories import classify
from .time_buckets import build_buckets, local_tz, start_of_day


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negative values."""
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> int:
    """Rounded percentage, 0 when `whole` is 0. Not clamped to 100."""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


class MetricsCalculator:
    """
    Groups sessions into buckets and categories and computes aggregate metrics.

    Stateless and side-effect free.
    """

    def aggregate(self, records: Iterable[SessionRecord]) -> AggregateMetrics:
        """
        Compute accuracy, average time per card, cards reviewed and cards skipped.

        An empty input (or one with zero questions) yields zeros, never NaN.
        """
        total_questions = 0
        total_correct = 0
        total_time = 0.0
        total_skipped = 0
        for r in records:
            total_questions += r.total_questions
            total_correct += r.correct_answers
            total_time += r.total_time
            total_skipped += r.skipped

        if total_questions <= 0:
            avg_time = 0
        else:
            avg_time = round_half_up(total_time / total_questions)

        return AggregateMetrics(
            accuracy=percentage(total_correct, total_questions),
            avg_time_per_card=avg_time,
            cards_reviewed=total_questions,
            cards_skipped=total_skipped,
        )

    def group_by_bucket(
        self,
        records: Iterable[SessionRecord],
        buckets: Sequence[TimeBucket],
    ) -> dict[str, list[SessionRecord]]:
        """
        Assign each record to the first bucket containing its timestamp.

        Every bucket key is present in the result. Records outside all buckets
        are left out of this view.
        """
        grouped: dict[str, list[SessionRecord]] = {b.key: [] for b in buckets}
        for r in records:
            for bucket in buckets:
                if bucket.contains(r.timestamp):
                    grouped[bucket.key].append(r)
                    break
        return grouped

    def filter_by_period(
        self,
        records: Sequence[SessionRecord],
        mode: PeriodMode | str,
        custom_range: DateRange | None = None,
        *,
        now: datetime | None = None,
        tz: tzinfo | None = None,
    ) -> list[SessionRecord]:
        """
        Keep records inside the span covered by the mode's buckets.

        `all` returns every record unfiltered.
        """
        mode = PeriodMode.parse(mode)
        if mode is PeriodMode.ALL:
            return list(records)

        buckets = build_buckets(mode, records, custom_range=custom_range, now=now, tz=tz)
        if not buckets:
            return []

        start, end = buckets[0].start, buckets[-1].end
        return [r for r in records if start <= r.timestamp <= end]

    def split_by_category(
        self, records: Iterable[SessionRecord]
    ) -> dict[CanonicalCategory, list[SessionRecord]]:
        split: dict[CanonicalCategory, list[SessionRecord]] = {c: [] for c in CanonicalCategory}
        for r in records:
            split[classify(r.category)].append(r)
        return split

    def per_category(
        self, records: Iterable[SessionRecord]
    ) -> dict[CanonicalCategory, AggregateMetrics]:
        return {
            category: self.aggregate(subset)
            for category, subset in self.split_by_category(records).items()
        }

    def category_series(
        self,
        records: Iterable[SessionRecord],
        buckets: Sequence[TimeBucket],
    ) -> dict[CanonicalCategory, list[int]]:
        """
        One accuracy value per bucket for every canonical category.

        A bucket with no sessions in a category contributes 0, so every series
        has exactly len(buckets) entries.
        """
        series: dict[CanonicalCategory, list[int]] = {}
        for category, subset in self.split_by_category(records).items():
            grouped = self.group_by_bucket(subset, buckets)
            series[category] = [self.aggregate(grouped[b.key]).accuracy for b in buckets]
        return series

    def accuracy_over_time(
        self,
        records: Sequence[SessionRecord],
        *,
        now: datetime | None = None,
        tz: tzinfo | None = None,
    ) -> RollingAccuracy:
        """
        Accuracy over rolling windows measured back from local midnight today.

        The week window covers the last 7 days and the month window the last 30.
        """
        tz = tz or local_tz()
        now = now or datetime.now(tz)
        midnight = start_of_day(now.astimezone(tz).date(), tz)
        week_ago = midnight - timedelta(days=ROLLING_WEEK_DAYS)
        month_ago = midnight - timedelta(days=ROLLING_MONTH_DAYS)

        def since(cutoff: datetime) -> int:
            return self.aggregate(r for r in records if r.timestamp >= cutoff).accuracy

        return RollingAccuracy(
            today=since(midnight),
            week=since(week_ago),
            month=since(month_ago),
            all_time=self.aggregate(records).accuracy,
        )
