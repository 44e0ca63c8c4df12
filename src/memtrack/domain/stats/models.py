"""
Domain models for session analytics.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from enum import Enum


class CanonicalCategory(str, Enum):
    """The fixed set of categories a free-form game label is normalized into."""

    PEOPLE = "people"
    PLACES = "places"
    OBJECTS = "objects"
    CATEGORY_MATCH = "category-match"
    OTHER = "other"


class SourceTier(str, Enum):
    """Provenance of the record set currently backing the displayed stats."""

    LIVE = "live"
    CACHED = "cached"
    FALLBACK = "fallback"


class PeriodMode(str, Enum):
    """
    Time window used to bucket and filter sessions.

    RECENT is the catch-all mode (last 7 days ending today) that any
    unrecognized value maps to.
    """

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"
    CUSTOM = "custom"
    RECENT = "recent"

    @classmethod
    def parse(cls, value: "PeriodMode | str | None") -> "PeriodMode":
        if isinstance(value, PeriodMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.RECENT


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar range for the custom period mode."""

    start: date | None = None
    end: date | None = None


@dataclass(frozen=True)
class UserContext:
    """
    Identity and locale of the user whose sessions are being reported.

    Attributes:
        user_id: Account identifier; namespaces every storage key.
        tz: Timezone used for calendar-day and calendar-month boundaries.
    """

    user_id: str
    tz: tzinfo


@dataclass(frozen=True)
class SessionRecord:
    """
    One completed quiz attempt.

    Attributes:
        category: Free-form label as produced by the originating game.
        total_questions: Cards shown in the session.
        correct_answers: Cards answered correctly. Not guaranteed <= total.
        skipped: Cards skipped.
        total_time: Seconds spent in the session.
        timestamp: Timezone-aware instant the session ended.
    """

    category: str
    total_questions: int
    correct_answers: int
    skipped: int
    total_time: float
    timestamp: datetime


@dataclass(frozen=True)
class TimeBucket:
    """
    A labeled, inclusive time interval used to group sessions for charting.

    `key` is an ISO date (YYYY-MM-DD) for day buckets and YYYY-MM for month buckets.
    """

    key: str
    label: str
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True)
class AggregateMetrics:
    """
    The four derived numbers computed over a set of sessions.

    All fields are exactly 0 for an empty input. Accuracy is a percentage that is
    not clamped: sessions reporting more correct answers than questions push it past 100.
    """

    accuracy: int = 0
    avg_time_per_card: int = 0
    cards_reviewed: int = 0
    cards_skipped: int = 0


@dataclass(frozen=True)
class FetchResult:
    """Records returned by the tiered store along with the tier that answered."""

    records: list[SessionRecord]
    tier: SourceTier

    @property
    def connected(self) -> bool:
        return self.tier is SourceTier.LIVE


@dataclass(frozen=True)
class AppendResult:
    """Outcome of the dual write performed when a session is recorded."""

    remote_ok: bool
    durable_ok: bool = True


@dataclass(frozen=True)
class Insight:
    icon: str
    title: str
    message: str


@dataclass(frozen=True)
class RollingAccuracy:
    """Accuracy over rolling windows ending now."""

    today: int = 0
    week: int = 0
    month: int = 0
    all_time: int = 0


@dataclass(frozen=True)
class StatsSummary:
    """Snapshot pushed to the external stats sink after a live fetch."""

    overall: AggregateMetrics
    accuracy_over_time: RollingAccuracy
    last_updated: datetime


@dataclass
class StatsUpdate:
    """
    View model published to the presentation layer on every recompute.

    `per_bucket_series` maps each canonical category to one accuracy value per
    entry in `labels`, so every series lines up with the chart's x-axis.
    """

    overall: AggregateMetrics
    per_category: dict[CanonicalCategory, AggregateMetrics]
    per_bucket_series: dict[CanonicalCategory, list[int]]
    buckets: list[TimeBucket]
    tier: SourceTier
    mode: PeriodMode
    labels: list[str] = field(default_factory=list)
    has_data: bool = False
    live_push: bool = False
    insights: list[Insight] = field(default_factory=list)

    @property
    def connected(self) -> bool:
        return self.tier is SourceTier.LIVE

    @property
    def data_source(self) -> str:
        return data_source_label(self.tier, self.has_data, live_push=self.live_push)


def data_source_label(tier: SourceTier, has_data: bool, live_push: bool = False) -> str:
    """Human-readable provenance label shown next to the stats."""
    if tier is SourceTier.LIVE:
        return "Live (Real-time)" if live_push else "Live"
    if tier is SourceTier.CACHED:
        return "Cached Data"
    return "Local Storage" if has_data else "No Data"
