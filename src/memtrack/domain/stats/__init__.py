# Domain Stats Package
from .errors import MalformedRecord, MemtrackError, SourceUnavailable, StorageQuotaExceeded
from .models import (
    AggregateMetrics,
    AppendResult,
    CanonicalCategory,
    DateRange,
    FetchResult,
    Insight,
    PeriodMode,
    RollingAccuracy,
    SessionRecord,
    SourceTier,
    StatsSummary,
    StatsUpdate,
    TimeBucket,
    UserContext,
)
from .ports import KeyValueStore, RemoteSessionSource, StatsSink

__all__ = [
    "AggregateMetrics",
    "AppendResult",
    "CanonicalCategory",
    "DateRange",
    "FetchResult",
    "Insight",
    "PeriodMode",
    "RollingAccuracy",
    "SessionRecord",
    "SourceTier",
    "StatsSummary",
    "StatsUpdate",
    "TimeBucket",
    "UserContext",
    "KeyValueStore",
    "RemoteSessionSource",
    "StatsSink",
    "MemtrackError",
    "MalformedRecord",
    "SourceUnavailable",
    "StorageQuotaExceeded",
]
