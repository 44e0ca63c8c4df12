# Application Stats Package
from .categories import classify
from .coordinator import SyncCoordinator
from .metrics_calculator import MetricsCalculator
from .service import SessionStatsService
from .session_store import SessionStore
from .time_buckets import build_buckets

__all__ = [
    "classify",
    "build_buckets",
    "MetricsCalculator",
    "SessionStore",
    "SessionStatsService",
    "SyncCoordinator",
]
