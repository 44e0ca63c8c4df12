"""Derived views over aggregated stats: coaching insights and the recent-sessions list."""

from collections.abc import Iterable
from dataclasses import dataclass

from memtrack.domain.constants import (
    EXCELLENT_ACCURACY,
    FAIR_ACCURACY,
    GOOD_ACCURACY,
    RECENT_SESSIONS_LIMIT,
    SLOW_CARD_SECONDS,
)
from memtrack.domain.stats.models import AggregateMetrics, Insight, SessionRecord

from .metrics_calculator import percentage


@dataclass(frozen=True)
class RecentSession:
    record: SessionRecord
    accuracy: int
    duration_minutes: int


def generate_insights(overall: AggregateMetrics) -> list[Insight]:
    insights: list[Insight] = []

    if overall.accuracy >= EXCELLENT_ACCURACY:
        insights.append(
            Insight(
                icon="🎯",
                title="Excellent Accuracy",
                message=(
                    f"Great job! Your accuracy of {overall.accuracy}% "
                    "shows strong memory retention."
                ),
            )
        )
    elif overall.accuracy >= GOOD_ACCURACY:
        insights.append(
            Insight(
                icon="👍",
                title="Good Progress",
                message=f"You're doing well with {overall.accuracy}% accuracy. Keep practicing!",
            )
        )
    elif overall.accuracy > 0:
        insights.append(
            Insight(
                icon="💪",
                title="Keep Practicing",
                message="Practice makes perfect! Try focusing on accuracy over speed.",
            )
        )

    if overall.avg_time_per_card > SLOW_CARD_SECONDS:
        insights.append(
            Insight(
                icon="⏰",
                title="Take Your Time",
                message="No rush! Taking time to think helps with memory formation.",
            )
        )

    return insights


def accuracy_band(accuracy: int) -> str:
    """Bucket an accuracy percentage into excellent / good / fair / poor."""
    if accuracy >= EXCELLENT_ACCURACY:
        return "excellent"
    if accuracy >= GOOD_ACCURACY:
        return "good"
    if accuracy >= FAIR_ACCURACY:
        return "fair"
    return "poor"


def recent_sessions(
    records: Iterable[SessionRecord], limit: int = RECENT_SESSIONS_LIMIT
) -> list[RecentSession]:
    """The newest `limit` sessions, each with its own accuracy and whole-minute duration."""
    newest = sorted(records, key=lambda r: r.timestamp, reverse=True)[: max(limit, 0)]
    return [
        RecentSession(
            record=r,
            accuracy=percentage(r.correct_answers, r.total_questions),
            duration_minutes=int(r.total_time // 60),
        )
        for r in newest
    ]
