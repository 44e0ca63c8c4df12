"""Helpers shared by the CLI and the HTTP server."""

import logging
from collections.abc import Awaitable
from datetime import date
from typing import Any, TypeVar

from memtrack.application.config import AppConfig, resolve_config
from memtrack.application.stats.categories import CATEGORY_LABELS
from memtrack.application.stats.insights import RecentSession, accuracy_band
from memtrack.application.stats.session_store import SessionStore
from memtrack.domain.stats.models import AggregateMetrics, DateRange, StatsUpdate

T = TypeVar("T")


def _resolve_with_overrides(**overrides: Any) -> AppConfig:
    """Resolve config with CLI overrides and apply the verbosity to logging."""
    config = resolve_config(overrides)
    if config.verbose >= 2:
        logging.getLogger("memtrack").setLevel(logging.DEBUG)
    return config


def parse_range(start: str | None, end: str | None) -> DateRange | None:
    """Build a DateRange from optional YYYY-MM-DD strings."""
    if start is None and end is None:
        return None
    return DateRange(
        start=date.fromisoformat(start) if start else None,
        end=date.fromisoformat(end) if end else None,
    )


def metrics_to_dict(metrics: AggregateMetrics) -> dict[str, int]:
    return {
        "accuracy": metrics.accuracy,
        "avgTimePerCard": metrics.avg_time_per_card,
        "cardsReviewed": metrics.cards_reviewed,
        "cardsSkipped": metrics.cards_skipped,
    }


def update_to_dict(update: StatsUpdate) -> dict[str, Any]:
    return {
        "period": update.mode.value,
        "tier": update.tier.value,
        "dataSource": update.data_source,
        "connected": update.connected,
        "hasData": update.has_data,
        "overall": metrics_to_dict(update.overall),
        "perCategory": {c.value: metrics_to_dict(m) for c, m in update.per_category.items()},
        "labels": update.labels,
        "series": {c.value: values for c, values in update.per_bucket_series.items()},
        "buckets": [
            {"key": b.key, "label": b.label, "start": b.start.isoformat(), "end": b.end.isoformat()}
            for b in update.buckets
        ],
        "insights": [{"icon": i.icon, "title": i.title, "message": i.message} for i in update.insights],
    }


def recent_to_dict(item: RecentSession) -> dict[str, Any]:
    r = item.record
    return {
        "category": r.category,
        "timestamp": r.timestamp.isoformat(),
        "totalQuestions": r.total_questions,
        "correctAnswers": r.correct_answers,
        "skipped": r.skipped,
        "accuracy": item.accuracy,
        "band": accuracy_band(item.accuracy),
        "durationMinutes": item.duration_minutes,
    }


def format_update(update: StatsUpdate) -> str:
    """Plain-text rendering of a StatsUpdate for terminals."""
    o = update.overall
    lines = [
        f"Period: {update.mode.value}   Source: {update.data_source}",
        f"Accuracy: {o.accuracy}%   Avg time/card: {o.avg_time_per_card}s   "
        f"Cards: {o.cards_reviewed}   Skipped: {o.cards_skipped}",
        "",
    ]
    for category, metrics in update.per_category.items():
        if metrics.cards_reviewed == 0:
            continue
        lines.append(
            f"  {CATEGORY_LABELS[category]:<28} {metrics.accuracy:>3}%  "
            f"{metrics.cards_reviewed:>4} cards  {metrics.avg_time_per_card:>3}s/card"
        )
    if update.has_data:
        lines.append("")
        for idx, label in enumerate(update.labels):
            values = "  ".join(
                f"{c.value}={series[idx]}" for c, series in update.per_bucket_series.items() if series[idx]
            )
            lines.append(f"  {label:<14} {values or '-'}")
    for insight in update.insights:
        lines.append(f"{insight.icon} {insight.title}: {insight.message}")
    return "\n".join(lines)


async def run_closing(store: SessionStore, operation: Awaitable[T]) -> T:
    """Await `operation`, then close the store's remote connections."""
    try:
        return await operation
    finally:
        await store.aclose()
