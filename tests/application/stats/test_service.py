from datetime import date, datetime, timezone

import pytest

from memtrack.domain.stats.models import CanonicalCategory, DateRange, PeriodMode, SourceTier

UTC = timezone.utc
NOW = datetime(2024, 3, 12, 15, 30, tzinfo=UTC)


def test_no_records_collapses_labels(service):
    update = service.build_update([], SourceTier.FALLBACK, "week", now=NOW)

    assert update.labels == ["No Data"]
    assert len(update.buckets) == 1
    assert update.buckets[0].label == "No Data"
    assert update.has_data is False
    assert update.data_source == "No Data"
    for category in CanonicalCategory:
        assert update.per_bucket_series[category] == [0]
        assert update.per_category[category].accuracy == 0


def test_no_records_today_label(service):
    update = service.build_update([], SourceTier.LIVE, PeriodMode.TODAY, now=NOW)
    assert update.labels == ["No Activity Today"]
    assert update.data_source == "Live"


def test_filtered_overall_with_full_bucket_series(service, make_session):
    records = [
        make_session(total=10, correct=9, when=datetime(2024, 3, 12, 9, tzinfo=UTC)),
        make_session(total=10, correct=1, when=datetime(2024, 3, 3, 9, tzinfo=UTC)),
    ]
    update = service.build_update(records, SourceTier.LIVE, "today", now=NOW)

    assert update.overall.accuracy == 90
    assert update.overall.cards_reviewed == 10
    assert update.labels == ["Tue, Mar 12"]
    assert update.per_bucket_series[CanonicalCategory.PEOPLE] == [90]
    assert update.has_data is True


def test_series_match_label_count(service, make_session):
    records = [make_session(when=datetime(2024, 3, 3, 9, tzinfo=UTC))]
    update = service.build_update(records, SourceTier.CACHED, "week", now=NOW)

    assert len(update.labels) == 8
    for values in update.per_bucket_series.values():
        assert len(values) == len(update.labels)
    assert update.data_source == "Cached Data"
    assert not update.connected


def test_live_push_label(service, make_session):
    update = service.build_update([make_session()], SourceTier.LIVE, "all", now=NOW, live_push=True)
    assert update.data_source == "Live (Real-time)"


def test_fallback_with_data_label(service, make_session):
    update = service.build_update([make_session()], SourceTier.FALLBACK, "all", now=NOW)
    assert update.data_source == "Local Storage"


def test_same_input_same_output(service, make_session):
    records = [make_session(), make_session(category="places", correct=3)]
    first = service.build_update(records, SourceTier.LIVE, "all", now=NOW)
    second = service.build_update(list(records), SourceTier.LIVE, "all", now=NOW)
    assert first == second


def test_insights_follow_overall(service, make_session):
    update = service.build_update([make_session(total=10, correct=9)], SourceTier.LIVE, "all", now=NOW)
    assert [i.title for i in update.insights] == ["Excellent Accuracy"]


def test_build_summary(service, make_session):
    summary = service.build_summary(
        [make_session(total=10, correct=5, when=datetime(2024, 3, 12, 8, tzinfo=UTC))], now=NOW
    )
    assert summary.overall.accuracy == 50
    assert summary.accuracy_over_time.today == 50
    assert summary.last_updated == NOW


@pytest.mark.asyncio
async def test_get_report_uses_store_tier(service, remote, make_session):
    remote.online = False
    update = await service.get_report("all")
    assert update.tier is SourceTier.FALLBACK
    assert update.labels == ["No Data"]

    remote.online = True
    remote.records = [make_session()]
    update = await service.get_report("all")
    assert update.tier is SourceTier.LIVE
    assert update.labels == ["Sun, Mar 3"]


@pytest.mark.parametrize("mode", ["today", "week", "month", "all", "custom", "recent"])
def test_no_records_series_match_buckets(service, mode):
    update = service.build_update([], SourceTier.CACHED, mode, now=NOW)

    assert len(update.buckets) == len(update.labels) == 1
    for series in update.per_bucket_series.values():
        assert len(series) == len(update.buckets)
    assert update.buckets[0].start <= NOW <= update.buckets[-1].end


def test_no_records_inverted_custom_range_still_has_bucket(service):
    rng = DateRange(start=date(2024, 3, 5), end=date(2024, 3, 1))
    update = service.build_update([], SourceTier.FALLBACK, "custom", rng, now=NOW)

    assert [b.key for b in update.buckets] == ["2024-03-12"]
    assert update.per_bucket_series[CanonicalCategory.PEOPLE] == [0]
