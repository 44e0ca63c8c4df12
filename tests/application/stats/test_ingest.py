import json
from datetime import datetime, timedelta, timezone

import pytest

from memtrack.application.stats.ingest import (
    parse_record,
    parse_records,
    parse_timestamp,
    record_to_dict,
)
from memtrack.domain.stats.errors import MalformedRecord

UTC = timezone.utc
PLUS_TWO = timezone(timedelta(hours=2))


class TestParseTimestamp:
    def test_epoch_milliseconds(self):
        ts = parse_timestamp(1709460000000, UTC)
        assert ts == datetime(2024, 3, 3, 10, 0, tzinfo=UTC)

    def test_numeric_string_is_epoch_milliseconds(self):
        assert parse_timestamp("1709460000000", UTC) == datetime(2024, 3, 3, 10, 0, tzinfo=UTC)

    def test_iso_with_zulu(self):
        assert parse_timestamp("2024-03-03T10:00:00.000Z", UTC) == datetime(
            2024, 3, 3, 10, 0, tzinfo=UTC
        )

    def test_naive_iso_uses_user_timezone(self):
        ts = parse_timestamp("2024-03-03T10:00:00", PLUS_TWO)
        assert ts.utcoffset() == timedelta(hours=2)
        assert ts.astimezone(UTC).hour == 8

    def test_datetime_passthrough(self):
        aware = datetime(2024, 1, 1, tzinfo=UTC)
        assert parse_timestamp(aware, PLUS_TWO) is aware

    @pytest.mark.parametrize("value", [None, "", "yesterday", 0, -5, True, {}, "2024-13-45"])
    def test_rejects_garbage(self, value):
        with pytest.raises(MalformedRecord):
            parse_timestamp(value, UTC)


class TestParseRecord:
    def test_camel_case_fields(self):
        record = parse_record(
            {
                "category": "Category Match",
                "totalQuestions": 10,
                "correctAnswers": 7,
                "skipped": 1,
                "totalTime": 95.5,
                "timestamp": "2024-03-03T10:00:00Z",
            },
            UTC,
        )
        assert record.category == "Category Match"
        assert record.total_questions == 10
        assert record.correct_answers == 7
        assert record.skipped == 1
        assert record.total_time == 95.5

    def test_snake_case_fields(self):
        record = parse_record(
            {"total_questions": 4, "correct_answers": 2, "timestamp": 1709460000000}, UTC
        )
        assert record.total_questions == 4
        assert record.correct_answers == 2

    def test_missing_numbers_count_as_zero(self):
        record = parse_record({"category": "people", "timestamp": 1709460000000}, UTC)
        assert record.total_questions == 0
        assert record.total_time == 0

    def test_created_at_used_when_timestamp_missing(self):
        record = parse_record({"createdAt": 1709460000000, "totalQuestions": 1}, UTC)
        assert record.timestamp == datetime(2024, 3, 3, 10, 0, tzinfo=UTC)

    def test_non_numeric_field_is_malformed(self):
        with pytest.raises(MalformedRecord):
            parse_record({"totalQuestions": "lots", "timestamp": 1709460000000}, UTC)

    def test_negative_field_is_malformed(self):
        with pytest.raises(MalformedRecord):
            parse_record({"skipped": -1, "timestamp": 1709460000000}, UTC)

    def test_correct_above_total_is_kept(self):
        record = parse_record(
            {"totalQuestions": 5, "correctAnswers": 9, "timestamp": 1709460000000}, UTC
        )
        assert record.correct_answers == 9


def test_parse_records_skips_malformed(caplog):
    raws = [
        {"category": "people", "totalQuestions": 3, "timestamp": 1709460000000},
        {"category": "people", "totalQuestions": 3, "timestamp": "not a date"},
        "not even a dict",
    ]
    records = parse_records(raws, UTC)
    assert len(records) == 1
    assert "malformed" in caplog.text.lower()


def test_record_to_dict_round_trips_through_parse(make_session):
    original = make_session(category="places", total=6, correct=5, skipped=1, seconds=42.0)
    data = record_to_dict(original)
    assert data["timestamp"] == 1709460000000
    assert data["totalQuestions"] == 6
    assert parse_record(data, UTC) == original


@pytest.mark.parametrize(
    "field, value",
    [
        ("totalQuestions", float("inf")),
        ("correctAnswers", float("-inf")),
        ("totalTime", float("nan")),
        ("totalTime", float("inf")),
    ],
)
def test_non_finite_field_is_malformed(field, value):
    with pytest.raises(MalformedRecord):
        parse_record({field: value, "timestamp": 1709460000000}, UTC)


def test_overflowing_json_numbers_are_skipped():
    # json.loads turns both spellings into float('inf')
    raws = json.loads(
        '[{"totalQuestions": 1e400, "timestamp": 1709460000000},'
        ' {"totalTime": Infinity, "timestamp": 1709460000000},'
        ' {"totalQuestions": 2, "correctAnswers": 1, "timestamp": 1709460000000}]'
    )
    records = parse_records(raws, UTC)
    assert [r.total_questions for r in records] == [2]


def test_infinite_epoch_timestamp_is_malformed():
    with pytest.raises(MalformedRecord):
        parse_timestamp(float("inf"), UTC)
