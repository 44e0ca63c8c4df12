"""
Ingestion and normalization of raw session records.

Records reach the pipeline from three places (remote API, process cache,
durable JSON) and from older app versions, so field names and timestamp
encodings vary. Everything is normalized here into SessionRecord.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone, tzinfo
from typing import Any

from memtrack.domain.stats.errors import MalformedRecord
from memtrack.domain.stats.models import SessionRecord

logger = logging.getLogger(__name__)

# camelCase (as stored by the app) first, snake_case accepted as well
_FIELD_ALIASES = {
    "total_questions": ("totalQuestions", "total_questions"),
    "correct_answers": ("correctAnswers", "correct_answers"),
    "skipped": ("skipped",),
    "total_time": ("totalTime", "total_time"),
}


def parse_timestamp(value: Any, tz: tzinfo) -> datetime:
    """
    Normalize an epoch-millisecond number or an ISO-8601 string to an aware datetime.

    Naive ISO strings and naive datetimes are interpreted in `tz`.

    Raises:
        MalformedRecord: If the value is missing, zero, negative or unparseable.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=tz)

    if isinstance(value, bool) or value is None:
        raise MalformedRecord(f"Unparseable timestamp: {value!r}")

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise MalformedRecord("Empty timestamp")
        try:
            value = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError as e:
                raise MalformedRecord(f"Unparseable timestamp: {value!r}") from e
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)

    if isinstance(value, (int, float)):
        if value <= 0:
            raise MalformedRecord(f"Non-positive epoch timestamp: {value!r}")
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedRecord(f"Epoch timestamp out of range: {value!r}") from e

    raise MalformedRecord(f"Unparseable timestamp: {value!r}")


def _number(raw: Mapping[str, Any], field: str) -> float:
    for key in _FIELD_ALIASES[field]:
        if key in raw and raw[key] is not None:
            value = raw[key]
            break
    else:
        # Absent fields contribute nothing
        return 0

    if isinstance(value, bool):
        raise MalformedRecord(f"{field} is not numeric: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise MalformedRecord(f"{field} is not numeric: {value!r}") from e
    if not math.isfinite(number) or number < 0:
        raise MalformedRecord(f"{field} must be a finite, non-negative number: {value!r}")
    return number


def parse_record(raw: Mapping[str, Any], tz: tzinfo) -> SessionRecord:
    """
    Build a SessionRecord from a raw mapping.

    Raises:
        MalformedRecord: If the timestamp or any present numeric field is invalid.
    """
    if not isinstance(raw, Mapping):
        raise MalformedRecord(f"Session record is not a mapping: {type(raw).__name__}")

    stamp = raw.get("timestamp")
    if stamp in (None, "", 0):
        stamp = raw.get("createdAt")

    category = raw.get("category")
    return SessionRecord(
        category=category if isinstance(category, str) else "",
        total_questions=int(_number(raw, "total_questions")),
        correct_answers=int(_number(raw, "correct_answers")),
        skipped=int(_number(raw, "skipped")),
        total_time=_number(raw, "total_time"),
        timestamp=parse_timestamp(stamp, tz),
    )


def parse_records(raws: Iterable[Any], tz: tzinfo) -> list[SessionRecord]:
    """
    Normalize a batch of raw records, skipping malformed ones.

    SessionRecord instances are passed through untouched.
    """
    records: list[SessionRecord] = []
    skipped = 0
    for raw in raws:
        if isinstance(raw, SessionRecord):
            records.append(raw)
            continue
        try:
            records.append(parse_record(raw, tz))
        except MalformedRecord as e:
            skipped += 1
            logger.warning(f"Skipping malformed session record: {e}")

    if skipped:
        logger.debug(f"Ingested {len(records)} records, skipped {skipped}")
    return records


def record_to_dict(record: SessionRecord) -> dict[str, Any]:
    """Serialize a record the way the app stores it: camelCase, epoch milliseconds."""
    return {
        "category": record.category,
        "totalQuestions": record.total_questions,
        "correctAnswers": record.correct_answers,
        "skipped": record.skipped,
        "totalTime": record.total_time,
        "timestamp": int(round(record.timestamp.timestamp() * 1000)),
    }
