"""
Time bucket construction for each period mode.

Several modes anchor to the data rather than the wall clock: `week` and
`month` start at the earliest recorded session so a new user sees their
activity ramp from day one, and `all` only emits days that have sessions.
Buckets are built fresh on every query.
"""

import logging
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta, tzinfo

import tzlocal

from memtrack.domain.constants import (
    MONTH_BUCKET_COUNT,
    RECENT_BUCKET_DAYS,
    WEEK_BUCKET_DAYS,
)
from memtrack.domain.stats.models import DateRange, PeriodMode, SessionRecord, TimeBucket

logger = logging.getLogger(__name__)

# Buckets close at 23:59:59.999 local time, inclusive
_END_OFFSET = timedelta(milliseconds=1)


def local_tz() -> tzinfo:
    """The system's IANA timezone, honouring $TZ."""
    return tzlocal.get_localzone()


def start_of_day(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def end_of_day(day: date, tz: tzinfo) -> datetime:
    return start_of_day(day + timedelta(days=1), tz) - _END_OFFSET


def _add_months(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def _day_label(day: date) -> str:
    # e.g. "Sat, Oct 5"
    return f"{day:%a}, {day:%b} {day.day}"


def _short_day_label(day: date) -> str:
    return f"{day:%b} {day.day}"


def day_bucket(day: date, tz: tzinfo, short_label: bool = False) -> TimeBucket:
    return TimeBucket(
        key=day.isoformat(),
        label=_short_day_label(day) if short_label else _day_label(day),
        start=start_of_day(day, tz),
        end=end_of_day(day, tz),
    )


def month_bucket(year: int, month: int, tz: tzinfo) -> TimeBucket:
    first = date(year, month, 1)
    next_year, next_month = _add_months(year, month, 1)
    return TimeBucket(
        key=f"{year:04d}-{month:02d}",
        label=f"{first:%b}",
        start=start_of_day(first, tz),
        end=start_of_day(date(next_year, next_month, 1), tz) - _END_OFFSET,
    )


def earliest_local_date(records: Sequence[SessionRecord], tz: tzinfo) -> date:
    return min(r.timestamp for r in records).astimezone(tz).date()


def build_buckets(
    mode: PeriodMode | str,
    records: Sequence[SessionRecord],
    *,
    custom_range: DateRange | None = None,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[TimeBucket]:
    """
    Build the ordered bucket list for a period mode.

    Args:
        mode: Period mode; unrecognized values fall back to the last 7 days.
        records: Sessions currently available. `week`, `month` and `all`
            derive their buckets from these.
        custom_range: Inclusive dates for the custom mode. Missing bounds mean today.
        now: Reference instant for "today". Defaults to the current time.
        tz: Timezone for calendar boundaries. Defaults to the system timezone.

    Returns:
        Disjoint buckets in chronological order.
    """
    tz = tz or local_tz()
    now = now or datetime.now(tz)
    today = now.astimezone(tz).date()
    mode = PeriodMode.parse(mode)

    if mode is PeriodMode.TODAY:
        return [day_bucket(today, tz)]

    if mode is PeriodMode.WEEK:
        if not records:
            return [day_bucket(today, tz)]
        anchor = earliest_local_date(records, tz)
        return [day_bucket(anchor + timedelta(days=i), tz) for i in range(WEEK_BUCKET_DAYS)]

    if mode is PeriodMode.MONTH:
        if not records:
            return [month_bucket(today.year, today.month, tz)]
        anchor = earliest_local_date(records, tz)
        return [
            month_bucket(*_add_months(anchor.year, anchor.month, i), tz)
            for i in range(MONTH_BUCKET_COUNT)
        ]

    if mode is PeriodMode.ALL:
        days = sorted({r.timestamp.astimezone(tz).date() for r in records})
        logger.debug(f"All time: {len(days)} distinct session dates")
        return [day_bucket(d, tz) for d in days]

    if mode is PeriodMode.CUSTOM:
        custom_range = custom_range or DateRange()
        start = custom_range.start or today
        end = custom_range.end or today
        if end < start:
            logger.debug(f"Custom range ends before it starts: {start} > {end}")
            return []
        span = (end - start).days
        return [day_bucket(start + timedelta(days=i), tz, short_label=True) for i in range(span + 1)]

    # Default: last 7 days ending today
    return [
        day_bucket(today - timedelta(days=i), tz)
        for i in range(RECENT_BUCKET_DAYS - 1, -1, -1)
    ]
