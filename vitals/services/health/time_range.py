"""Time ranges and their resolution into absolute date intervals."""

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Optional

from dateutil import tz as dateutil_tz
from dateutil.relativedelta import relativedelta

from .base import DateInterval, SamplePredicate


class TimeRangeKind(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_DAYS = "last_days"
    LAST_WEEK = "last_week"
    LAST_MONTH = "last_month"
    CUSTOM = "custom"


@dataclass(frozen=True)
class TimeRange:
    """Abstract time specification for a query.

    Build instances with the class methods, e.g. ``TimeRange.today()`` or
    ``TimeRange.last_days(7)``.
    """

    kind: TimeRangeKind
    days: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def today(cls) -> "TimeRange":
        return cls(TimeRangeKind.TODAY)

    @classmethod
    def yesterday(cls) -> "TimeRange":
        return cls(TimeRangeKind.YESTERDAY)

    @classmethod
    def last_days(cls, n: int) -> "TimeRange":
        if n < 0:
            raise ValueError(f"last_days requires a non-negative day count, got {n}")
        return cls(TimeRangeKind.LAST_DAYS, days=n)

    @classmethod
    def last_week(cls) -> "TimeRange":
        return cls(TimeRangeKind.LAST_WEEK)

    @classmethod
    def last_month(cls) -> "TimeRange":
        return cls(TimeRangeKind.LAST_MONTH)

    @classmethod
    def custom(cls, start: datetime, end: datetime) -> "TimeRange":
        return cls(TimeRangeKind.CUSTOM, start=start, end=end)

    def resolve(self, now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> DateInterval:
        return resolve(self, now=now, tz=tz)


def local_now(tz: Optional[tzinfo] = None) -> datetime:
    """Current moment as an aware datetime in ``tz`` or the system zone.

    The system zone is a DST-aware ``tzlocal``, so day boundaries derived
    from the result follow local midnight on transition days.
    """
    return datetime.now(tz if tz is not None else dateutil_tz.tzlocal())


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def resolve(
    time_range: TimeRange, now: Optional[datetime] = None, tz: Optional[tzinfo] = None
) -> DateInterval:
    """Turn a time range into an absolute ``[start, end)`` interval.

    ``today`` and ``yesterday`` are aligned to calendar days of ``now``'s
    time zone; ``last_days``, ``last_week`` and ``last_month`` are sliding
    windows ending at ``now``. Custom ranges are returned as given, even
    when inverted.

    Args:
        time_range: Range to resolve.
        now: Anchor moment. Sampled once from the local calendar if omitted.
        tz: Time zone used when sampling ``now``.
    """
    if time_range.kind == TimeRangeKind.CUSTOM:
        return DateInterval(start=time_range.start, end=time_range.end)

    if now is None:
        now = local_now(tz)

    if time_range.kind == TimeRangeKind.TODAY:
        return DateInterval(start=start_of_day(now), end=now)

    if time_range.kind == TimeRangeKind.YESTERDAY:
        return DateInterval(start=start_of_day(now - timedelta(days=1)), end=start_of_day(now))

    if time_range.kind == TimeRangeKind.LAST_DAYS:
        return DateInterval(start=now - timedelta(days=time_range.days), end=now)

    if time_range.kind == TimeRangeKind.LAST_WEEK:
        return DateInterval(start=now - timedelta(days=7), end=now)

    if time_range.kind == TimeRangeKind.LAST_MONTH:
        return DateInterval(start=now - relativedelta(months=1), end=now)

    raise ValueError(f"Unsupported time range: {time_range.kind}")


def to_predicate(interval: DateInterval) -> SamplePredicate:
    """Strict-start store predicate for an interval."""
    return SamplePredicate(start=interval.start, end=interval.end, strict_start=True)
