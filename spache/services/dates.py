"""UTC calendar-day arithmetic.

Every cache key is a day index: whole UTC days since the epoch. Naive
datetimes are read as UTC and plain dates as UTC midnight, so local time
zones never leak into the arithmetic.
"""

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import NamedTuple

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_DAY = timedelta(days=1)


def _as_utc(ts: datetime | date) -> datetime:
    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            return ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(timezone.utc)
    return datetime(ts.year, ts.month, ts.day, tzinfo=timezone.utc)


def to_utc_midnight(ts: datetime | date) -> datetime:
    """Drop the time-of-day component, keeping the UTC calendar day."""
    utc = _as_utc(ts)
    return datetime(utc.year, utc.month, utc.day, tzinfo=timezone.utc)


def day_index(ts: datetime | date) -> int:
    """Whole UTC days since the epoch (floored, so negative before 1970)."""
    return (_as_utc(ts) - EPOCH) // ONE_DAY


def date_for_day_index(day: int) -> datetime:
    """UTC midnight of the given day index."""
    return EPOCH + timedelta(days=int(day))


def add_days(ts: datetime | date, amount: int) -> datetime:
    return _as_utc(ts) + timedelta(days=amount)


def difference_in_days(left: datetime | date, right: datetime | date) -> int:
    """Whole days from `right` to `left`, floored."""
    return (_as_utc(left) - _as_utc(right)) // ONE_DAY


def iso_date(ts: datetime | date) -> str:
    utc = _as_utc(ts)
    return f"{utc.year:04d}-{utc.month:02d}-{utc.day:02d}"


def iso_month(ts: datetime | date) -> str:
    utc = _as_utc(ts)
    return f"{utc.year:04d}-{utc.month:02d}"


def last_day_of_month(ts: datetime | date) -> datetime:
    utc = to_utc_midnight(ts)
    return utc.replace(day=calendar.monthrange(utc.year, utc.month)[1])


class DateWindow(NamedTuple):
    """Inclusive [start, end] pair of UTC-midnight datetimes."""

    start: datetime
    end: datetime

    @classmethod
    def of(cls, start: datetime | date, end: datetime | date) -> "DateWindow":
        return cls(to_utc_midnight(start), to_utc_midnight(end))

    @property
    def days(self) -> int:
        """Number of calendar days covered, both ends included."""
        return difference_in_days(self.end, self.start) + 1

    def day_indices(self) -> range:
        return range(day_index(self.start), day_index(self.end) + 1)

    def __str__(self) -> str:
        return f"{iso_date(self.start)} - {iso_date(self.end)}"
