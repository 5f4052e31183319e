"""Split arbitrary date spans into feed-sized windows for backfill."""

from datetime import date, datetime

from spache.services.dates import DateWindow, add_days, to_utc_midnight

WINDOW_STEP_DAYS = 7


def split(start: datetime | date, end: datetime | date) -> list[DateWindow]:
    """Consecutive, gap-free, non-overlapping windows covering [start, end].

    Each window holds at most 7 calendar days, so every one of them is a
    valid single feed request. The last window is clamped to `end`.
    """
    cursor = to_utc_midnight(start)
    end = to_utc_midnight(end)

    windows = []
    while cursor <= end:
        windows.append(DateWindow(cursor, min(add_days(cursor, WINDOW_STEP_DAYS - 1), end)))
        cursor = add_days(cursor, WINDOW_STEP_DAYS)
    return windows
