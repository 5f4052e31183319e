"""Largest close-approach object per calendar month.

Spans longer than one feed window are backfilled by fetching every
7-day window concurrently. There is no cap on the span, so a request
covering years fans out into that many parallel upstream calls.
"""

import asyncio
import logging
import math
from datetime import date, datetime

import pandas as pd

from spache.services.dates import DateWindow, date_for_day_index, iso_month
from spache.services.day_store import DayStore
from spache.services.neo_api import NeoApiClient, neos_by_day
from spache.services.windows import split
from spache.services.write_behind import WriteBehind

logger = logging.getLogger(__name__)


def estimated_size_km(neo: dict) -> float:
    """Upper kilometre diameter estimate, -inf when the object has none."""
    try:
        value = neo["estimated_diameter"]["kilometers"]["estimated_diameter_max"]
        size = float(value)
    except (KeyError, TypeError, ValueError):
        return -math.inf
    return size if not math.isnan(size) else -math.inf


def largest_by_month(by_day: dict[int, list]) -> dict[str, dict]:
    """Pick each month's largest object; the earliest one wins ties."""
    rows = []
    neos = []
    for day in sorted(by_day):
        month = iso_month(date_for_day_index(day))
        for neo in by_day[day]:
            rows.append({"month": month, "size": estimated_size_km(neo), "neo": len(neos)})
            neos.append(neo)

    if not rows:
        return {}

    df = pd.DataFrame(rows)
    # idxmax returns the first row holding the maximum, rows are in day order
    winners = df.groupby("month", sort=True)["size"].idxmax()
    return {month: neos[int(df.at[idx, "neo"])] for month, idx in winners.items()}


class CloseApproachAggregationsService:
    def __init__(self, neo_api: NeoApiClient, store: DayStore, writer: WriteBehind | None = None):
        self.neo_api = neo_api
        self.store = store
        self.writer = writer if writer is not None else WriteBehind(store)

    async def get_monthly_largest(self, start: datetime | date, end: datetime | date) -> dict[str, dict]:
        """Map of ISO month to the largest object approaching within [start, end]."""
        window = DateWindow.of(start, end)

        by_day = await self.store.query_range(window.start, window.end)
        if by_day is None:
            logger.info("Aggregation data not completely in cache for %s", window)
            by_day = await self._backfill(window)

        return largest_by_month(by_day)

    async def _backfill(self, window: DateWindow) -> dict[int, list]:
        windows = split(window.start, window.end)
        payloads = await asyncio.gather(*[self.neo_api.fetch_window(w.start, w.end) for w in windows])

        by_day: dict[int, list] = {}
        for w, payload in zip(windows, payloads):
            by_day.update(neos_by_day(w, payload.get("near_earth_objects") or {}))

        self.writer.submit(by_day, label=str(window))
        return by_day
