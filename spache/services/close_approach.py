"""Feed proxy backed by the day cache.

Serves a feed-shaped result for [start, end] from the day store when every
day is cached, otherwise from the NEO feed, caching the fetched days
write-behind. Navigation links always point back at this service.
"""

import logging
from datetime import date, datetime
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from spache.services.dates import DateWindow, add_days, date_for_day_index, difference_in_days, iso_date
from spache.services.day_store import DayStore
from spache.services.neo_api import FEED_PATH, NeoApiClient, neos_by_day
from spache.services.write_behind import WriteBehind

logger = logging.getLogger(__name__)

# Same path layout as the upstream API so rewritten links stay valid here
FEED_ROUTE_PREFIX = "/neo/rest/v1"

# Query params never handed back to clients
STRIPPED_PARAMS = {"api_key", "detailed"}


def rewrite_link(origin: str, link: str) -> str:
    """Point an upstream link at `origin`, dropping credentials and `detailed`."""
    own = urlsplit(origin)
    url = urlsplit(link)
    query = [(k, v) for k, v in parse_qsl(url.query, keep_blank_values=True) if k not in STRIPPED_PARAMS]
    return urlunsplit((own.scheme, own.netloc, url.path, urlencode(query), url.fragment))


def feed_link(origin: str, window: DateWindow) -> str:
    query = urlencode({"start_date": iso_date(window.start), "end_date": iso_date(window.end)})
    return f"{origin}{FEED_ROUTE_PREFIX}{FEED_PATH}?{query}"


def build_feed_result(origin: str, window: DateWindow, by_day: dict[int, list]) -> dict:
    """Assemble a feed result from cached day records."""
    # Neighbours share their boundary day, as upstream feed links do
    shift = difference_in_days(window.end, window.start)
    objects_by_date = {}
    element_count = 0
    for day in sorted(by_day):
        objects = by_day[day]
        element_count += len(objects)
        objects_by_date[iso_date(date_for_day_index(day))] = objects

    return {
        "links": {
            "next": feed_link(origin, DateWindow(add_days(window.start, shift), add_days(window.end, shift))),
            "self": feed_link(origin, window),
            "prev": feed_link(origin, DateWindow(add_days(window.start, -shift), add_days(window.end, -shift))),
        },
        "element_count": element_count,
        "near_earth_objects": objects_by_date,
    }


class CloseApproachService:
    def __init__(self, origin: str, neo_api: NeoApiClient, store: DayStore, writer: WriteBehind | None = None):
        self.origin = origin.rstrip("/")
        self.neo_api = neo_api
        self.store = store
        self.writer = writer if writer is not None else WriteBehind(store)

    async def query_by_date_range(self, start: datetime | date, end: datetime | date) -> dict:
        window = DateWindow.of(start, end)

        cached = await self.store.query_range(window.start, window.end)
        if cached is not None:
            return build_feed_result(self.origin, window, cached)

        logger.info("Cache miss for %s", window)
        payload = await self.neo_api.fetch_window(window.start, window.end)
        objects_by_date = payload.get("near_earth_objects") or {}

        self.writer.submit(neos_by_day(window, objects_by_date), label=str(window))

        links = {key: rewrite_link(self.origin, link) for key, link in (payload.get("links") or {}).items()}
        return {
            "links": links,
            "element_count": payload.get("element_count", sum(len(v) for v in objects_by_date.values())),
            "near_earth_objects": objects_by_date,
        }
