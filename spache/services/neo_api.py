"""NASA NeoWs feed client.

The feed endpoint answers at most 8 calendar days per request (start and
end inclusive). Longer spans have to be split by the caller, see
services/windows.py.
"""

import logging
from datetime import date, datetime

import httpx

from spache.errors import UpstreamError, ValidationError
from spache.services.dates import DateWindow, day_index, difference_in_days, iso_date

logger = logging.getLogger(__name__)

FEED_PATH = "/feed"

# end - start must stay strictly below this many days
MAX_WINDOW_DAYS = 8


class NeoApiClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.nasa.gov/neo/rest/v1",
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def fetch_window(self, start: datetime | date, end: datetime | date) -> dict:
        """Fetch one feed window and return the upstream JSON untouched.

        Raises:
            ValidationError: the window spans 8 days or more; nothing is fetched.
            UpstreamError: non-2xx response or transport failure.
        """
        window = DateWindow.of(start, end)
        if difference_in_days(window.end, window.start) >= MAX_WINDOW_DAYS:
            raise ValidationError(
                f"NEO API allows querying at most {MAX_WINDOW_DAYS} days at once, got {window}"
            )

        logger.info("Querying NEO feed: %s", window)
        try:
            resp = await self._client.get(
                f"{self.base_url}{FEED_PATH}",
                params={
                    "start_date": iso_date(window.start),
                    "end_date": iso_date(window.end),
                    "api_key": self.api_key,
                },
            )
        except httpx.HTTPError as e:
            logger.error("NEO feed request failed for %s: %s", window, e)
            raise UpstreamError(None, str(e)) from e

        if not resp.is_success:
            try:
                body = resp.text or resp.reason_phrase
            except (httpx.HTTPError, UnicodeDecodeError):
                body = "<unreadable response body>"
            raise UpstreamError(resp.status_code, body)

        return resp.json()

    async def aclose(self) -> None:
        await self._client.aclose()


def neos_by_day(window: DateWindow, objects_by_date: dict[str, list]) -> dict[int, list]:
    """Reindex a feed's ISO-date map by day index over the whole window.

    Days the feed left out come back as empty lists so that they get cached
    as "nothing that day" instead of staying unknown.
    """
    by_day = {day: [] for day in window.day_indices()}
    for key, objects in (objects_by_date or {}).items():
        day = day_index(date.fromisoformat(key))
        if day in by_day:
            by_day[day] = list(objects)
        else:
            logger.warning("Feed returned %s outside requested window %s, ignoring", key, window)
    return by_day
