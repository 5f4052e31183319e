"""Tests for the NEO feed client."""

from datetime import date, datetime, timezone

import httpx
import pytest
from conftest import API_KEY, FakeFeed, make_neo

from spache.errors import UpstreamError, ValidationError
from spache.services.dates import DateWindow, day_index
from spache.services.neo_api import NeoApiClient, neos_by_day


class TestFetchWindow:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("span", range(0, 8))
    async def test_accepts_spans_up_to_seven_days(self, neo_api: NeoApiClient, feed: FakeFeed, span: int) -> None:
        end = date(2024, 1, 1 + span)
        payload = await neo_api.fetch_window(date(2024, 1, 1), end)

        assert "near_earth_objects" in payload
        assert feed.requests == [("2024-01-01", end.isoformat())]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("span", [8, 9, 30])
    async def test_rejects_eight_days_or_more_without_calling(
        self, neo_api: NeoApiClient, feed: FakeFeed, span: int
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await neo_api.fetch_window(date(2024, 1, 1), date(2024, 1, 1 + span))

        assert exc_info.value.status_code == 400
        assert feed.requests == []

    @pytest.mark.asyncio
    async def test_normalizes_to_utc_midnight(self, neo_api: NeoApiClient, feed: FakeFeed) -> None:
        # 7 days and 23 hours apart, but only 7 calendar days
        start = datetime(2024, 1, 1, 0, 30, tzinfo=timezone.utc)
        end = datetime(2024, 1, 8, 23, 30, tzinfo=timezone.utc)

        await neo_api.fetch_window(start, end)

        assert feed.requests == [("2024-01-01", "2024-01-08")]

    @pytest.mark.asyncio
    async def test_sends_api_key(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return httpx.Response(200, json={"links": {}, "element_count": 0, "near_earth_objects": {}})

        client = NeoApiClient(api_key=API_KEY, base_url="https://neo.example/v1/", transport=httpx.MockTransport(handler))
        await client.fetch_window(date(2024, 1, 1), date(2024, 1, 2))

        assert seen[0].path == "/v1/feed"
        assert seen[0].params["api_key"] == API_KEY
        assert seen[0].params["start_date"] == "2024-01-01"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_returns_payload_untouched(self, neo_api: NeoApiClient, feed: FakeFeed) -> None:
        neo = make_neo("1")
        feed.objects_by_date = {"2024-01-02": [neo]}

        payload = await neo_api.fetch_window(date(2024, 1, 1), date(2024, 1, 3))

        assert payload["near_earth_objects"] == {"2024-01-02": [neo]}
        assert payload["element_count"] == 1

    @pytest.mark.asyncio
    async def test_non_success_raises_upstream_error(self, neo_api: NeoApiClient, feed: FakeFeed) -> None:
        feed.status_code = 429
        feed.error_body = "OVER_RATE_LIMIT"

        with pytest.raises(UpstreamError) as exc_info:
            await neo_api.fetch_window(date(2024, 1, 1), date(2024, 1, 2))

        assert exc_info.value.upstream_status == 429
        assert exc_info.value.body == "OVER_RATE_LIMIT"
        assert "429" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_error_body_falls_back_to_reason(self) -> None:
        client = NeoApiClient(api_key=API_KEY, transport=httpx.MockTransport(lambda request: httpx.Response(503)))

        with pytest.raises(UpstreamError) as exc_info:
            await client.fetch_window(date(2024, 1, 1), date(2024, 1, 2))

        assert exc_info.value.upstream_status == 503
        assert exc_info.value.body == "Service Unavailable"

    @pytest.mark.asyncio
    async def test_transport_failure_raises_upstream_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = NeoApiClient(api_key=API_KEY, transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamError) as exc_info:
            await client.fetch_window(date(2024, 1, 1), date(2024, 1, 2))

        assert exc_info.value.upstream_status is None
        assert exc_info.value.status_code == 502


class TestNeosByDay:
    def test_fills_every_day_of_window(self) -> None:
        window = DateWindow.of(date(2024, 1, 1), date(2024, 1, 7))
        neo = make_neo("1")

        by_day = neos_by_day(window, {"2024-01-03": [neo]})

        assert sorted(by_day) == list(window.day_indices())
        assert by_day[day_index(date(2024, 1, 3))] == [neo]
        assert sum(len(v) for v in by_day.values()) == 1

    def test_ignores_dates_outside_window(self) -> None:
        window = DateWindow.of(date(2024, 1, 1), date(2024, 1, 2))

        by_day = neos_by_day(window, {"2024-01-05": [make_neo("1")]})

        assert by_day == {day_index(date(2024, 1, 1)): [], day_index(date(2024, 1, 2)): []}
