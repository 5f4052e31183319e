"""Shared fixtures: a throwaway SQLite day store and a fake NEO feed."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from datetime import date, timedelta
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from spache.services.day_store import DayStore
from spache.services.neo_api import NeoApiClient

UPSTREAM_BASE = "https://api.nasa.gov/neo/rest/v1"
API_KEY = "test-key"  # pragma: allowlist secret


def run(coro):
    """Drive a coroutine to completion from a sync test or fixture."""
    return asyncio.run(coro)


def make_neo(neo_id: str, km_max: float | None = 0.1, approaches: list[dict] | None = None) -> dict:
    """Close-approach object shaped like the NeoWs feed returns it."""
    neo = {
        "id": neo_id,
        "name": f"({neo_id})",
        "absolute_magnitude_h": 22.1,
        "is_potentially_hazardous_asteroid": False,
        "is_sentry_object": False,
        "close_approach_data": approaches
        if approaches is not None
        else [
            {
                "close_approach_date": "2024-01-01",
                "relative_velocity": {"kilometers_per_second": "12.5"},
                "miss_distance": {"astronomical": "0.25"},
                "orbiting_body": "Earth",
            }
        ],
    }
    if km_max is not None:
        neo["estimated_diameter"] = {
            "kilometers": {"estimated_diameter_min": km_max / 2, "estimated_diameter_max": km_max}
        }
    return neo


class FakeFeed:
    """Serves /feed from a {ISO date: [objects]} table and records each request."""

    def __init__(self, objects_by_date: dict[str, list] | None = None):
        self.objects_by_date = objects_by_date or {}
        self.requests: list[tuple[str, str]] = []
        self.status_code = 200
        self.error_body = "Bad request"

    def handler(self, request: httpx.Request) -> httpx.Response:
        params = parse_qs(urlsplit(str(request.url)).query)
        start, end = params["start_date"][0], params["end_date"][0]
        self.requests.append((start, end))

        if self.status_code != 200:
            return httpx.Response(self.status_code, text=self.error_body)

        first, last = date.fromisoformat(start), date.fromisoformat(end)
        neos = {}
        day = first
        while day <= last:
            key = day.isoformat()
            if key in self.objects_by_date:
                neos[key] = self.objects_by_date[key]
            day += timedelta(days=1)

        link = f"{UPSTREAM_BASE}/feed?start_date={{}}&end_date={{}}&detailed=false&api_key={API_KEY}"
        shift = last - first
        return httpx.Response(
            200,
            json={
                "links": {
                    "next": link.format(first + shift, last + shift),
                    "self": link.format(first, last),
                    "prev": link.format(first - shift, last - shift),
                },
                "element_count": sum(len(v) for v in neos.values()),
                "near_earth_objects": neos,
            },
        )


@pytest.fixture
def store(tmp_path) -> DayStore:
    day_store = DayStore(f"sqlite:///{tmp_path / 'cache.db'}")
    day_store.create_schema()
    return day_store


@pytest.fixture
def feed() -> FakeFeed:
    return FakeFeed()


@pytest.fixture
def neo_api(feed: FakeFeed) -> Iterator[NeoApiClient]:
    client = NeoApiClient(api_key=API_KEY, base_url=UPSTREAM_BASE, transport=httpx.MockTransport(feed.handler))
    yield client
    run(client.aclose())
