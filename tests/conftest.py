"""Shared fixtures: a fake Cities provider behind httpx.MockTransport and the app wired to it."""

from __future__ import annotations

import datetime as dt
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from cityinfo.cities import CitiesClient
from cityinfo.infos import local_today
from cityinfo.main import create_app
from cityinfo.recipes import RecipeStore

BASE_URL = "http://cities.test"
API_KEY = "test-key"


def insights(lat: float, lon: float, population: Any, known_for: List[str]) -> Dict[str, Any]:
    return {
        "coordinates": [{"latitude": lat, "longitude": lon}, {"latitude": 0.0, "longitude": 0.0}],
        "population": population,
        "knownFor": [{"id": i, "content": c} for i, c in enumerate(known_for)],
    }


def predictions(today: dt.date, days: int = 3) -> List[Dict[str, Any]]:
    return [
        {
            "date": (today + dt.timedelta(days=i)).isoformat(),
            "minTemperature": 10.0 + i,
            "maxTemperature": 18.5 + i,
        }
        for i in range(days)
    ]


class FakeCitiesProvider:
    """Request handler standing in for the Cities provider.

    Tests tweak the attributes to simulate missing cities, failures and
    malformed payloads. Every request is recorded in `requests`.
    """

    def __init__(self) -> None:
        today = local_today()
        self.cities: Dict[str, Dict[str, Any]] = {
            "paris": insights(48.8566, 2.3522, 2148327, ["croissants", "révolutions", "mode"]),
            "lyon": insights(45.764, 4.8357, "513275", ["bouchons"]),
        }
        self.weather: Dict[str, Any] = {
            "paris": [{"cityIdentifier": "paris", "predictions": predictions(today)}],
            "lyon": [{"cityIdentifier": "lyon", "predictions": predictions(today)}],
        }
        self.insights_status: Optional[int] = None
        self.weather_status: Optional[int] = None
        self.raise_on: Optional[str] = None
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if self.raise_on and self.raise_on in path:
            raise httpx.ConnectError("connection refused", request=request)

        if path.startswith("/cities/") and path.endswith("/insights"):
            city_id = path[len("/cities/"):-len("/insights")]
            if self.insights_status is not None:
                return httpx.Response(self.insights_status, json={"message": "boom"})
            if city_id not in self.cities:
                return httpx.Response(404, json={"message": "City not found"})
            return httpx.Response(200, json=self.cities[city_id])

        if path == "/weather-predictions":
            if self.weather_status is not None:
                return httpx.Response(self.weather_status, json={"message": "boom"})
            city_id = request.url.params.get("cityIdentifier", "")
            return httpx.Response(200, json=self.weather.get(city_id, []))

        return httpx.Response(404)


@pytest.fixture
def provider() -> FakeCitiesProvider:
    return FakeCitiesProvider()


@pytest.fixture
def cities(provider: FakeCitiesProvider) -> CitiesClient:
    return CitiesClient(base_url=BASE_URL, api_key=API_KEY, timeout=1.0, transport=httpx.MockTransport(provider))


@pytest.fixture
def store() -> RecipeStore:
    return RecipeStore()


@pytest_asyncio.fixture
async def client(store: RecipeStore, cities: CitiesClient) -> AsyncIterator[AsyncClient]:
    app = create_app(recipes=store, cities=cities)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
