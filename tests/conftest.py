from __future__ import annotations

from typing import Any, Callable, Dict, List

import httpx
import pytest

from openweather_mcp.config import Settings
from openweather_mcp.main import create_runtime

WEATHER_OK: Dict[str, Any] = {
    "cod": 200,
    "name": "Tokyo",
    "weather": [{"main": "Clouds", "description": "broken clouds"}],
    "main": {"temp": 18.4, "feels_like": 17.9, "humidity": 72},
    "wind": {"speed": 3.6},
}

NOMINATIM_HIT: Dict[str, Any] = {
    "place_id": 297876398,
    "licence": "Data (c) OpenStreetMap contributors, ODbL 1.0. http://osm.org/copyright",
    "osm_type": "way",
    "osm_id": 32965412,
    "boundingbox": ["40.6891", "40.6894", "-74.0447", "-74.0443"],
    "lat": "40.689253199999996",
    "lon": "-74.04454817144321",
    "display_name": "Statue of Liberty, Flagpole Plaza, Manhattan, New York, United States",
    "class": "tourism",
    "type": "attraction",
    "importance": 0.79,
}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        OPENWEATHERMAP_API_KEY="test-key",
        sse_keepalive_seconds=0.05,
    )


class UpstreamStub:
    """
    Records upstream requests and answers them from per-host handlers.

    Handlers receive the httpx.Request and return an httpx.Response.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.weather: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json=WEATHER_OK)
        )
        self.geocoding: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json=[NOMINATIM_HIT])
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "api.openweathermap.org":
            return self.weather(request)
        if request.url.host == "nominatim.openstreetmap.org":
            return self.geocoding(request)
        return httpx.Response(404, json={"message": "unexpected host"})


@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture
def runtime(settings, upstream):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    return create_runtime(settings, http_client=http_client)


@pytest.fixture
def registry(runtime):
    return runtime.registry
