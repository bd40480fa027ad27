from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .config import Settings
from .errors import ConfigurationError, UpstreamError
from .models import WeatherReport

logger = logging.getLogger(__name__)


class OpenWeatherClient:
    """
    Async wrapper around the OpenWeatherMap current weather endpoint.

    The API key is checked on every call rather than at construction, so a
    missing key only degrades this client and never prevents startup.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=settings.upstream_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self._settings.openweathermap_api_key)

    async def current_weather(self, location: str, units: str) -> WeatherReport:
        """
        Fetch the current weather for `location` and normalize the payload.

        Raises ConfigurationError when no API key is set and UpstreamError
        when the API answers with anything but `cod == 200`.
        """
        if not self.configured:
            raise ConfigurationError("Server configuration error: Weather API key missing.")

        params = {
            "q": location,
            "appid": self._settings.openweathermap_api_key,
            "units": units,
        }
        try:
            response = await self._http.get(self._settings.weather_api_url, params=params)
        except httpx.HTTPError as e:
            raise UpstreamError(str(e) or e.__class__.__name__) from e

        data = _json_body(response)
        if response.is_error:
            raise UpstreamError(
                data.get("message") or f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        # OpenWeatherMap reports `cod` as an int on success and a string on errors.
        if str(data.get("cod")) != "200":
            raise UpstreamError(
                f"Weather API error: {data.get('message') or 'Unknown error'}",
                status_code=response.status_code,
            )

        main_weather = (data.get("weather") or [{}])[0] or {}
        main_temp = data.get("main") or {}
        wind = data.get("wind") or {}

        return WeatherReport(
            location_found=data.get("name"),
            description=main_weather.get("description") or "Unknown",
            temperature=main_temp.get("temp") or 0,
            feels_like=main_temp.get("feels_like") or 0,
            humidity_percent=main_temp.get("humidity") or 0,
            wind_speed=wind.get("speed") or 0,
            units=units,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()


def _json_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
