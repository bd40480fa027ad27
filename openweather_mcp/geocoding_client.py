from __future__ import annotations

from typing import Optional

import httpx

from .config import Settings
from .errors import UpstreamError
from .models import LocationInfo


class NominatimClient:
    """
    Token-free geocoding via OSM Nominatim.

    Nominatim requires an identifying User-Agent header on every request.
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

    async def search(self, query: str) -> LocationInfo:
        """Return the top search hit for `query`."""
        params = {"q": query, "format": "json", "limit": 1}
        headers = {"User-Agent": self._settings.geocoding_user_agent}

        try:
            response = await self._http.get(
                self._settings.geocoding_api_url,
                params=params,
                headers=headers,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(_error_message(e.response), status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            raise UpstreamError(str(e) or e.__class__.__name__) from e
        except ValueError as e:
            raise UpstreamError(f"Invalid JSON from geocoding API: {e}") from e

        if not isinstance(data, list) or not data:
            raise UpstreamError(f"No results found for '{query}'")

        top = data[0]
        try:
            return LocationInfo(
                place_id=top.get("place_id"),
                licence=top.get("licence"),
                osm_type=top.get("osm_type"),
                osm_id=top.get("osm_id"),
                boundingbox=top.get("boundingbox"),
                latitude=top.get("lat"),
                longitude=top.get("lon"),
                display_name=top.get("display_name"),
                class_=top.get("class"),
                type=top.get("type"),
                importance=top.get("importance"),
            )
        except (AttributeError, TypeError, ValueError) as e:
            # pydantic.ValidationError is a ValueError
            raise UpstreamError(f"Unexpected geocoding response: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"
