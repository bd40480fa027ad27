from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class WeatherReport(BaseModel):
    """Normalized current-weather result returned by `get_current_weather`."""

    location_found: Optional[str] = None
    description: str = "Unknown"
    temperature: Union[int, float] = 0
    feels_like: Union[int, float] = 0
    humidity_percent: Union[int, float] = 0
    wind_speed: Union[int, float] = 0
    units: str


class LocationInfo(BaseModel):
    """
    Normalized top geocoding hit returned by `find_location_info`.

    `class` is a Python keyword, so the field is `class_` and is serialized
    under its alias; dump with `by_alias=True`.
    """

    model_config = ConfigDict(populate_by_name=True)

    place_id: Optional[int] = None
    licence: Optional[str] = None
    osm_type: Optional[str] = None
    osm_id: Optional[int] = None
    boundingbox: Optional[List[str]] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    display_name: Optional[str] = None
    class_: Optional[str] = Field(default=None, alias="class")
    type: Optional[str] = None
    importance: Optional[float] = None
