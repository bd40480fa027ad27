from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

Units = Literal["metric", "imperial", "standard"]


class WeatherArguments(BaseModel):
    """
    Input schema for `get_current_weather`.

    Unknown keys are ignored; `units` falls back to "metric" when omitted.
    """

    location: str = Field(
        description='The city and state/country, e.g., "San Francisco, CA" or "London, UK"',
    )
    units: Units = Field(
        default="metric",
        description=(
            "Units for temperature (metric=Celsius, imperial=Fahrenheit, "
            "standard=Kelvin). Defaults to metric."
        ),
    )


class LocationQueryArguments(BaseModel):
    """Input schema for `find_location_info`."""

    query: str = Field(
        description='The place name or address to search for, e.g., "Eiffel Tower"',
    )
