from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import ConfigurationError, ToolExecutionError, UpstreamError
from ..models import WeatherArguments
from ..weather_client import OpenWeatherClient
from . import ToolRegistry

logger = logging.getLogger(__name__)

TOOL_NAME = "get_current_weather"


async def _handle_current_weather(
    weather_client: OpenWeatherClient,
    arguments: Dict[str, Any],
) -> Dict[str, Any]:
    logger.info("Executing %s with params: %s", TOOL_NAME, arguments)
    location = arguments["location"]
    units = arguments["units"]

    try:
        report = await weather_client.current_weather(location, units)
    except ConfigurationError as e:
        raise ToolExecutionError(str(e), tool_name=TOOL_NAME) from e
    except UpstreamError as e:
        logger.error("Weather API error: %s", e)
        raise ToolExecutionError(f"Failed to get weather: {e}", tool_name=TOOL_NAME) from e

    logger.info("Successfully fetched weather for '%s'", location)
    return report.model_dump(by_alias=True)


def register_tools(registry: ToolRegistry, weather_client: OpenWeatherClient) -> None:
    registry.register(
        TOOL_NAME,
        WeatherArguments,
        lambda args: _handle_current_weather(weather_client, args),
        description="Get the current weather for a location using OpenWeatherMap.",
    )
