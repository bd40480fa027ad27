from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import ToolExecutionError, UpstreamError
from ..geocoding_client import NominatimClient
from ..models import LocationQueryArguments
from . import ToolRegistry

logger = logging.getLogger(__name__)

TOOL_NAME = "find_location_info"


def geocoding_tools(geocoding_client: NominatimClient) -> Dict[str, Any]:
    """
    Factory to produce handlers with a bound Nominatim client.
    """

    async def find_location_info(arguments: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("Executing %s with params: %s", TOOL_NAME, arguments)
        query = arguments["query"]

        try:
            info = await geocoding_client.search(query)
        except UpstreamError as e:
            logger.error("Geocoding API error: %s", e)
            raise ToolExecutionError(f"Failed during geocoding: {e}", tool_name=TOOL_NAME) from e

        logger.info("Successfully geocoded query: '%s'", query)
        return info.model_dump(by_alias=True)

    return {
        TOOL_NAME: {
            "arguments_model": LocationQueryArguments,
            "handler": find_location_info,
            "description": (
                "Find geographic information (coordinates, bounding box, OSM ids) "
                "for a place name or address using OpenStreetMap Nominatim."
            ),
        },
    }


def register_tools(registry: ToolRegistry, geocoding_client: NominatimClient) -> None:
    tool_defs = geocoding_tools(geocoding_client)
    for name, meta in tool_defs.items():
        registry.register(
            name,
            meta["arguments_model"],
            meta["handler"],
            description=meta["description"],
        )
