from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass, field
from typing import Optional

from .config import Settings
from .geocoding_client import NominatimClient
from .tools import ToolRegistry
from .transport import SessionTransportManager
from .weather_client import OpenWeatherClient

logger = logging.getLogger(__name__)


@dataclass
class RuntimeContext:
    """
    Process-wide runtime context for the MCP server.

    This is created once in `main.py` and passed to the HTTP app, which
    enters it for the duration of its lifespan.
    """

    settings: Settings
    registry: ToolRegistry
    transport: SessionTransportManager
    weather_client: OpenWeatherClient
    geocoding_client: NominatimClient
    _stack: Optional[contextlib.AsyncExitStack] = field(default=None, repr=False)

    async def __aenter__(self) -> "RuntimeContext":
        if not self.weather_client.configured:
            logger.warning(
                "OPENWEATHERMAP_API_KEY environment variable is not set. "
                "Weather API calls will fail."
            )
        stack = contextlib.AsyncExitStack()
        stack.push_async_callback(self.geocoding_client.aclose)
        stack.push_async_callback(self.weather_client.aclose)
        await stack.enter_async_context(self.transport.run())
        self._stack = stack
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        stack, self._stack = self._stack, None
        if stack is not None:
            await stack.aclose()
