from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

import anyio
import httpx

from .config import Settings, get_settings
from .geocoding_client import NominatimClient
from .runtime import RuntimeContext
from .tools import ToolRegistry, geocoding_tools, weather_tools
from .transport import SessionTransportManager
from .weather_client import OpenWeatherClient


def create_runtime(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> RuntimeContext:
    """
    Create the runtime context with all registered tools.

    `http_client` replaces the upstream HTTP client of both API adapters;
    when omitted each adapter owns its own client.
    """
    settings = settings or get_settings()

    # Initialize upstream adapters
    weather_client = OpenWeatherClient(settings, http_client=http_client)
    geocoding_client = NominatimClient(settings, http_client=http_client)

    registry = ToolRegistry()

    # Register tool groups
    weather_tools.register_tools(registry, weather_client)
    geocoding_tools.register_tools(registry, geocoding_client)

    transport = SessionTransportManager(registry, messages_path=settings.messages_path)

    return RuntimeContext(
        settings=settings,
        registry=registry,
        transport=transport,
        weather_client=weather_client,
        geocoding_client=geocoding_client,
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="openweather-mcp-server",
        description="Serve weather and geocoding MCP tools over HTTP+SSE.",
    )
    parser.add_argument("--host", default=None, help="Bind address (default from settings)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default from settings)")
    parser.add_argument("--log-level", default=None, help="Logging level, e.g. DEBUG or INFO")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Entrypoint for running the MCP server over HTTP/SSE.
    """
    args = parse_args(argv)
    settings = get_settings()
    host = args.host or settings.server_host
    port = args.port or settings.server_port
    log_level = (args.log_level or settings.log_level).upper()

    logging.basicConfig(
        stream=sys.stderr,
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from .http_server import run_http_server

    anyio.run(run_http_server, host, port, create_runtime(settings), log_level.lower())


if __name__ == "__main__":
    main()
