"""
Command-line test client.

Connects to a running server over SSE, lists its tools and calls both of
them once, printing the decoded results.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Optional, Sequence

import anyio
from mcp import ClientSession, types
from mcp.client.sse import sse_client

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:8000/sse"


def format_tool_result(result: types.CallToolResult) -> str:
    """Render a tool result for the terminal, pretty-printing JSON text blocks."""
    lines = []
    for block in result.content:
        if not isinstance(block, types.TextContent):
            lines.append(f"<{block.type} content>")
            continue
        try:
            lines.append(json.dumps(json.loads(block.text), indent=2))
        except ValueError:
            lines.append(block.text)
    text = "\n".join(lines)
    return f"ERROR: {text}" if result.isError else text


async def run_client(url: str, location: str, query: str, out: Any = None) -> None:
    out = out or sys.stdout
    logger.info("Connecting to server at %s", url)
    async with sse_client(url) as (read, write):
        async with ClientSession(read, write) as session:
            init = await session.initialize()
            print(f"Connected to {init.serverInfo.name} {init.serverInfo.version}", file=out)

            tools = await session.list_tools()
            print("Available tools:", file=out)
            for tool in tools.tools:
                print(f"  - {tool.name}: {tool.description or ''}", file=out)

            print(f"\nget_current_weather(location={location!r}):", file=out)
            weather = await session.call_tool("get_current_weather", {"location": location})
            print(format_tool_result(weather), file=out)

            print(f"\nfind_location_info(query={query!r}):", file=out)
            place = await session.call_tool("find_location_info", {"query": query})
            print(format_tool_result(place), file=out)


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="openweather-mcp-client",
        description="Exercise an OpenWeather MCP server over SSE.",
    )
    parser.add_argument("--url", default=DEFAULT_URL, help=f"SSE endpoint (default {DEFAULT_URL})")
    parser.add_argument("--location", default="Tokyo, Japan")
    parser.add_argument("--query", default="Statue of Liberty")
    args = parser.parse_args(argv)

    logging.basicConfig(stream=sys.stderr, level=logging.INFO)
    anyio.run(run_client, args.url, args.location, args.query)


if __name__ == "__main__":
    main()
