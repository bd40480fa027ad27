"""
OpenWeather MCP server package.

This package exposes MCP tools for:
- Current weather lookups (OpenWeatherMap)
- Place name geocoding (OSM Nominatim)

The tools are served over the MCP HTTP+SSE transport:
- GET /sse opens a session and streams server messages
- POST /messages?sessionId=<id> delivers client JSON-RPC messages
- GET /health reports liveness
"""

SERVER_NAME = "openweather-mcp-server"
__version__ = "0.1.0"
