from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the OpenWeather MCP server.

    Values are loaded from environment variables with the `MCP_` prefix.
    The upstream key keeps its conventional name `OPENWEATHERMAP_API_KEY`,
    and `PORT` / `NODE_ENV` are honored for container platforms.
    A `.env` file in the working directory is read during development.
    """

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # General
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("MCP_ENVIRONMENT", "NODE_ENV"),
    )
    server_host: str = "0.0.0.0"
    server_port: int = Field(
        default=8000,
        validation_alias=AliasChoices("MCP_SERVER_PORT", "PORT"),
    )
    log_level: str = "INFO"

    # Upstream APIs
    openweathermap_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENWEATHERMAP_API_KEY", "MCP_OPENWEATHERMAP_API_KEY"),
    )
    weather_api_url: str = "http://api.openweathermap.org/data/2.5/weather"
    geocoding_api_url: str = "https://nominatim.openstreetmap.org/search"
    geocoding_user_agent: str = "openweather-mcp-server/0.1"
    # None disables the httpx timeout; tool invocations have no deadline.
    upstream_timeout_seconds: Optional[float] = None

    # Transport
    sse_path: str = "/sse"
    messages_path: str = "/messages"
    sse_keepalive_seconds: float = 15.0
    cors_allow_origins: List[str] = ["*"]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache settings from environment."""
    return Settings()  # type: ignore[call-arg]
