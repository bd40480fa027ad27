from __future__ import annotations

from typing import Dict, List, Optional


class OpenWeatherMCPError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(OpenWeatherMCPError):
    """A required setting (such as the upstream API key) is missing."""


class ValidationError(OpenWeatherMCPError, ValueError):
    """
    Tool arguments do not conform to the tool's input schema.

    `errors` holds one `{"field": ..., "message": ...}` entry per problem.
    """

    def __init__(self, tool_name: str, errors: List[Dict[str, str]]) -> None:
        self.tool_name = tool_name
        self.errors = errors
        details = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        super().__init__(f"Invalid arguments for tool '{tool_name}': {details}")


class UpstreamError(OpenWeatherMCPError):
    """An external API returned a failure or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ToolNotFound(OpenWeatherMCPError, LookupError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool {name} not found")


class ToolExecutionError(OpenWeatherMCPError):
    """A tool handler failed. The message is safe to show to the client."""

    def __init__(self, message: str, tool_name: Optional[str] = None) -> None:
        self.tool_name = tool_name
        super().__init__(message)


class SessionNotFound(OpenWeatherMCPError, LookupError):
    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"No active session found for sessionId: {session_id}")


class InvalidMessageError(OpenWeatherMCPError, ValueError):
    """A POSTed body is not a valid JSON-RPC 2.0 message."""


class TransportWriteError(OpenWeatherMCPError):
    """A frame could not be written because the session's channel is closed."""


class ProtocolError(OpenWeatherMCPError):
    """Maps onto a JSON-RPC error response with the given code."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        super().__init__(message)
