from __future__ import annotations

import json
import logging
import math
from typing import Any, Awaitable, Callable, Dict, Optional

import anyio
import pydantic
from mcp import types

from . import SERVER_NAME, __version__
from .errors import (
    InvalidMessageError,
    ProtocolError,
    SessionNotFound,
    ToolExecutionError,
    ToolNotFound,
    ValidationError,
)
from .tools import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_PROTOCOL_VERSION = "2024-11-05"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")

SERVER_INSTRUCTIONS = (
    "Use get_current_weather for current conditions of a city and "
    "find_location_info to resolve a place name to coordinates."
)

MessageSink = Callable[[Dict[str, Any]], None]


def dump_message(message: pydantic.BaseModel) -> Dict[str, Any]:
    return message.model_dump(by_alias=True, mode="json", exclude_none=True)


class ProtocolEngine:
    """
    Per-session MCP protocol logic.

    Messages accepted via `accept()` are queued and handled one at a time by
    `run()`, so a single session's requests are processed in arrival order.
    Responses are handed to `sink`, which writes them onto the session's
    event stream; notifications produce no output.
    """

    def __init__(
        self,
        session_id: str,
        registry: ToolRegistry,
        sink: MessageSink,
        server_info: Optional[types.Implementation] = None,
    ) -> None:
        self.session_id = session_id
        self.client_info: Optional[Dict[str, Any]] = None
        self._closed = False
        self._registry = registry
        self._sink = sink
        self._server_info = server_info or types.Implementation(
            name=SERVER_NAME,
            version=__version__,
        )
        self._inbound_send, self._inbound_receive = anyio.create_memory_object_stream[
            types.JSONRPCMessage
        ](math.inf)
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    def accept(self, payload: Any) -> None:
        """Validate a raw JSON-RPC payload and queue it for processing."""
        try:
            message = types.JSONRPCMessage.model_validate(payload)
        except pydantic.ValidationError as e:
            raise InvalidMessageError(f"Invalid JSON-RPC message: {e.error_count()} validation error(s)") from e

        try:
            self._inbound_send.send_nowait(message)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as e:
            raise SessionNotFound(self.session_id) from e

    async def run(self) -> None:
        async with self._inbound_receive:
            async for message in self._inbound_receive:
                if self._closed:
                    break
                response = await self.handle(message.root)
                if response is not None:
                    self._sink(response)
        logger.debug("Protocol engine for session %s stopped", self.session_id)

    def close(self) -> None:
        """Stop accepting messages; queued ones are dropped."""
        self._closed = True
        self._inbound_send.close()

    async def handle(self, message: Any) -> Optional[Dict[str, Any]]:
        """Handle one JSON-RPC message and return the response to send, if any."""
        if isinstance(message, types.JSONRPCNotification):
            logger.debug("Session %s notification: %s", self.session_id, message.method)
            return None
        if not isinstance(message, types.JSONRPCRequest):
            # Responses to server-initiated requests; this server never sends any.
            logger.debug("Session %s ignoring client response for id %s", self.session_id, message.id)
            return None

        try:
            handler = self._handlers.get(message.method)
            if handler is None:
                raise ProtocolError(types.METHOD_NOT_FOUND, f"Method not found: {message.method}")
            result = await handler(message.params or {})
        except ProtocolError as e:
            return self._error(message.id, e.code, str(e))
        except Exception as e:
            logger.exception("Error handling MCP method %s", message.method)
            return self._error(message.id, types.INTERNAL_ERROR, f"Internal error: {e}")

        return dump_message(types.JSONRPCResponse(jsonrpc="2.0", id=message.id, result=result))

    async def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else DEFAULT_PROTOCOL_VERSION
        self.client_info = params.get("clientInfo")
        logger.info(
            "Session %s initialized by %s (protocol %s)",
            self.session_id,
            (self.client_info or {}).get("name", "unknown client"),
            version,
        )
        result = types.InitializeResult(
            protocolVersion=version,
            capabilities=types.ServerCapabilities(
                tools=types.ToolsCapability(listChanged=False),
            ),
            serverInfo=self._server_info,
            instructions=SERVER_INSTRUCTIONS,
        )
        return dump_message(result)

    async def _ping(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    async def _list_tools(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return dump_message(types.ListToolsResult(tools=self._registry.list_tools()))

    async def _call_tool(self, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            call = types.CallToolRequestParams.model_validate(params)
        except pydantic.ValidationError as e:
            raise ProtocolError(types.INVALID_PARAMS, "Invalid params: 'name' is required") from e

        try:
            payload = await self._registry.invoke(call.name, call.arguments)
        except ToolNotFound as e:
            raise ProtocolError(types.INVALID_PARAMS, str(e)) from e
        except (ValidationError, ToolExecutionError) as e:
            # Reported as a tool-level error so the session stays usable.
            logger.warning("Tool %s failed: %s", call.name, e)
            content = types.TextContent(type="text", text=str(e))
            return dump_message(types.CallToolResult(content=[content], isError=True))

        content = types.TextContent(type="text", text=json.dumps(payload))
        return dump_message(types.CallToolResult(content=[content], isError=False))

    @staticmethod
    def _error(request_id: types.RequestId, code: int, message: str) -> Dict[str, Any]:
        error = types.JSONRPCError(
            jsonrpc="2.0",
            id=request_id,
            error=types.ErrorData(code=code, message=message),
        )
        return dump_message(error)
