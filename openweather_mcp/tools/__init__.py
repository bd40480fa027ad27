"""
Tool registration utilities.

Each module in this package exposes a `register_tools(registry, client)`
function that adds its tools to the central registry used by the MCP server.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

import pydantic
from mcp import types
from pydantic import BaseModel

from ..errors import ToolExecutionError, ToolNotFound, ValidationError

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


@dataclass
class RegisteredTool:
    spec: types.Tool
    arguments_model: Type[BaseModel]
    handler: ToolHandler


class ToolRegistry:
    """
    In-memory registry mapping MCP tool names to their specifications and handlers.

    The published `inputSchema` is generated from the same pydantic model that
    validates arguments in `invoke`, so listing and invoking cannot drift.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, RegisteredTool] = {}

    def register(
        self,
        name: str,
        arguments_model: Type[BaseModel],
        handler: ToolHandler,
        description: Optional[str] = None,
    ) -> types.Tool:
        # Re-registering a name replaces the previous entry (last writer wins).
        if name in self._tools:
            logger.debug("Tool '%s' re-registered; replacing previous handler", name)
        spec = types.Tool(
            name=name,
            description=description,
            inputSchema=arguments_model.model_json_schema(),
        )
        self._tools[name] = RegisteredTool(
            spec=spec,
            arguments_model=arguments_model,
            handler=handler,
        )
        return spec

    def list_tools(self) -> List[types.Tool]:
        return [rt.spec for rt in self._tools.values()]

    def get(self, name: str) -> RegisteredTool:
        if name not in self._tools:
            raise ToolNotFound(name)
        return self._tools[name]

    def validate(self, name: str, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Validate `arguments` for tool `name` and return them with defaults applied."""
        tool = self.get(name)
        try:
            parsed = tool.arguments_model.model_validate(arguments or {})
        except pydantic.ValidationError as e:
            raise ValidationError(
                name,
                [
                    {
                        "field": ".".join(str(part) for part in err["loc"]) or "arguments",
                        "message": err["msg"],
                    }
                    for err in e.errors()
                ],
            ) from e
        return parsed.model_dump()

    async def invoke(self, name: str, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Validate arguments and run the tool's handler.

        Raises ToolNotFound, ValidationError, or ToolExecutionError; any other
        handler failure is converted into ToolExecutionError.
        """
        tool = self.get(name)
        validated = self.validate(name, arguments)
        try:
            return await tool.handler(validated)
        except ToolExecutionError:
            raise
        except Exception as e:
            logger.exception("Error executing tool %s", name)
            raise ToolExecutionError(str(e) or e.__class__.__name__, tool_name=name) from e
