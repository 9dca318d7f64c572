"""Base types and definitions for tools."""

import inspect
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from agent_runtime.errors import ConfigurationError
from agent_runtime.tools.context import ToolContext
from agent_runtime.utils.logging import get_logger

logger = get_logger(__name__)

ToolHandler = Callable[[dict[str, Any], ToolContext], Any | Awaitable[Any]]
ToolParameters = dict[str, Any] | type[BaseModel]


@dataclass
class ToolReference:
    """A tool the agent can call: schema for the model plus the handler that runs it."""

    name: str
    description: str
    parameters: ToolParameters
    handler: ToolHandler
    builtin: bool = False

    def get_json_schema(self) -> dict[str, Any]:
        """Get the JSON schema for this tool's input."""
        if isinstance(self.parameters, type) and issubclass(self.parameters, BaseModel):
            return self.parameters.model_json_schema()
        return dict(self.parameters)


async def invoke_handler(handler: ToolHandler, arguments: dict[str, Any], context: ToolContext) -> Any:
    """Call a sync or async handler and return its result."""
    result = handler(arguments, context)
    if inspect.isawaitable(result):
        result = await result
    return result


def _wrap_handler(name: str, handler: ToolHandler) -> ToolHandler:
    async def logged_handler(arguments: dict[str, Any], context: ToolContext) -> Any:
        try:
            return await invoke_handler(handler, arguments, context)
        except Exception as e:
            logger.error(f"Tool {name} failed for conversation {context.conversation_id}: {e}")
            raise

    return logged_handler


def _validate_tool(tool: ToolReference) -> ToolReference:
    if not tool.name:
        raise ConfigurationError("Tool name is required")
    if not tool.description:
        raise ConfigurationError(f'Tool "{tool.name}" requires a description')
    if not tool.parameters:
        raise ConfigurationError(f'Tool "{tool.name}" requires parameters definition')
    if not callable(tool.handler):
        raise ConfigurationError(f'Tool "{tool.name}" requires a handler function')

    return ToolReference(
        name=tool.name,
        description=tool.description,
        parameters=tool.parameters,
        handler=_wrap_handler(tool.name, tool.handler),
        builtin=tool.builtin,
    )


def define_tools(tools: Iterable[ToolReference]) -> list[ToolReference]:
    """Validate tool references and wrap their handlers with failure logging.

    Raises:
        ConfigurationError: If a tool is missing its name, description, parameters or handler
    """
    return [_validate_tool(tool) for tool in tools]
