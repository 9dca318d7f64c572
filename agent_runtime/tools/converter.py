"""Conversion between tool references, provider tool schemas and provider messages."""

from typing import Any

from agent_runtime.clients.anthropic import AnthropicMessage, AnthropicTool, CacheControl
from agent_runtime.models.llm import ContentBlock, TextBlock, ToolDefinition, ToolResultBlock, ToolUseBlock
from agent_runtime.models.messages import ConversationMessage
from agent_runtime.tools.base import ToolReference


def convert_tool_reference_to_definition(tool: ToolReference) -> ToolDefinition:
    """Build the schema the model sees for a tool. The handler is not carried over."""
    schema = tool.get_json_schema()
    parameters: dict[str, Any] = {
        "type": schema.get("type", "object"),
        "properties": schema.get("properties", {}),
        "required": schema.get("required", []),
    }
    # Pydantic schemas reference nested models through $defs
    if "$defs" in schema:
        parameters["$defs"] = schema["$defs"]

    return ToolDefinition(name=tool.name, description=tool.description, parameters=parameters)


def convert_to_anthropic_tools(definitions: list[ToolDefinition]) -> list[AnthropicTool]:
    """Convert tool definitions to Anthropic tools.

    The last tool carries a cache-control marker so the whole tool list is
    cached between loop iterations.
    """
    anthropic_tools = []
    for i, definition in enumerate(definitions):
        cache_control = CacheControl(type="ephemeral", ttl="5m") if i == len(definitions) - 1 else None
        anthropic_tools.append(
            AnthropicTool(
                name=definition.name,
                description=definition.description,
                input_schema=definition.parameters,
                cache_control=cache_control,
            )
        )
    return anthropic_tools


def _is_tool_result_message(message: AnthropicMessage) -> bool:
    return (
        message.role == "user"
        and isinstance(message.content, list)
        and all(isinstance(block, ToolResultBlock) for block in message.content)
    )


def convert_to_anthropic_messages(messages: list[ConversationMessage]) -> list[AnthropicMessage]:
    """Convert conversation messages to Anthropic's user/assistant content-block format.

    Tool messages become ``tool_result`` blocks inside a user message, with
    consecutive results grouped into one message. System messages are dropped
    because the system prompt is sent separately, and so are assistant messages
    with neither text nor tool calls.
    """
    converted: list[AnthropicMessage] = []

    for message in messages:
        if message.role == "user":
            converted.append(AnthropicMessage(role="user", content=message.content))

        elif message.role == "assistant":
            if not message.tool_calls:
                # Empty assistant turns are rejected by the Messages API
                if message.content:
                    converted.append(AnthropicMessage(role="assistant", content=message.content))
                continue

            blocks: list[ContentBlock] = []
            if message.content:
                blocks.append(TextBlock(text=message.content))
            blocks.extend(
                ToolUseBlock(id=tool_call.id, name=tool_call.name, input=tool_call.arguments)
                for tool_call in message.tool_calls
            )
            converted.append(AnthropicMessage(role="assistant", content=blocks))

        elif message.role == "tool":
            block = ToolResultBlock(tool_use_id=message.tool_call_id or "", content=message.content)
            if converted and _is_tool_result_message(converted[-1]):
                converted[-1].content.append(block)
            else:
                converted.append(AnthropicMessage(role="user", content=[block]))

    return converted
