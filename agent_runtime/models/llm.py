"""Provider-facing request and result types (provider-agnostic)."""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel

from agent_runtime.models.execution import FinishReason, TokenUsage
from agent_runtime.models.messages import ConversationMessage, ToolCall


class ToolDefinition(BaseModel):
    """Tool schema advertised to the model. Never carries a handler."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class GenerateOptions:
    """A single inference request to a provider adapter."""

    model: str
    system_prompt: str
    messages: list[ConversationMessage]
    tools: list[ToolDefinition] | None = None
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass
class GenerateResult:
    """A complete provider response."""

    text: str
    tool_calls: list[ToolCall] | None = None
    usage: TokenUsage | None = None
    finish_reason: FinishReason = "stop"


# Content block types
class TextBlock(BaseModel):
    """Text content block."""

    type: Literal["text"] = "text"
    text: str

    class Config:
        extra = "ignore"  # Ignore any additional fields from Anthropic


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]

    class Config:
        extra = "ignore"


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False

    class Config:
        extra = "ignore"


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock
