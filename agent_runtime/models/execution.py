"""Request, response and stream chunk models for agent execution."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from agent_runtime.models.messages import ConversationMessage, ToolCallResult

FinishReason = Literal["stop", "tool-calls", "length", "content-filter", "error"]


class TokenUsage(BaseModel):
    """Token usage reported by a provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ExecutionRequest(BaseModel):
    """A new user message for a conversation.

    When ``history`` is given it replaces the stored history as model context;
    the turn is still persisted under ``conversation_id``.
    """

    conversation_id: str
    message: str
    user_id: str | None = None
    history: list[ConversationMessage] | None = None


class ExecutionResponse(BaseModel):
    """Result of a complete (non-streaming) turn."""

    conversation_id: str
    message: str
    tool_calls: list[ToolCallResult] | None = None
    usage: TokenUsage | None = None
    finish_reason: FinishReason


# Stream chunk types
class TextDeltaChunk(BaseModel):
    """Incremental assistant text."""

    type: Literal["text-delta"] = "text-delta"
    text_delta: str


class ToolCallStartChunk(BaseModel):
    """A tool call the model decided on, with its complete arguments."""

    type: Literal["tool-call-start"] = "tool-call-start"
    tool_call_id: str
    tool_name: str
    tool_args: dict[str, Any] = Field(default_factory=dict)


class ToolResultChunk(BaseModel):
    """A tool handler finished."""

    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str
    tool_result: Any = None


class FinishChunk(BaseModel):
    """Terminal chunk of a turn."""

    type: Literal["finish"] = "finish"
    finish_reason: FinishReason = "stop"
    usage: TokenUsage | None = None


class ErrorChunk(BaseModel):
    """Terminal chunk reporting a provider failure."""

    type: Literal["error"] = "error"
    error: str


StreamChunk = Annotated[
    TextDeltaChunk | ToolCallStartChunk | ToolResultChunk | FinishChunk | ErrorChunk,
    Field(discriminator="type"),
]
