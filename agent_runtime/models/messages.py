"""Conversation message and tool call models."""

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

MessageRole = Literal["user", "assistant", "system", "tool"]


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolCallResult(BaseModel):
    """A tool invocation together with the value its handler returned."""

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    result: Any = None


class ConversationMessage(BaseModel):
    """A single message in a conversation.

    ``tool_calls`` is only set on assistant messages that triggered tool
    execution. ``tool_call_id`` and ``tool_name`` are only set on tool messages
    and point back at the call that produced them.
    """

    role: MessageRole
    content: str
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    tool_name: str | None = None


def utc_now() -> datetime:
    return datetime.now(UTC)


class Conversation(BaseModel):
    """A persisted, append-only sequence of messages under one id."""

    id: str
    messages: list[ConversationMessage] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def touch(self) -> None:
        """Advance ``updated_at`` without ever moving it backwards."""
        self.updated_at = max(utc_now(), self.updated_at)
