"""Per-request context handed to tool handlers."""

from dataclasses import dataclass
from typing import Any

from agent_runtime.state.base import StateBackend


class ToolState:
    """Key-value access scoped to one conversation.

    Keys are written as ``{conversation_id}:{key}`` in the same backend as the
    ``conv:{id}`` message history keys.
    """

    def __init__(self, backend: StateBackend, conversation_id: str):
        self._backend = backend
        self._conversation_id = conversation_id

    def _key(self, key: str) -> str:
        return f"{self._conversation_id}:{key}"

    async def get(self, key: str) -> Any | None:
        return await self._backend.get(self._key(key))

    async def set(self, key: str, value: Any) -> None:
        await self._backend.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self._backend.delete(self._key(key))


@dataclass
class ToolContext:
    """Who a tool is running for, plus its conversation-scoped state."""

    conversation_id: str
    state: ToolState
    user_id: str | None = None
