"""State backends and conversation persistence."""

from agent_runtime.state.base import StateBackend
from agent_runtime.state.conversation_store import ConversationStore
from agent_runtime.state.memory import MemoryStateBackend

__all__ = ["ConversationStore", "MemoryStateBackend", "StateBackend"]
