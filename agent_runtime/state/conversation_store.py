"""Conversation persistence on top of a state backend."""

import asyncio
import weakref
from collections.abc import Sequence
from typing import Any

from agent_runtime.models.messages import Conversation, ConversationMessage, utc_now
from agent_runtime.state.base import StateBackend
from agent_runtime.state.memory import MemoryStateBackend
from agent_runtime.utils.logging import get_logger

logger = get_logger(__name__)


class ConversationStore:
    """Conversation-shaped CRUD over a single state backend.

    Read-modify-write of one conversation is serialized with a per-conversation
    lock. Nothing spans more than one call, so two turns racing on the same
    conversation can still interleave their appends.
    """

    def __init__(self, backend: StateBackend | None = None):
        """Initialize the store.

        Args:
            backend: State backend to persist into (defaults to a private in-memory one)
        """
        self.backend = backend if backend is not None else MemoryStateBackend(prefix="conversation")
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @staticmethod
    def _key(conversation_id: str) -> str:
        return f"conv:{conversation_id}"

    def _lock(self, conversation_id: str) -> asyncio.Lock:
        # Entries disappear once no pending call holds the lock
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()
        return lock

    async def _save(self, conversation: Conversation) -> None:
        await self.backend.set(self._key(conversation.id), conversation.model_dump(mode="json"))

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Return the conversation, or None if it does not exist."""
        raw = await self.backend.get(self._key(conversation_id))
        if raw is None:
            return None
        return Conversation.model_validate(raw)

    async def create_conversation(
        self, conversation_id: str, metadata: dict[str, Any] | None = None
    ) -> Conversation:
        """Create (or overwrite) an empty conversation."""
        now = utc_now()
        conversation = Conversation(id=conversation_id, metadata=dict(metadata or {}), created_at=now, updated_at=now)
        await self._save(conversation)
        logger.debug(f"Created conversation {conversation_id}")
        return conversation

    async def get_or_create_conversation(
        self, conversation_id: str, metadata: dict[str, Any] | None = None
    ) -> Conversation:
        """Return the existing conversation untouched, or create it with ``metadata``."""
        existing = await self.get_conversation(conversation_id)
        if existing is not None:
            return existing
        return await self.create_conversation(conversation_id, metadata)

    async def add_message(self, conversation_id: str, message: ConversationMessage) -> Conversation:
        """Append one message, creating the conversation if needed."""
        return await self.add_messages(conversation_id, [message])

    async def add_messages(self, conversation_id: str, messages: Sequence[ConversationMessage]) -> Conversation:
        """Append messages in order, creating the conversation if needed."""
        async with self._lock(conversation_id):
            conversation = await self.get_or_create_conversation(conversation_id)
            conversation.messages.extend(messages)
            conversation.touch()
            await self._save(conversation)

        logger.debug(
            f"Appended {len(messages)} messages to conversation {conversation_id} "
            f"({len(conversation.messages)} total)"
        )
        return conversation

    async def get_messages(self, conversation_id: str) -> list[ConversationMessage]:
        """Return the conversation's messages, or an empty list if it does not exist."""
        conversation = await self.get_conversation(conversation_id)
        return conversation.messages if conversation else []

    async def update_metadata(self, conversation_id: str, metadata: dict[str, Any]) -> Conversation | None:
        """Shallow-merge ``metadata`` into an existing conversation.

        Unlike ``add_message`` this never creates the conversation.
        """
        async with self._lock(conversation_id):
            conversation = await self.get_conversation(conversation_id)
            if conversation is None:
                return None

            conversation.metadata = {**conversation.metadata, **metadata}
            conversation.touch()
            await self._save(conversation)
            return conversation

    async def delete_conversation(self, conversation_id: str) -> None:
        """Delete a conversation. Unknown ids are ignored."""
        await self.backend.delete(self._key(conversation_id))

    async def clear_all_conversations(self) -> None:
        """Drop everything in the backend namespace."""
        await self.backend.clear()
        logger.info("Cleared all conversations")
