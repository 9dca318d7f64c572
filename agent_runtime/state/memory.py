"""In-memory state backend with TTL expiry."""

import time
from dataclasses import dataclass
from typing import Any

from agent_runtime.state.base import StateBackend
from agent_runtime.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    value: Any
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at


class MemoryStateBackend(StateBackend):
    """Process-local backend. Each instance owns its own storage."""

    def __init__(self, prefix: str | None = None, ttl: int | None = None):
        """Initialize the backend.

        Args:
            prefix: Namespace prepended to every key as ``prefix:key``
            ttl: Default time to live in seconds; falsy means no expiry
        """
        super().__init__(prefix=prefix, ttl=ttl)
        self._store: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Any | None:
        full_key = self.full_key(key)
        entry = self._store.get(full_key)
        if entry is None:
            return None

        if entry.is_expired(time.time()):
            del self._store[full_key]
            return None

        return entry.value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        effective_ttl = ttl if ttl is not None else self.default_ttl
        expires_at = time.time() + effective_ttl if effective_ttl else None
        self._store[self.full_key(key)] = CacheEntry(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> None:
        self._store.pop(self.full_key(key), None)

    async def clear(self) -> None:
        if not self.prefix:
            self._store.clear()
            return

        namespace = f"{self.prefix}:"
        for key in [k for k in self._store if k.startswith(namespace)]:
            del self._store[key]

    def cleanup(self) -> int:
        """Remove expired entries and return how many were dropped."""
        now = time.time()
        expired = [key for key, entry in self._store.items() if entry.is_expired(now)]

        for key in expired:
            del self._store[key]

        if expired:
            logger.debug(f"Removed {len(expired)} expired state entries")
        return len(expired)
