"""Base interface for state backends."""

from abc import ABC, abstractmethod
from typing import Any


class StateBackend(ABC):
    """Namespaced async key-value store shared by conversations and tool state.

    Implementations apply their ``prefix`` and default ``ttl`` (seconds) to
    every key they manage.
    """

    def __init__(self, prefix: str | None = None, ttl: int | None = None):
        self.prefix = prefix or ""
        self.default_ttl = ttl

    def full_key(self, key: str) -> str:
        """Return the namespaced key actually written to storage."""
        return f"{self.prefix}:{key}" if self.prefix else key

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the stored value, or None when absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store a value, expiring after ``ttl`` seconds (or the default ttl)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every key in this backend's namespace."""
