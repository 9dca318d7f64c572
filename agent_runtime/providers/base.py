"""Base interface for model provider adapters."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from agent_runtime.models.execution import StreamChunk
from agent_runtime.models.llm import GenerateOptions, GenerateResult


class ProviderAdapter(ABC):
    """Boundary to one model vendor's inference API."""

    @abstractmethod
    async def generate_text(self, options: GenerateOptions) -> GenerateResult:
        """Run one complete inference call."""

    @abstractmethod
    def stream_text(self, options: GenerateOptions) -> AsyncIterator[StreamChunk]:
        """Run one inference call, yielding chunks as they arrive.

        Implementations are async generators; closing the generator must
        release the underlying network stream.
        """
