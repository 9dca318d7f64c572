"""Provider adapters, selected by provider id."""

from collections.abc import Callable

from agent_runtime.errors import UnsupportedProviderError
from agent_runtime.providers.anthropic import AnthropicAdapter
from agent_runtime.providers.base import ProviderAdapter

ProviderFactory = Callable[[str | None], ProviderAdapter]

_providers: dict[str, ProviderFactory] = {
    "anthropic": lambda api_key: AnthropicAdapter(api_key=api_key),
}


def register_provider(provider: str, factory: ProviderFactory) -> None:
    """Register (or replace) the adapter factory for a provider id."""
    _providers[provider] = factory


def create_provider(provider: str, api_key: str | None = None) -> ProviderAdapter:
    """Build the adapter for a provider id.

    Raises:
        UnsupportedProviderError: If no factory is registered for ``provider``
    """
    factory = _providers.get(provider)
    if factory is None:
        raise UnsupportedProviderError(provider)
    return factory(api_key)


__all__ = ["AnthropicAdapter", "ProviderAdapter", "create_provider", "register_provider"]
