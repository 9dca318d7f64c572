"""Error types raised by the agent runtime."""


class AgentRuntimeError(Exception):
    """Base class for runtime errors."""


class ConfigurationError(AgentRuntimeError, ValueError):
    """Raised when the agent configuration cannot be satisfied."""


class UnknownToolError(ConfigurationError):
    """Raised when the model requests a tool that has no registered handler."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class UnsupportedProviderError(ConfigurationError):
    """Raised when no provider adapter is registered for a provider id."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported provider: {provider}")
