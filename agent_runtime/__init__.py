"""Agent execution runtime: tool-calling loop, conversation state and provider adapters."""

__version__ = "0.1.0"

from agent_runtime.engine.executor import MAX_TOOL_ITERATIONS, AgentExecutor
from agent_runtime.errors import AgentRuntimeError, ConfigurationError, UnknownToolError, UnsupportedProviderError
from agent_runtime.models.agent import AgentConfig, ModelConfiguration, StateConfig
from agent_runtime.models.execution import ExecutionRequest, ExecutionResponse, StreamChunk, TokenUsage
from agent_runtime.models.messages import Conversation, ConversationMessage, ToolCall, ToolCallResult
from agent_runtime.state import ConversationStore, MemoryStateBackend, StateBackend
from agent_runtime.tools import ToolContext, ToolReference, define_tools

__all__ = [
    "MAX_TOOL_ITERATIONS",
    "AgentConfig",
    "AgentExecutor",
    "AgentRuntimeError",
    "ConfigurationError",
    "Conversation",
    "ConversationMessage",
    "ConversationStore",
    "ExecutionRequest",
    "ExecutionResponse",
    "MemoryStateBackend",
    "ModelConfiguration",
    "StateBackend",
    "StateConfig",
    "StreamChunk",
    "TokenUsage",
    "ToolCall",
    "ToolCallResult",
    "ToolContext",
    "ToolReference",
    "UnknownToolError",
    "UnsupportedProviderError",
    "__version__",
    "define_tools",
]
