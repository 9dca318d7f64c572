"""Tool authoring, tool context and provider-facing conversion."""

from agent_runtime.tools.base import ToolHandler, ToolReference, define_tools
from agent_runtime.tools.context import ToolContext, ToolState

__all__ = ["ToolContext", "ToolHandler", "ToolReference", "ToolState", "define_tools"]
