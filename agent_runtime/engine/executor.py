"""Agent executor: the bounded tool-calling loop, in batch and streaming form."""

import inspect
import json
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from agent_runtime.errors import ConfigurationError, UnknownToolError
from agent_runtime.models.agent import AgentConfig, StateConfig, resolve_model_configuration
from agent_runtime.models.execution import (
    ExecutionRequest,
    ExecutionResponse,
    FinishChunk,
    StreamChunk,
    ToolResultChunk,
)
from agent_runtime.models.llm import GenerateOptions, ToolDefinition
from agent_runtime.models.messages import ConversationMessage, ToolCall, ToolCallResult
from agent_runtime.providers import ProviderAdapter, create_provider
from agent_runtime.state.base import StateBackend
from agent_runtime.state.conversation_store import ConversationStore
from agent_runtime.state.memory import MemoryStateBackend
from agent_runtime.tools.base import ToolHandler, invoke_handler
from agent_runtime.tools.context import ToolContext, ToolState
from agent_runtime.tools.converter import convert_tool_reference_to_definition
from agent_runtime.utils.logging import get_logger

logger = get_logger(__name__)

MAX_TOOL_ITERATIONS = 10
MAX_ITERATIONS_MESSAGE = "Max tool iterations reached"


def stringify_tool_result(result: Any) -> str:
    """Render a handler's return value as tool message content."""
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


class AgentExecutor:
    """Runs conversation turns for one agent.

    Each turn loads history, appends the user message, and alternates model
    calls with sequential tool execution until the model answers without tool
    calls or ``MAX_TOOL_ITERATIONS`` model calls have been made. Only the user
    message and the final assistant answer are persisted, and only when the
    model actually produced a final answer.
    """

    def __init__(
        self,
        agent: AgentConfig,
        state_backend: StateBackend | None = None,
        provider: ProviderAdapter | None = None,
    ):
        """Initialize the executor.

        Args:
            agent: Static agent configuration
            state_backend: Backend for conversations and tool state (defaults to a private in-memory one)
            provider: Model provider adapter (defaults to the registry entry for the configured provider)

        Raises:
            ConfigurationError: If the configured storage or provider cannot be built
        """
        self.agent = agent
        self.model_config = resolve_model_configuration(agent.model)

        if state_backend is None:
            state_backend = self._create_default_backend(agent.state)
        self._state_backend = state_backend
        self._conversation_store = ConversationStore(self._state_backend)

        if provider is None:
            provider = create_provider(self.model_config.provider, self.model_config.api_key)
        self.provider = provider

        self._tool_handlers: dict[str, ToolHandler] = {}
        self._tool_definitions: list[ToolDefinition] = []
        for tool in agent.tools:
            self._tool_handlers[tool.name] = tool.handler
            self._tool_definitions.append(convert_tool_reference_to_definition(tool))

        logger.info(
            f"Executor ready for agent {agent.name}: {self.model_config.provider}/{self.model_config.name}, "
            f"{len(self._tool_definitions)} tools"
        )

    @staticmethod
    def _create_default_backend(state: StateConfig | None) -> StateBackend:
        if state is None:
            return MemoryStateBackend()
        if state.storage != "memory":
            raise ConfigurationError(f"Storage '{state.storage}' requires an explicit state backend")
        return MemoryStateBackend(prefix=state.prefix, ttl=state.ttl)

    @property
    def conversation_store(self) -> ConversationStore:
        return self._conversation_store

    @property
    def state_backend(self) -> StateBackend:
        return self._state_backend

    def _create_tool_context(self, conversation_id: str, user_id: str | None = None) -> ToolContext:
        return ToolContext(
            conversation_id=conversation_id,
            user_id=user_id,
            state=ToolState(self._state_backend, conversation_id),
        )

    async def _resolve_system_prompt(self) -> str:
        system_prompt = self.agent.system_prompt
        if not callable(system_prompt):
            return system_prompt

        resolved = system_prompt()
        if inspect.isawaitable(resolved):
            resolved = await resolved
        return resolved

    async def _build_messages(self, request: ExecutionRequest) -> list[ConversationMessage]:
        if request.history is not None:
            messages = list(request.history)
        else:
            messages = await self._conversation_store.get_messages(request.conversation_id)

        messages.append(ConversationMessage(role="user", content=request.message))
        return messages

    def _generate_options(self, system_prompt: str, messages: list[ConversationMessage]) -> GenerateOptions:
        return GenerateOptions(
            model=self.model_config.name,
            system_prompt=system_prompt,
            messages=list(messages),
            tools=self._tool_definitions or None,
            temperature=self.model_config.temperature,
            max_tokens=self.model_config.max_tokens,
        )

    async def _execute_tool_call(self, tool_call: ToolCall, context: ToolContext) -> Any:
        handler = self._tool_handlers.get(tool_call.name)
        if handler is None:
            logger.error(f"Unknown tool requested: {tool_call.name}")
            raise UnknownToolError(tool_call.name)

        logger.debug(f"Executing tool: {tool_call.name} with input: {tool_call.arguments}")
        return await invoke_handler(handler, tool_call.arguments, context)

    @staticmethod
    def _tool_message(tool_call: ToolCall, result: Any) -> ConversationMessage:
        return ConversationMessage(
            role="tool",
            content=stringify_tool_result(result),
            tool_call_id=tool_call.id,
            tool_name=tool_call.name,
        )

    async def _persist_turn(self, request: ExecutionRequest, answer: str) -> None:
        await self._conversation_store.add_messages(
            request.conversation_id,
            [
                ConversationMessage(role="user", content=request.message),
                ConversationMessage(role="assistant", content=answer),
            ],
        )

    async def execute(self, request: ExecutionRequest) -> ExecutionResponse:
        """Run a complete turn and return the final answer.

        Raises:
            UnknownToolError: If the model calls a tool with no registered handler
        """
        system_prompt = await self._resolve_system_prompt()
        tool_context = self._create_tool_context(request.conversation_id, request.user_id)
        messages = await self._build_messages(request)

        logger.info(f"Executing turn for conversation {request.conversation_id} with {len(messages)} messages")

        all_tool_calls: list[ToolCallResult] = []
        iterations = 0

        while iterations < MAX_TOOL_ITERATIONS:
            iterations += 1
            logger.debug(f"Tool loop iteration {iterations}/{MAX_TOOL_ITERATIONS}")

            result = await self.provider.generate_text(self._generate_options(system_prompt, messages))

            if not result.tool_calls:
                response = ExecutionResponse(
                    conversation_id=request.conversation_id,
                    message=result.text,
                    tool_calls=all_tool_calls or None,
                    usage=result.usage,
                    finish_reason=result.finish_reason,
                )
                await self._persist_turn(request, result.text)
                logger.info(
                    f"Turn for conversation {request.conversation_id} completed in {iterations} iterations "
                    f"with {len(all_tool_calls)} tool calls"
                )
                return response

            messages.append(
                ConversationMessage(role="assistant", content=result.text or "", tool_calls=result.tool_calls)
            )

            for tool_call in result.tool_calls:
                tool_result = await self._execute_tool_call(tool_call, tool_context)
                all_tool_calls.append(
                    ToolCallResult(
                        id=tool_call.id,
                        name=tool_call.name,
                        arguments=tool_call.arguments,
                        result=tool_result,
                    )
                )
                messages.append(self._tool_message(tool_call, tool_result))

        logger.warning(
            f"Conversation {request.conversation_id} reached {MAX_TOOL_ITERATIONS} tool iterations; nothing persisted"
        )
        last_assistant = next((m for m in reversed(messages) if m.role == "assistant"), None)
        return ExecutionResponse(
            conversation_id=request.conversation_id,
            message=(last_assistant.content if last_assistant else "") or MAX_ITERATIONS_MESSAGE,
            tool_calls=all_tool_calls or None,
            finish_reason="stop",
        )

    async def stream(self, request: ExecutionRequest) -> AsyncIterator[StreamChunk]:
        """Run a turn, yielding chunks as the model and tools produce them.

        Nothing runs between pulls. Closing the generator also closes the
        provider stream that is currently open.

        Raises:
            UnknownToolError: If the model calls a tool with no registered handler
        """
        system_prompt = await self._resolve_system_prompt()
        tool_context = self._create_tool_context(request.conversation_id, request.user_id)
        messages = await self._build_messages(request)

        logger.info(f"Streaming turn for conversation {request.conversation_id} with {len(messages)} messages")

        iterations = 0

        while iterations < MAX_TOOL_ITERATIONS:
            iterations += 1
            logger.debug(f"Tool loop iteration {iterations}/{MAX_TOOL_ITERATIONS}")

            full_text = ""
            pending_tool_calls: list[ToolCall] = []

            provider_stream = self.provider.stream_text(self._generate_options(system_prompt, messages))
            async with aclosing(provider_stream):
                async for chunk in provider_stream:
                    if chunk.type == "text-delta":
                        full_text += chunk.text_delta
                        yield chunk
                    elif chunk.type == "tool-call-start":
                        pending_tool_calls.append(
                            ToolCall(id=chunk.tool_call_id, name=chunk.tool_name, arguments=chunk.tool_args)
                        )
                        yield chunk
                    elif chunk.type in ("finish", "error") and not pending_tool_calls:
                        await self._persist_turn(request, full_text)
                        yield chunk
                        return

            if not pending_tool_calls:
                logger.warning(f"Provider stream for {request.conversation_id} ended without a finish chunk")
                yield FinishChunk(finish_reason="stop")
                return

            messages.append(ConversationMessage(role="assistant", content=full_text, tool_calls=pending_tool_calls))

            for tool_call in pending_tool_calls:
                tool_result = await self._execute_tool_call(tool_call, tool_context)
                yield ToolResultChunk(tool_call_id=tool_call.id, tool_name=tool_call.name, tool_result=tool_result)
                messages.append(self._tool_message(tool_call, tool_result))

        logger.warning(
            f"Conversation {request.conversation_id} reached {MAX_TOOL_ITERATIONS} tool iterations; nothing persisted"
        )
        yield FinishChunk(finish_reason="stop")
