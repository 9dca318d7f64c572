"""Provider adapter for Anthropic models."""

from collections.abc import AsyncIterator

from anthropic import APIError

from agent_runtime.clients.anthropic import AnthropicClient, AnthropicUsage, usage_from_message
from agent_runtime.models.execution import (
    ErrorChunk,
    FinishChunk,
    FinishReason,
    StreamChunk,
    TextDeltaChunk,
    TokenUsage,
    ToolCallStartChunk,
)
from agent_runtime.models.llm import GenerateOptions, GenerateResult, TextBlock, ToolUseBlock
from agent_runtime.models.messages import ToolCall
from agent_runtime.providers.base import ProviderAdapter
from agent_runtime.tools.converter import convert_to_anthropic_messages, convert_to_anthropic_tools
from agent_runtime.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 4096

STOP_REASONS = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "pause_turn": "stop",
    "tool_use": "tool-calls",
    "max_tokens": "length",
    "refusal": "content-filter",
}


def map_stop_reason(stop_reason: str | None) -> FinishReason:
    """Map an Anthropic stop reason onto a runtime finish reason."""
    return STOP_REASONS.get(stop_reason or "end_turn", "stop")


def map_usage(usage: AnthropicUsage) -> TokenUsage:
    prompt_tokens = usage.input_tokens + usage.cache_creation_input_tokens + usage.cache_read_input_tokens
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=usage.output_tokens,
        total_tokens=prompt_tokens + usage.output_tokens,
    )


class AnthropicAdapter(ProviderAdapter):
    """Runs generate/stream requests against the Anthropic Messages API."""

    def __init__(self, api_key: str | None = None, client: AnthropicClient | None = None):
        """Initialize the adapter.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            client: Pre-built low-level client, mainly for tests
        """
        self.client = client or AnthropicClient(api_key=api_key)

    def _request_kwargs(self, options: GenerateOptions) -> dict:
        return {
            "messages": convert_to_anthropic_messages(options.messages),
            "system_prompt": options.system_prompt,
            "model": options.model,
            "max_tokens": options.max_tokens or DEFAULT_MAX_TOKENS,
            "temperature": options.temperature,
            "tools": convert_to_anthropic_tools(options.tools) if options.tools else None,
        }

    async def generate_text(self, options: GenerateOptions) -> GenerateResult:
        response = await self.client.create_message(**self._request_kwargs(options))

        text = "".join(block.text for block in response.content if isinstance(block, TextBlock))
        tool_calls = [
            ToolCall(id=block.id, name=block.name, arguments=block.input)
            for block in response.content
            if isinstance(block, ToolUseBlock)
        ]

        return GenerateResult(
            text=text,
            tool_calls=tool_calls or None,
            usage=map_usage(response.usage),
            finish_reason=map_stop_reason(response.stop_reason),
        )

    async def stream_text(self, options: GenerateOptions) -> AsyncIterator[StreamChunk]:
        try:
            async with self.client.stream_message(**self._request_kwargs(options)) as stream:
                async for event in stream:
                    if event.type == "text":
                        yield TextDeltaChunk(text_delta=event.text)
                    elif event.type == "content_block_stop" and event.content_block.type == "tool_use":
                        block = event.content_block
                        yield ToolCallStartChunk(
                            tool_call_id=block.id,
                            tool_name=block.name,
                            tool_args=dict(block.input or {}),
                        )
                    elif event.type == "message_stop":
                        yield FinishChunk(
                            finish_reason=map_stop_reason(event.message.stop_reason),
                            usage=map_usage(usage_from_message(event.message)),
                        )
        except APIError as e:
            logger.error(f"Anthropic stream failed: {e}")
            yield ErrorChunk(error=str(e))
