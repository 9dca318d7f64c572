"""Anthropic API client with retries and context-window truncation."""

import asyncio
import json
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

import tiktoken
from anthropic import APIError, AsyncAnthropic
from anthropic.lib.streaming import AsyncMessageStreamManager
from anthropic.types import ContentBlock as AnthropicContentBlock
from anthropic.types import Message
from pydantic import BaseModel

from agent_runtime.models.llm import ContentBlock, TextBlock, ToolResultBlock, ToolUseBlock
from agent_runtime.utils.logging import get_logger

logger = get_logger(__name__)


class CacheControl(BaseModel):
    """Cache control configuration for prompt caching."""

    type: Literal["ephemeral"] = "ephemeral"
    ttl: Literal["5m", "1h"] = "5m"


class AnthropicMessage(BaseModel):
    """Message format for Anthropic API."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]


class AnthropicTool(BaseModel):
    """Tool definition for Anthropic API."""

    name: str
    description: str
    input_schema: dict[str, Any]
    cache_control: CacheControl | None = None


@dataclass
class AnthropicUsage:
    """Token usage information from Anthropic API."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0


@dataclass
class AnthropicResponse:
    """Structured response from Anthropic API."""

    content: list[ContentBlock]
    stop_reason: str | None
    usage: AnthropicUsage
    model: str


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    max_retries: int = 3
    retry_delay: float = 1.0

    max_conversation_tokens: int = 200000  # Claude context window
    token_headroom: int = 2000  # Reserve tokens for response


def usage_from_message(message: Message) -> AnthropicUsage:
    """Extract token usage from an Anthropic message."""
    if not message.usage:
        return AnthropicUsage()

    return AnthropicUsage(
        input_tokens=message.usage.input_tokens,
        output_tokens=message.usage.output_tokens,
        total_tokens=message.usage.input_tokens + message.usage.output_tokens,
        cache_creation_input_tokens=message.usage.cache_creation_input_tokens or 0,
        cache_read_input_tokens=message.usage.cache_read_input_tokens or 0,
    )


class AnthropicClient:
    """Low-level Anthropic API client with retries and truncation."""

    tokenizer: tiktoken.Encoding | None = None
    api_key: str
    client: AsyncAnthropic
    config: AnthropicConfig

    def __init__(self, api_key: str | None = None, config: AnthropicConfig | None = None):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration
        """
        anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.api_key = anthropic_api_key
        self.client = AsyncAnthropic(api_key=self.api_key)
        self.config = config or AnthropicConfig()

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    def _build_request(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        tools: list[AnthropicTool] | None,
        model: str,
        max_tokens: int,
        temperature: float | None,
    ) -> dict[str, Any]:
        truncated_messages = self.truncate_conversation(messages, system_prompt, tools)

        request_params: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system_prompt,
            "messages": [msg.model_dump(exclude_none=True) for msg in truncated_messages],
        }
        if temperature is not None:
            request_params["temperature"] = temperature
        if tools:
            request_params["tools"] = [tool.model_dump(exclude_none=True) for tool in tools]

        logger.debug(
            f"Anthropic request for {model} with {len(truncated_messages)} messages, {len(tools) if tools else 0} tools"
        )
        return request_params

    async def create_message(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        model: str,
        max_tokens: int,
        temperature: float | None = None,
        tools: list[AnthropicTool] | None = None,
    ) -> AnthropicResponse:
        """Create a message with Claude API.

        Args:
            messages: Conversation history
            system_prompt: System prompt for Claude
            model: Model name
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            tools: Available tools for Claude

        Returns:
            Structured Anthropic response
        """
        request_params = self._build_request(messages, system_prompt, tools, model, max_tokens, temperature)
        response: Message = await self._request_with_retries(lambda: self.client.messages.create(**request_params))

        logger.debug(
            f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}"
        )

        return AnthropicResponse(
            content=self._convert_content_blocks(response.content),
            stop_reason=response.stop_reason,
            usage=usage_from_message(response),
            model=response.model,
        )

    def stream_message(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        model: str,
        max_tokens: int,
        temperature: float | None = None,
        tools: list[AnthropicTool] | None = None,
    ) -> AsyncMessageStreamManager:
        """Open a streaming message request. Use as ``async with``.

        Streams are not retried; a failure surfaces while iterating.
        """
        request_params = self._build_request(messages, system_prompt, tools, model, max_tokens, temperature)
        return self.client.messages.stream(**request_params)

    async def _request_with_retries[T](self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute Anthropic API request with retry logic."""
        for attempt in range(self.config.max_retries):
            try:
                return await call()

            except APIError as e:
                status_code = getattr(e, "status_code", None)
                if status_code == 429:  # Rate limit exceeded
                    retry_after = 60
                    response = getattr(e, "response", None)
                    if response is not None and hasattr(response, "headers"):
                        retry_after = int(response.headers.get("retry-after", 60))

                    if retry_after < 120 and attempt < self.config.max_retries - 1:
                        logger.warning(f"Anthropic rate limited, retrying in {retry_after}s")
                        await asyncio.sleep(retry_after)
                        continue

                elif status_code is not None and status_code >= 500 and attempt < self.config.max_retries - 1:
                    # Server error, retry with exponential backoff
                    logger.warning(f"Anthropic server error {status_code}, attempt {attempt + 1}")
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue

                raise

        raise RuntimeError(f"Failed to complete request after {self.config.max_retries} attempts")

    def _convert_content_blocks(self, anthropic_content: list[AnthropicContentBlock]) -> list[ContentBlock]:
        """Convert Anthropic content blocks to our ContentBlock types."""
        converted_blocks: list[ContentBlock] = []
        for block in anthropic_content:
            if hasattr(block, "model_dump"):
                block_dict = block.model_dump()
            elif hasattr(block, "__dict__"):
                block_dict = dict(block.__dict__)
            else:
                block_dict = dict(block)

            if block_dict.get("type") == "text":
                converted_blocks.append(TextBlock.model_validate(block_dict))
            elif block_dict.get("type") == "tool_use":
                converted_blocks.append(ToolUseBlock.model_validate(block_dict))
            else:
                logger.warning(f"Skipping unsupported content block type: {block_dict.get('type')}")

        return converted_blocks

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a piece of text."""
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4

    @staticmethod
    def _message_text(message: AnthropicMessage) -> str:
        if isinstance(message.content, str):
            return message.content

        parts = []
        for block in message.content:
            if isinstance(block, TextBlock):
                parts.append(block.text)
            elif isinstance(block, ToolResultBlock):
                parts.append(block.content)
            elif isinstance(block, ToolUseBlock):
                parts.append(block.name + json.dumps(block.input, default=str))
        return "".join(parts)

    @staticmethod
    def _is_plain_user_message(message: AnthropicMessage) -> bool:
        if message.role != "user":
            return False
        if isinstance(message.content, str):
            return True
        return not any(isinstance(block, ToolResultBlock) for block in message.content)

    def truncate_conversation(
        self, messages: list[AnthropicMessage], system_prompt: str, tools: list[AnthropicTool] | None = None
    ) -> list[AnthropicMessage]:
        """Truncate conversation from the beginning to fit within token limits.

        The kept history always starts at a plain user message, so a tool
        result is never sent without the assistant turn that requested it.

        Args:
            messages: Conversation messages
            system_prompt: System prompt
            tools: Available tools

        Returns:
            Truncated message list that fits within limits
        """
        if not messages:
            return messages

        available_tokens = self.config.max_conversation_tokens - self.config.token_headroom
        available_tokens -= self.estimate_message_tokens(system_prompt)

        if tools:
            tool_content = "".join(tool.name + tool.description + str(tool.input_schema) for tool in tools)
            available_tokens -= self.estimate_message_tokens(tool_content)

        truncated_messages: list[AnthropicMessage] = []
        current_tokens = 0

        for message in reversed(messages):
            message_tokens = self.estimate_message_tokens(self._message_text(message))
            if current_tokens + message_tokens > available_tokens:
                break
            truncated_messages.insert(0, message)
            current_tokens += message_tokens

        if len(truncated_messages) == len(messages):
            return truncated_messages

        while truncated_messages and not self._is_plain_user_message(truncated_messages[0]):
            truncated_messages.pop(0)

        logger.warning(
            f"Truncated conversation from {len(messages)} to {len(truncated_messages)} messages "
            f"to fit within {available_tokens} token limit"
        )
        return truncated_messages
