"""Shared fixtures: a scripted provider and agent builders."""

from collections.abc import AsyncIterator
from typing import Any

import pytest

from agent_runtime.models.agent import AgentConfig
from agent_runtime.models.execution import FinishChunk, StreamChunk, TextDeltaChunk, ToolCallStartChunk
from agent_runtime.models.llm import GenerateOptions, GenerateResult
from agent_runtime.models.messages import ToolCall
from agent_runtime.providers.base import ProviderAdapter
from agent_runtime.tools.base import ToolReference
from agent_runtime.tools.context import ToolContext


class FakeProvider(ProviderAdapter):
    """Provider that replays scripted results. The last script entry repeats forever."""

    def __init__(
        self,
        results: list[GenerateResult | Exception] | None = None,
        streams: list[list[StreamChunk]] | None = None,
    ):
        self.results = list(results or [])
        self.streams = list(streams or [])
        self.generate_calls: list[GenerateOptions] = []
        self.stream_calls: list[GenerateOptions] = []
        self.closed_streams = 0

    async def generate_text(self, options: GenerateOptions) -> GenerateResult:
        self.generate_calls.append(options)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result

    async def stream_text(self, options: GenerateOptions) -> AsyncIterator[StreamChunk]:
        self.stream_calls.append(options)
        chunks = self.streams.pop(0) if len(self.streams) > 1 else self.streams[0]
        try:
            for chunk in chunks:
                yield chunk
        finally:
            self.closed_streams += 1


def text_result(text: str, finish_reason: str = "stop") -> GenerateResult:
    return GenerateResult(text=text, tool_calls=[], finish_reason=finish_reason)


def tool_result(*calls: ToolCall, text: str = "") -> GenerateResult:
    return GenerateResult(text=text, tool_calls=list(calls), finish_reason="tool-calls")


def text_stream(*deltas: str) -> list[StreamChunk]:
    return [*(TextDeltaChunk(text_delta=delta) for delta in deltas), FinishChunk(finish_reason="stop")]


def tool_stream(call_id: str, name: str, args: dict[str, Any], text: str = "") -> list[StreamChunk]:
    chunks: list[StreamChunk] = [TextDeltaChunk(text_delta=text)] if text else []
    chunks.append(ToolCallStartChunk(tool_call_id=call_id, tool_name=name, tool_args=args))
    chunks.append(FinishChunk(finish_reason="tool-calls"))
    return chunks


class WeatherHandler:
    """Records every call it receives."""

    def __init__(self, result: Any = None):
        self.result = {"temp": 72} if result is None else result
        self.calls: list[tuple[dict[str, Any], ToolContext]] = []

    async def __call__(self, arguments: dict[str, Any], context: ToolContext) -> Any:
        self.calls.append((arguments, context))
        return self.result


WEATHER_PARAMETERS = {
    "type": "object",
    "properties": {"location": {"type": "string", "description": "City name"}},
    "required": ["location"],
}


@pytest.fixture
def weather_handler():
    return WeatherHandler()


@pytest.fixture
def weather_tool(weather_handler):
    return ToolReference(
        name="get_weather",
        description="Get weather for a location",
        parameters=WEATHER_PARAMETERS,
        handler=weather_handler,
    )


@pytest.fixture
def make_agent():
    def _make_agent(tools: list[ToolReference] | None = None, **kwargs) -> AgentConfig:
        kwargs.setdefault("system_prompt", "You are a helpful assistant.")
        return AgentConfig(name="test-agent", tools=tools or [], **kwargs)

    return _make_agent
