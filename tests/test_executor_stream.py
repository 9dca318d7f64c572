"""Tests for streaming execution in the agent executor."""

import asyncio

import pytest
from pydantic import ValidationError

from agent_runtime.engine.executor import MAX_TOOL_ITERATIONS, AgentExecutor
from agent_runtime.errors import UnknownToolError
from agent_runtime.models.execution import (
    ErrorChunk,
    ExecutionRequest,
    FinishChunk,
    TextDeltaChunk,
    ToolCallStartChunk,
    ToolResultChunk,
)
from agent_runtime.models.messages import ConversationMessage
from agent_runtime.tools.base import ToolReference
from tests.conftest import WEATHER_PARAMETERS, FakeProvider, text_stream, tool_stream


async def collect(executor: AgentExecutor, request: ExecutionRequest) -> list:
    return [chunk async for chunk in executor.stream(request)]


class TestTextStream:
    """Tests for streamed turns without tool calls."""

    async def test_deltas_forwarded_and_answer_persisted(self, make_agent):
        """Test deltas are forwarded verbatim and their concatenation is persisted."""
        provider = FakeProvider(streams=[text_stream("Hel", "lo", "!")])
        executor = AgentExecutor(make_agent(), provider=provider)

        chunks = await collect(executor, ExecutionRequest(conversation_id="c1", message="Hi"))

        deltas = [chunk.text_delta for chunk in chunks if isinstance(chunk, TextDeltaChunk)]
        assert deltas == ["Hel", "lo", "!"]
        assert chunks[-1] == FinishChunk(finish_reason="stop")

        stored = await executor.conversation_store.get_messages("c1")
        assert stored == [
            ConversationMessage(role="user", content="Hi"),
            ConversationMessage(role="assistant", content="".join(deltas)),
        ]

    async def test_error_chunk_is_forwarded_and_terminal(self, make_agent):
        """Test a provider error chunk ends the turn and the partial text is persisted."""
        provider = FakeProvider(
            streams=[
                [TextDeltaChunk(text_delta="Partial"), ErrorChunk(error="overloaded"), TextDeltaChunk(text_delta="x")]
            ]
        )
        executor = AgentExecutor(make_agent(), provider=provider)

        chunks = await collect(executor, ExecutionRequest(conversation_id="c1", message="Hi"))

        assert chunks == [TextDeltaChunk(text_delta="Partial"), ErrorChunk(error="overloaded")]
        stored = await executor.conversation_store.get_messages("c1")
        assert stored[-1].content == "Partial"

    async def test_stream_without_terminal_chunk(self, make_agent):
        """Test a stream that just ends yields a synthetic finish and persists nothing."""
        provider = FakeProvider(streams=[[TextDeltaChunk(text_delta="cut off")]])
        executor = AgentExecutor(make_agent(), provider=provider)

        chunks = await collect(executor, ExecutionRequest(conversation_id="c1", message="Hi"))

        assert chunks[-1] == FinishChunk(finish_reason="stop")
        assert await executor.conversation_store.get_conversation("c1") is None


class TestToolStream:
    """Tests for streamed turns with tool calls."""

    async def test_tool_call_flow(self, make_agent, weather_tool, weather_handler):
        """Test the chunk sequence across a tool round trip."""
        provider = FakeProvider(
            streams=[
                tool_stream("call_1", "get_weather", {"location": "NYC"}, text="Let me check."),
                text_stream("It's ", "72°F"),
            ]
        )
        executor = AgentExecutor(make_agent(tools=[weather_tool]), provider=provider)

        chunks = await collect(executor, ExecutionRequest(conversation_id="c1", message="weather in NYC"))

        assert [chunk.type for chunk in chunks] == [
            "text-delta",
            "tool-call-start",
            "tool-result",
            "text-delta",
            "text-delta",
            "finish",
        ]
        assert chunks[1] == ToolCallStartChunk(
            tool_call_id="call_1", tool_name="get_weather", tool_args={"location": "NYC"}
        )
        assert chunks[2] == ToolResultChunk(tool_call_id="call_1", tool_name="get_weather", tool_result={"temp": 72})
        assert weather_handler.calls[0][0] == {"location": "NYC"}

        second_request = provider.stream_calls[1].messages
        assert [m.role for m in second_request] == ["user", "assistant", "tool"]
        assert second_request[1].content == "Let me check."

        stored = await executor.conversation_store.get_messages("c1")
        assert [(m.role, m.content) for m in stored] == [("user", "weather in NYC"), ("assistant", "It's 72°F")]

    async def test_provider_finish_is_consumed_when_tools_pending(self, make_agent, weather_tool):
        """Test only one finish chunk reaches the caller across iterations."""
        provider = FakeProvider(
            streams=[tool_stream("call_1", "get_weather", {"location": "NYC"}), text_stream("done")]
        )
        executor = AgentExecutor(make_agent(tools=[weather_tool]), provider=provider)

        chunks = await collect(executor, ExecutionRequest(conversation_id="c1", message="go"))

        assert [chunk.type for chunk in chunks].count("finish") == 1

    async def test_multiple_calls_run_sequentially_in_order(self, make_agent):
        """Test several calls in one streamed response run one after another, in order."""
        events = []

        async def record(args, ctx):
            events.append(("start", args["n"]))
            await asyncio.sleep(0)
            events.append(("end", args["n"]))
            return args["n"]

        tool = ToolReference(name="record", description="Record", parameters=WEATHER_PARAMETERS, handler=record)
        calls = [ToolCallStartChunk(tool_call_id=f"t{n}", tool_name="record", tool_args={"n": n}) for n in range(3)]
        provider = FakeProvider(streams=[[*calls, FinishChunk(finish_reason="tool-calls")], text_stream("done")])
        executor = AgentExecutor(make_agent(tools=[tool]), provider=provider)

        chunks = await collect(executor, ExecutionRequest(conversation_id="c1", message="go"))

        assert events == [("start", 0), ("end", 0), ("start", 1), ("end", 1), ("start", 2), ("end", 2)]
        results = [chunk for chunk in chunks if chunk.type == "tool-result"]
        assert [(chunk.tool_call_id, chunk.tool_result) for chunk in results] == [("t0", 0), ("t1", 1), ("t2", 2)]

        tool_messages = provider.stream_calls[1].messages[-3:]
        assert [(m.role, m.tool_call_id, m.content) for m in tool_messages] == [
            ("tool", "t0", "0"),
            ("tool", "t1", "1"),
            ("tool", "t2", "2"),
        ]

    def test_unknown_finish_reason_is_rejected(self):
        """Test finish chunks only carry known finish reasons."""
        with pytest.raises(ValidationError):
            FinishChunk(finish_reason="exploded")

    async def test_ceiling(self, make_agent, weather_tool):
        """Test an always-calling model gets a synthetic finish after the ceiling and nothing is persisted."""
        provider = FakeProvider(streams=[tool_stream("call_1", "get_weather", {"location": "NYC"})])
        executor = AgentExecutor(make_agent(tools=[weather_tool]), provider=provider)

        chunks = await collect(executor, ExecutionRequest(conversation_id="c1", message="loop"))

        assert len(provider.stream_calls) == MAX_TOOL_ITERATIONS
        assert [chunk.type for chunk in chunks].count("tool-result") == MAX_TOOL_ITERATIONS
        assert chunks[-1] == FinishChunk(finish_reason="stop")
        assert await executor.conversation_store.get_conversation("c1") is None

    async def test_unknown_tool_raises(self, make_agent, weather_tool):
        """Test an unregistered tool fails the stream after its start chunk."""
        provider = FakeProvider(streams=[tool_stream("t1", "launch_rocket", {})])
        executor = AgentExecutor(make_agent(tools=[weather_tool]), provider=provider)
        chunks = []

        with pytest.raises(UnknownToolError, match="Unknown tool: launch_rocket"):
            async for chunk in executor.stream(ExecutionRequest(conversation_id="c1", message="go")):
                chunks.append(chunk)

        assert [chunk.type for chunk in chunks] == ["tool-call-start"]
        assert await executor.conversation_store.get_conversation("c1") is None


class TestPullDriven:
    """Tests for suspension and cancellation."""

    async def test_no_progress_without_pull(self, make_agent, weather_tool, weather_handler):
        """Test the tool only runs once the consumer pulls past the tool-call chunk."""
        provider = FakeProvider(
            streams=[tool_stream("call_1", "get_weather", {"location": "NYC"}), text_stream("done")]
        )
        executor = AgentExecutor(make_agent(tools=[weather_tool]), provider=provider)
        stream = executor.stream(ExecutionRequest(conversation_id="c1", message="go"))

        first = await anext(stream)
        assert first.type == "tool-call-start"
        assert weather_handler.calls == []

        second = await anext(stream)
        assert second.type == "tool-result"
        assert len(weather_handler.calls) == 1
        assert len(provider.stream_calls) == 1

        await stream.aclose()

    async def test_abandoned_stream_closes_provider_stream(self, make_agent):
        """Test closing the executor stream mid-turn closes the provider stream and persists nothing."""
        provider = FakeProvider(streams=[text_stream("a", "b", "c")])
        executor = AgentExecutor(make_agent(), provider=provider)
        stream = executor.stream(ExecutionRequest(conversation_id="c1", message="Hi"))

        assert (await anext(stream)).text_delta == "a"
        await stream.aclose()

        assert provider.closed_streams == 1
        assert await executor.conversation_store.get_conversation("c1") is None
