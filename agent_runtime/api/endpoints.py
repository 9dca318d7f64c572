"""HTTP endpoints for hosting an agent executor."""

import json
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

from cuid2 import cuid_wrapper
from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from agent_runtime import __version__
from agent_runtime.engine.executor import AgentExecutor
from agent_runtime.errors import ConfigurationError
from agent_runtime.models.execution import ExecutionRequest
from agent_runtime.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class ChatRequest(BaseModel):
    """Request body for the chat endpoint."""

    message: str | None = None
    conversation_id: str | None = None
    user_id: str | None = None
    stream: bool | None = None


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str


def generate_conversation_id() -> str:
    """Generate a new CUID-based conversation ID."""
    return f"conv_{cuid()}"


def format_sse(event: str, data: str) -> str:
    """Encode one server-sent event."""
    return f"event: {event}\ndata: {data}\n\n"


async def stream_events(executor: AgentExecutor, request: ExecutionRequest) -> AsyncIterator[str]:
    """Render an executor stream as server-sent events, preceded by a start event."""
    yield format_sse("start", json.dumps({"conversation_id": request.conversation_id}))

    try:
        async for chunk in executor.stream(request):
            yield format_sse(chunk.type, chunk.model_dump_json())
    except Exception as e:
        # Headers are already sent, so the failure can only be reported in-band
        logger.error(f"Streaming error for conversation {request.conversation_id}: {e}", exc_info=True)
        yield format_sse("error", json.dumps({"type": "error", "error": str(e)}))


def create_router(executor: AgentExecutor, streaming: bool = False) -> APIRouter:
    """Build the chat and health routes around an executor.

    Args:
        executor: Executor that handles every chat request
        streaming: Whether requests that do not say otherwise are streamed
    """
    router = APIRouter()

    @router.post("/chat", response_model=None, tags=["Conversation"])
    async def handle_chat(request: ChatRequest) -> Any:
        """Run one conversation turn, as JSON or as a server-sent event stream."""
        if not request.message:
            raise HTTPException(status_code=400, detail="Message is required")

        execution_request = ExecutionRequest(
            conversation_id=request.conversation_id or generate_conversation_id(),
            user_id=request.user_id,
            message=request.message,
        )
        conversation_id = execution_request.conversation_id
        logger.info(f"Chat request for conversation {conversation_id}: {request.message[:50]}...")

        should_stream = request.stream if request.stream is not None else streaming
        if should_stream:
            return StreamingResponse(
                stream_events(executor, execution_request),
                media_type="text/event-stream",
                headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
            )

        try:
            response = await executor.execute(execution_request)
        except ConfigurationError as e:
            logger.warning(f"Configuration error for conversation {conversation_id}: {e}")
            raise HTTPException(status_code=400, detail=str(e)) from e
        except Exception as e:
            logger.error(f"Execution error for conversation {conversation_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Agent execution failed") from e

        return JSONResponse(content=response.model_dump(mode="json"))

    @router.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(UTC),
            version=__version__,
        )

    return router
