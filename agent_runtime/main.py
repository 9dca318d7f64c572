"""FastAPI application factory for serving an agent."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent_runtime import __version__
from agent_runtime.api.endpoints import create_router
from agent_runtime.engine.executor import AgentExecutor
from agent_runtime.models.agent import AgentConfig
from agent_runtime.providers.base import ProviderAdapter
from agent_runtime.state.base import StateBackend
from agent_runtime.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(
    agent: AgentConfig,
    executor: AgentExecutor | None = None,
    provider: ProviderAdapter | None = None,
    state_backend: StateBackend | None = None,
    cors_origins: list[str] | None = None,
    streaming: bool = False,
) -> FastAPI:
    """Create a FastAPI application serving one agent.

    Args:
        agent: Agent configuration
        executor: Pre-built executor; otherwise one is built from ``agent``
        provider: Provider adapter for a newly built executor
        state_backend: State backend for a newly built executor
        cors_origins: Allowed origins (all origins when empty)
        streaming: Stream responses unless a request says otherwise
    """
    if executor is None:
        executor = AgentExecutor(agent, state_backend=state_backend, provider=provider)

    app = FastAPI(
        title=agent.name,
        description=agent.description or f"Conversational agent {agent.name}",
        version=agent.version,
        docs_url="/docs",
        redoc_url="/redoc",
        tags_metadata=[
            {"name": "Conversation", "description": "Run conversation turns against the agent."},
            {"name": "Health", "description": "Service health monitoring and status checks."},
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(create_router(executor, streaming=streaming))
    app.state.executor = executor

    logger.info(f"Created app for agent {agent.name} (runtime {__version__})")
    return app


def serve(agent: AgentConfig, host: str = "0.0.0.0", port: int = 8000, **kwargs) -> None:
    """Serve an agent with uvicorn. Extra keyword arguments go to ``create_app``."""
    import uvicorn

    setup_logging()

    uvicorn.run(create_app(agent, **kwargs), host=host, port=port, log_level="info")
