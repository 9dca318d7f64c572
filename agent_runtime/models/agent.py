"""Static agent configuration supplied when an executor is built."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any, Literal

from agent_runtime.tools.base import ToolReference

SystemPromptSource = str | Callable[[], str | Awaitable[str]]


@dataclass
class ModelConfiguration:
    """Model selection and sampling parameters."""

    provider: str = "anthropic"
    name: str = "claude-sonnet-4-20250514"
    temperature: float = 0.7
    max_tokens: int = 4096
    api_key: str | None = None


DEFAULT_MODEL = ModelConfiguration()


def resolve_model_configuration(model: "ModelConfiguration | Mapping[str, Any] | None") -> ModelConfiguration:
    """Merge a full or partial model configuration over the defaults."""
    if model is None:
        return replace(DEFAULT_MODEL)
    if isinstance(model, ModelConfiguration):
        return replace(model)

    known = {f.name for f in fields(ModelConfiguration)}
    overrides = {key: value for key, value in model.items() if key in known and value is not None}
    return replace(DEFAULT_MODEL, **overrides)


@dataclass
class StateConfig:
    """Settings for the default state backend."""

    storage: Literal["memory", "redis", "postgres", "custom"] = "memory"
    ttl: int | None = None
    prefix: str | None = None


@dataclass
class AgentConfig:
    """Everything an executor needs to know about one agent."""

    name: str
    system_prompt: SystemPromptSource
    version: str = "0.1.0"
    description: str | None = None
    model: ModelConfiguration | Mapping[str, Any] | None = None
    tools: list[ToolReference] = field(default_factory=list)
    state: StateConfig | None = None
