"""Agent adapter factory/registry."""

from __future__ import annotations

from agentrelay.infra.agents.base import AgentAdapter
from agentrelay.infra.agents.claude import ClaudeAdapter
from agentrelay.infra.agents.codex import CodexAdapter
from agentrelay.infra.agents.gemini import GeminiAdapter
from agentrelay.infra.agents.opencode import OpenCodeAdapter
from agentrelay.models.agent import AgentDescriptor, AgentType

_ADAPTERS: dict[AgentType, AgentAdapter] = {
    AgentType.CODEX: CodexAdapter(),
    AgentType.CLAUDE: ClaudeAdapter(),
    AgentType.GEMINI: GeminiAdapter(),
    AgentType.OPENCODE: OpenCodeAdapter(),
}


class UnknownAgentError(ValueError):
    """Raised for agent ids outside the fixed registry."""


def _check_registry() -> None:
    for agent_type in AgentType:
        adapter = _ADAPTERS.get(agent_type)
        if adapter is None:
            raise RuntimeError(f"No adapter registered for agent: {agent_type.value}")
        if not isinstance(adapter, AgentAdapter):
            raise RuntimeError(f"Adapter for {agent_type.value} is incomplete")
        if adapter.descriptor.id != agent_type.value:
            raise RuntimeError(
                f"Adapter id mismatch: {adapter.descriptor.id} != {agent_type.value}"
            )


_check_registry()


def normalize_agent(value: AgentType | str) -> str:
    """Return the canonical agent id, or an empty string if unknown."""
    if isinstance(value, AgentType):
        return value.value
    candidate = str(value or "").strip().lower()
    return candidate if candidate in {t.value for t in AgentType} else ""


def get_agent(agent_id: AgentType | str) -> AgentAdapter:
    """Get the adapter for an agent id."""
    normalized = normalize_agent(agent_id)
    if not normalized:
        raise UnknownAgentError(f"Unknown agent: {agent_id}")
    return _ADAPTERS[AgentType(normalized)]


def get_agent_label(agent_id: AgentType | str) -> str:
    normalized = normalize_agent(agent_id)
    if not normalized:
        return str(agent_id)
    return _ADAPTERS[AgentType(normalized)].descriptor.label


def list_agents() -> list[AgentDescriptor]:
    return [adapter.descriptor for adapter in _ADAPTERS.values()]
