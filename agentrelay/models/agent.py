"""Agent adapter domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AgentType(str, Enum):
    CODEX = "codex"
    CLAUDE = "claude"
    GEMINI = "gemini"
    OPENCODE = "opencode"


@dataclass(frozen=True)
class AgentDescriptor:
    """Static description of a supported agent CLI."""

    id: str
    label: str
    needs_pty: bool = False
    merge_stderr: bool = False
    default_model: str = ""
    prefix_timestamp: bool = False


@dataclass(frozen=True)
class CommandRequest:
    """Parameters for building a single agent invocation.

    ``prompt_expression`` replaces the quoted prompt text verbatim, e.g.
    ``'"$AGENT_PROMPT"'`` when the prompt travels through the environment.
    """

    prompt: str = ""
    prompt_expression: str = ""
    session_id: str = ""
    model: str = ""
    thinking: str = ""


@dataclass(frozen=True)
class ParsedAgentOutput:
    """Normalized result of one agent run."""

    text: str = ""
    session_id: str = ""
    saw_structured_output: bool = False

    @property
    def is_usable(self) -> bool:
        """True when the output is worth returning despite a failed exit."""
        return self.saw_structured_output or bool(self.text.strip())

    def with_session_id(self, session_id: str) -> ParsedAgentOutput:
        """Return a copy carrying a recovered session id."""
        return ParsedAgentOutput(
            text=self.text,
            session_id=session_id,
            saw_structured_output=self.saw_structured_output,
        )
