"""Claude Code headless adapter."""

from __future__ import annotations

import logging
import re

from agentrelay.infra.agents.base import (
    load_json_document,
    optional_flag,
    prompt_argument,
    sanitize_session_id,
    shell_quote,
)
from agentrelay.models.agent import (
    AgentDescriptor,
    AgentType,
    CommandRequest,
    ParsedAgentOutput,
)

logger = logging.getLogger(__name__)

_UUID = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_uuid(value: str) -> bool:
    return bool(value) and bool(_UUID.match(value.strip()))


class ClaudeAdapter:
    """Adapter for Claude Code in print mode.

    Generates commands like:
        claude -p 'prompt' --output-format json --dangerously-skip-permissions
        claude -p 'prompt' ... --resume 'UUID'

    Claude only resumes by UUID, so any other stored id is dropped and a
    fresh session starts instead. Claude has no notion of wall-clock time,
    so prompts get a timestamp prefix.
    """

    descriptor = AgentDescriptor(
        id=AgentType.CLAUDE.value,
        label="Claude",
        prefix_timestamp=True,
    )

    def build_command(self, request: CommandRequest) -> str:
        parts = [
            "claude",
            "-p",
            prompt_argument(request),
            "--output-format",
            "json",
            "--dangerously-skip-permissions",
        ]
        parts.extend(optional_flag("--model", request.model))
        session_id = sanitize_session_id(request.session_id)
        if is_valid_uuid(session_id):
            parts.extend(["--resume", shell_quote(session_id)])
        elif request.session_id:
            logger.debug("Ignoring non-UUID claude session id %r", request.session_id)
        return " ".join(parts)

    def parse_output(self, output: str) -> ParsedAgentOutput:
        payload = load_json_document(output)
        if payload is None:
            return ParsedAgentOutput()

        result = payload.get("result")
        text = result if isinstance(result, str) else ""
        return ParsedAgentOutput(
            text=text.strip(),
            session_id=sanitize_session_id(payload.get("session_id")),
            saw_structured_output=True,
        )
