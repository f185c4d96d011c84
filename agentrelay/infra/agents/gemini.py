"""Gemini CLI adapter."""

from __future__ import annotations

import logging
import re

from agentrelay.infra.agents.base import (
    load_json_document,
    optional_flag,
    prompt_argument,
    sanitize_session_id,
    shell_arg,
)
from agentrelay.models.agent import (
    AgentDescriptor,
    AgentType,
    CommandRequest,
    ParsedAgentOutput,
)

logger = logging.getLogger(__name__)

# "  2. Bar (just now) [22222222-2222-2222-2222-222222222222]"
_SESSION_LINE = re.compile(r"\[([0-9A-Za-z][0-9A-Za-z._-]*)\]\s*$")


class GeminiAdapter:
    """Adapter for the Gemini CLI in headless mode.

    Generates commands like:
        gemini -p 'prompt' --output-format json --yolo [--resume SESSION]

    The JSON document does not always carry a session id, so the runner
    falls back to ``gemini --list-sessions`` and takes the newest entry.
    """

    descriptor = AgentDescriptor(id=AgentType.GEMINI.value, label="Gemini")

    def build_command(self, request: CommandRequest) -> str:
        parts = [
            "gemini",
            "-p",
            prompt_argument(request),
            "--output-format",
            "json",
            "--yolo",
        ]
        parts.extend(optional_flag("--model", request.model))
        if request.session_id:
            parts.extend(["--resume", shell_arg(request.session_id)])
        return " ".join(parts)

    def parse_output(self, output: str) -> ParsedAgentOutput:
        payload = load_json_document(output)
        if payload is None:
            return ParsedAgentOutput()

        response = payload.get("response")
        text = response if isinstance(response, str) else ""
        session_id = payload.get("session_id") or payload.get("sessionId")
        return ParsedAgentOutput(
            text=text.strip(),
            session_id=sanitize_session_id(session_id),
            saw_structured_output=True,
        )

    def list_sessions_command(self) -> str:
        return "gemini --list-sessions"

    def parse_session_list(self, output: str) -> str:
        """Return the id of the most recent session (listed last)."""
        latest = ""
        for line in (output or "").splitlines():
            match = _SESSION_LINE.search(line.strip())
            if match:
                latest = match.group(1)
        return latest
