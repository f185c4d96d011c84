"""Codex CLI adapter."""

from __future__ import annotations

import logging

from agentrelay.infra.agents.base import (
    iter_json_lines,
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

FINAL_CHANNEL = "final"


class CodexAdapter:
    """Adapter for the Codex CLI in non-interactive ``exec`` mode.

    Generates commands like:
        codex exec --json --skip-git-repo-check 'prompt'
        codex exec resume 'THREAD' --json --skip-git-repo-check 'prompt'

    Output is one JSON event per line; ``thread.started`` announces the
    thread id and ``item.completed`` events carry agent messages.
    """

    descriptor = AgentDescriptor(id=AgentType.CODEX.value, label="Codex")

    def build_command(self, request: CommandRequest) -> str:
        parts = ["codex", "exec"]
        if request.session_id:
            parts.extend(["resume", shell_quote(request.session_id)])
        parts.extend(["--json", "--skip-git-repo-check"])
        parts.extend(optional_flag("--model", request.model))
        if request.thinking:
            parts.extend(
                optional_flag("--config", f'model_reasoning_effort="{request.thinking}"')
            )
        parts.append(prompt_argument(request))
        return " ".join(parts)

    def parse_output(self, output: str) -> ParsedAgentOutput:
        session_id = ""
        saw_json = False
        last_message = ""
        final_message = ""

        for event in iter_json_lines(output):
            saw_json = True
            event_type = event.get("type")
            if event_type == "thread.started":
                session_id = sanitize_session_id(event.get("thread_id")) or session_id
                continue
            if event_type != "item.completed":
                continue
            item = event.get("item")
            if not isinstance(item, dict) or not isinstance(item.get("text"), str):
                continue
            if "message" not in str(item.get("type") or ""):
                continue
            last_message = item["text"]
            if item.get("channel") == FINAL_CHANNEL:
                final_message = item["text"]

        text = final_message or last_message
        return ParsedAgentOutput(
            text=text.strip(),
            session_id=session_id,
            saw_structured_output=saw_json,
        )
