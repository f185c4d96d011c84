"""OpenCode CLI adapter."""

from __future__ import annotations

import logging

from agentrelay.infra.agents.base import (
    iter_json_lines,
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

DEFAULT_MODEL = "opencode/gpt-5-nano"
PERMISSION_ENV = """OPENCODE_PERMISSION='{"*": "allow"}'"""


class OpenCodeAdapter:
    """Adapter for ``opencode run``.

    Generates commands like:
        OPENCODE_PERMISSION='{"*": "allow"}' opencode run --format json \\
            --model 'MODEL' [--continue --session 'ID'] 'prompt' < /dev/null

    stdin is closed so opencode never waits for input, and stderr is merged
    into stdout because opencode logs there.
    """

    descriptor = AgentDescriptor(
        id=AgentType.OPENCODE.value,
        label="OpenCode",
        merge_stderr=True,
        default_model=DEFAULT_MODEL,
    )

    def build_command(self, request: CommandRequest) -> str:
        model = request.model or self.descriptor.default_model
        parts = [
            PERMISSION_ENV,
            "opencode",
            "run",
            "--format",
            "json",
            "--model",
            shell_quote(model),
        ]
        if request.session_id:
            parts.extend(["--continue", "--session", shell_quote(request.session_id)])
        parts.append(prompt_argument(request))
        parts.append("< /dev/null")
        return " ".join(parts)

    def parse_output(self, output: str) -> ParsedAgentOutput:
        session_id = ""
        saw_json = False
        fragments: list[str] = []

        for event in iter_json_lines(output):
            saw_json = True
            session_id = sanitize_session_id(event.get("sessionID")) or session_id
            if event.get("type") != "text":
                continue
            part = event.get("part")
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                fragments.append(part["text"])

        return ParsedAgentOutput(
            text="".join(fragments).strip(),
            session_id=session_id,
            saw_structured_output=saw_json,
        )

    def list_models_command(self) -> str:
        return "opencode models"

    def parse_model_list(self, output: str) -> str:
        """Return one model id per line, deduplicated, in listed order."""
        seen: dict[str, None] = {}
        for line in (output or "").splitlines():
            model = line.strip()
            if model and " " not in model:
                seen.setdefault(model, None)
        return "\n".join(seen)
