"""Agent adapter protocol definition and shared command/parsing helpers."""

from __future__ import annotations

import json
import re
from typing import Any, Iterator, Protocol, runtime_checkable

from agentrelay.models.agent import AgentDescriptor, CommandRequest, ParsedAgentOutput

_SAFE_ARG = re.compile(r"^[A-Za-z0-9._:@/=+-]+$")


@runtime_checkable
class AgentAdapter(Protocol):
    """Protocol for agent CLI adapters.

    Each adapter knows how to turn a CommandRequest into a shell command line
    for its CLI, and how to normalize that CLI's stdout. Session and model
    listing are optional capabilities; use ``supports_session_listing`` and
    ``supports_model_listing`` before calling them.
    """

    descriptor: AgentDescriptor

    def build_command(self, request: CommandRequest) -> str:
        """Build the shell command line for one invocation."""
        ...

    def parse_output(self, output: str) -> ParsedAgentOutput:
        """Extract reply text and session id from raw stdout."""
        ...


def supports_session_listing(adapter: object) -> bool:
    return callable(getattr(adapter, "list_sessions_command", None)) and callable(
        getattr(adapter, "parse_session_list", None)
    )


def supports_model_listing(adapter: object) -> bool:
    return callable(getattr(adapter, "list_models_command", None))


def shell_quote(value: object) -> str:
    """Single-quote a value for POSIX shells, escaping embedded quotes."""
    escaped = str(value).replace("'", "'\\''")
    return f"'{escaped}'"


def shell_arg(value: object) -> str:
    """Leave plain tokens bare, quote anything with shell metacharacters."""
    text = str(value)
    if text and _SAFE_ARG.match(text):
        return text
    return shell_quote(text)


def prompt_argument(request: CommandRequest) -> str:
    if request.prompt_expression:
        return request.prompt_expression
    return shell_quote(request.prompt)


def optional_flag(flag: str, value: str) -> list[str]:
    if not value:
        return []
    return [flag, shell_quote(value)]


def sanitize_session_id(value: object) -> str:
    """Strip quote/escape debris some CLIs leave at the end of ids."""
    if not isinstance(value, str):
        return ""
    return value.strip().rstrip('\\"').strip()


def iter_json_lines(output: str) -> Iterator[dict[str, Any]]:
    """Yield every stdout line that parses as a JSON object.

    Log noise and truncated records are skipped.
    """
    for line in (output or "").splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            yield payload


def load_json_document(output: str) -> dict[str, Any] | None:
    """Parse stdout as one JSON object, tolerating surrounding noise."""
    text = (output or "").strip()
    if not text:
        return None
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        payload = None
        start = text.find("{")
        end = text.rfind("}")
        if start != -1 and end > start:
            try:
                payload = json.loads(text[start : end + 1])
            except json.JSONDecodeError:
                payload = None
        if payload is None:
            # Fall back to the last complete record on its own line
            for record in iter_json_lines(text):
                payload = record
    return payload if isinstance(payload, dict) else None
