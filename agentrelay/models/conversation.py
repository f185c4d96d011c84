"""Conversation domain model: scopes, thread keys and mutable runner state."""

from __future__ import annotations

from dataclasses import dataclass, field

ROOT_TOPIC = "root"


@dataclass(frozen=True)
class ConversationScope:
    """A chat, optionally narrowed to one topic/thread inside it."""

    chat_id: str
    topic_id: str = ""

    def __post_init__(self) -> None:
        if not str(self.chat_id).strip():
            raise ValueError("ConversationScope must have a chat_id")
        # Accept ints from chat transports but always key on strings
        object.__setattr__(self, "chat_id", str(self.chat_id).strip())
        object.__setattr__(self, "topic_id", str(self.topic_id or "").strip())

    @property
    def is_root(self) -> bool:
        return not self.topic_id or self.topic_id == ROOT_TOPIC

    @property
    def topic_key(self) -> str:
        """Scope-only key, shared by every agent in this conversation."""
        topic = ROOT_TOPIC if self.is_root else self.topic_id
        return f"{self.chat_id}:{topic}"

    def thread_key(self, agent_id: str) -> str:
        """Canonical conversation key: scope plus agent id."""
        return f"{self.topic_key}:{agent_id}"

    @property
    def legacy_keys(self) -> tuple[str, ...]:
        """Keys written by older releases, before agents were part of the key."""
        if self.is_root:
            return (self.topic_key, self.chat_id)
        return (self.topic_key,)


@dataclass(frozen=True)
class ThreadResolution:
    """Outcome of looking up a conversation's agent session."""

    key: str
    session_id: str = ""
    migrated: bool = False


@dataclass(frozen=True)
class TurnOptions:
    """Per-turn inputs besides the prompt text."""

    agent_id: str = ""
    image_paths: tuple[str, ...] = ()
    document_paths: tuple[str, ...] = ()
    script_context: str = ""


@dataclass
class ConversationState:
    """In-memory state shared by the runner for the process lifetime.

    ``threads`` maps conversation keys to agent session ids, ``turns`` counts
    turns per conversation key and ``agent_overrides`` maps topic keys to
    agent ids. The caller owns persistence of ``threads`` and
    ``agent_overrides``; ``turns`` is never persisted.
    """

    threads: dict[str, str] = field(default_factory=dict)
    turns: dict[str, int] = field(default_factory=dict)
    agent_overrides: dict[str, str] = field(default_factory=dict)

    def next_turn(self, key: str) -> int:
        count = self.turns.get(key, 0) + 1
        self.turns[key] = count
        return count
