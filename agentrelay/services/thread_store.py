"""Thread map lookups: conversation scope + agent -> agent session id.

All functions mutate the given mapping in place and never persist it; the
caller saves the map after any change.
"""

from __future__ import annotations

import logging

from agentrelay.models.conversation import ConversationScope, ThreadResolution

logger = logging.getLogger(__name__)


def resolve_thread(
    threads: dict[str, str], scope: ConversationScope, agent_id: str
) -> ThreadResolution:
    """Look up the session for a conversation, migrating legacy entries.

    This is a read with a possible write: when the canonical key misses but
    a legacy scope-only key holds a session, the value is moved to the
    canonical key, the legacy key is deleted and ``migrated`` is True.
    The caller must persist ``threads`` when ``migrated`` is set.
    """
    key = scope.thread_key(agent_id)
    direct = threads.get(key)
    if direct:
        return ThreadResolution(key=key, session_id=direct)

    for legacy_key in scope.legacy_keys:
        legacy = threads.get(legacy_key)
        if legacy:
            threads[key] = legacy
            del threads[legacy_key]
            logger.info("Migrated legacy thread %s -> %s", legacy_key, key)
            return ThreadResolution(key=key, session_id=legacy, migrated=True)

    return ThreadResolution(key=key)


def set_thread(
    threads: dict[str, str], scope: ConversationScope, agent_id: str, session_id: str
) -> str:
    """Store a session id under the canonical key. Returns the key."""
    key = scope.thread_key(agent_id)
    threads[key] = session_id
    return key


def clear_thread(threads: dict[str, str], scope: ConversationScope, agent_id: str) -> bool:
    """Drop the canonical and legacy entries. Returns True if any existed."""
    removed = threads.pop(scope.thread_key(agent_id), None) is not None
    for legacy_key in scope.legacy_keys:
        if threads.pop(legacy_key, None) is not None:
            removed = True
    return removed
