"""CLI helpers for building the app context."""

from __future__ import annotations

import asyncio

from pymongo.errors import PyMongoError

from agentrelay.context import AppContext
from agentrelay.models.conversation import ConversationScope


def run(coro):
    """Run an async function from sync context."""
    return asyncio.run(coro)


async def get_context() -> AppContext:
    """Create and initialize an AppContext. Raises if MongoDB is unreachable."""
    ctx = AppContext()
    try:
        await ctx.initialize()
    except (OSError, PyMongoError) as e:
        raise SystemExit(f"Could not initialize agentrelay: {e}") from e
    return ctx


def make_scope(chat_id: str, topic: str = "") -> ConversationScope:
    return ConversationScope(chat_id=chat_id, topic_id=topic)
