"""Key/value repositories for the thread map and per-topic agent overrides."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pymongo import ReplaceOne

logger = logging.getLogger(__name__)


class _MappingRepo:
    """Stores a flat ``dict[str, str]`` as one document per key.

    ``save_all`` replaces the whole mapping: keys missing from the given dict
    are deleted, so migrations and resets are persisted too.
    """

    COLLECTION = ""
    VALUE_FIELD = "value"

    def __init__(self, db) -> None:
        self._col = db[self.COLLECTION]

    async def load_all(self) -> dict[str, str]:
        cursor = self._col.find({})
        mapping: dict[str, str] = {}
        async for doc in cursor:
            value = doc.get(self.VALUE_FIELD)
            if isinstance(value, str) and value:
                mapping[str(doc["_id"])] = value
        return mapping

    async def save_all(self, mapping: dict[str, str]) -> None:
        snapshot = dict(mapping)
        now = datetime.now(timezone.utc)
        ops = [
            ReplaceOne(
                {"_id": key},
                {"_id": key, self.VALUE_FIELD: value, "updated_at": now},
                upsert=True,
            )
            for key, value in snapshot.items()
        ]
        if ops:
            await self._col.bulk_write(ops, ordered=False)
        result = await self._col.delete_many({"_id": {"$nin": list(snapshot)}})
        logger.debug(
            "Saved %d %s entries (%d removed)",
            len(snapshot), self.COLLECTION, result.deleted_count,
        )


class ThreadRepo(_MappingRepo):
    """Conversation key -> agent session id."""

    COLLECTION = "threads"
    VALUE_FIELD = "session_id"


class AgentOverrideRepo(_MappingRepo):
    """Topic key -> agent id chosen for that conversation."""

    COLLECTION = "agent_overrides"
    VALUE_FIELD = "agent_id"
