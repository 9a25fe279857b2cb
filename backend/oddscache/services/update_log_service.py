"""Best-effort audit trail for refresh cycles.

Each cycle gets one odds_update_log entry: inserted as ``running`` and moved
exactly once to ``completed`` or ``failed``. Terminal updates filter on
``status: running`` so a finished entry is never rewritten. Write failures
are logged and swallowed; the audit trail must never stop the data path.
"""

import logging
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

import oddscache.database as _db
from oddscache.models.odds_cache import UpdateLogRecord, UpdateStatus
from oddscache.utils import utcnow

logger = logging.getLogger("oddscache.update_log")


def _as_object_id(log_id: str) -> ObjectId | str:
    try:
        return ObjectId(log_id)
    except (InvalidId, TypeError):
        return log_id


class UpdateAuditLog:
    async def begin(self, sport_key: str, update_type: str = "full_refresh") -> Optional[str]:
        doc = UpdateLogRecord(
            sport_key=sport_key,
            update_type=update_type,
            started_at=utcnow(),
        ).model_dump(exclude={"id"})
        try:
            result = await _db.db.odds_update_log.insert_one(doc)
        except PyMongoError:
            logger.exception("Failed to create update log: sport=%s type=%s", sport_key, update_type)
            return None
        return str(result.inserted_id)

    async def _finish(self, log_id: Optional[str], fields: dict[str, Any]) -> bool:
        if not log_id:
            return False
        try:
            result = await _db.db.odds_update_log.update_one(
                {"_id": _as_object_id(log_id), "status": UpdateStatus.running.value},
                {"$set": {**fields, "completed_at": utcnow()}},
            )
        except PyMongoError:
            logger.exception("Failed to finalize update log %s", log_id)
            return False
        if not result.modified_count:
            logger.warning("Update log %s was not running; terminal state left unchanged", log_id)
            return False
        return True

    async def complete(
        self,
        log_id: Optional[str],
        events_updated: int,
        odds_updated: int,
        api_calls_made: int,
        **extra_counters: int,
    ) -> bool:
        return await self._finish(log_id, {
            "status": UpdateStatus.completed.value,
            "events_updated": events_updated,
            "odds_updated": odds_updated,
            "api_calls_made": api_calls_made,
            **extra_counters,
        })

    async def fail(self, log_id: Optional[str], error_message: str, **extra_counters: int) -> bool:
        return await self._finish(log_id, {
            "status": UpdateStatus.failed.value,
            "error_message": error_message or "unknown error",
            **extra_counters,
        })

    async def recent(self, sport_key: str, limit: int = 10) -> list[dict]:
        """Latest entries for a sport, newest first."""
        try:
            cursor = _db.db.odds_update_log.find({"sport_key": sport_key}).sort("started_at", -1).limit(limit)
            docs = await cursor.to_list(length=limit)
        except PyMongoError:
            logger.exception("Failed to read update log for %s", sport_key)
            return []
        for doc in docs:
            doc["_id"] = str(doc["_id"])
        return docs
