"""
backend/oddscache/services/cache_reader.py

Purpose:
    Read contract for consumers of the odds cache (the external API layer).
    Only rows that are still fresh AND whose event has not started are ever
    returned, whatever filters the caller passes.

Dependencies:
    - oddscache.database
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

import oddscache.database as _db
from oddscache.utils import utcnow

logger = logging.getLogger("oddscache.cache_reader")


class CacheReader:
    async def get_cached_odds(
        self,
        sport_key: str,
        *,
        markets: Optional[Sequence[str]] = None,
        bookmakers: Optional[Sequence[str]] = None,
        event_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[dict[str, Any]]:
        cutoff = now or utcnow()
        query: dict[str, Any] = {
            "sport_key": sport_key,
            "expires_at": {"$gt": cutoff},
            "commence_time": {"$gt": cutoff},
        }
        if markets:
            query["market_key"] = {"$in": list(markets)}
        if bookmakers:
            query["bookmaker_key"] = {"$in": list(bookmakers)}
        if event_id:
            query["event_id"] = event_id

        docs = await _db.db.cached_odds.find(query, {"_id": 0}).sort("commence_time", 1).to_list(length=None)
        logger.debug("Cache read %s: %d rows", sport_key, len(docs))
        return docs

    async def get_cached_events(
        self,
        sport_key: str,
        *,
        now: Optional[datetime] = None,
    ) -> list[dict[str, Any]]:
        """Fresh, not-yet-started events for a sport, ordered by kickoff."""
        cutoff = now or utcnow()
        return await _db.db.cached_events.find(
            {
                "sport_key": sport_key,
                "expires_at": {"$gt": cutoff},
                "commence_time": {"$gt": cutoff},
            },
            {"_id": 0},
        ).sort("commence_time", 1).to_list(length=None)
