"""
backend/oddscache/services/cache_writer.py

Purpose:
    Idempotent persistence for cached events and odds quotes. Every write is
    an upsert on the entity's natural key; odds outcomes are replaced, never
    merged. Datastore errors are returned as WriteResult instead of raised so
    the fetch loops can count them and keep going.

Dependencies:
    - oddscache.database
    - pymongo
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from pymongo.errors import PyMongoError

import oddscache.database as _db
from oddscache.models.odds_cache import CachedEvent, CachedOdds, Outcome
from oddscache.models.provider import ProviderBookmaker, ProviderEvent, ProviderMarket
from oddscache.monitoring.refresh_metrics import METRIC_WRITE_FAILURES
from oddscache.utils import utcnow

logger = logging.getLogger("oddscache.cache_writer")


@dataclass(frozen=True)
class WriteResult:
    ok: bool
    upserted: bool = False
    error: Optional[str] = None


def build_quote(
    sport_key: str,
    event: ProviderEvent,
    bookmaker: ProviderBookmaker,
    market: ProviderMarket,
    *,
    tier: str,
    ttl_seconds: int,
    now: Optional[datetime] = None,
) -> CachedOdds:
    """Map one provider market into a cache row with expires_at = now + ttl."""
    last_updated = now or utcnow()
    return CachedOdds(
        sport_key=sport_key,
        event_id=event.id,
        event_name=event.event_name,
        commence_time=event.commence_time,
        bookmaker_key=bookmaker.key,
        market_key=market.key,
        outcomes=[Outcome(**o.model_dump()) for o in market.outcomes],
        last_updated=last_updated,
        expires_at=last_updated + timedelta(seconds=ttl_seconds),
        metadata={
            "tier": tier,
            "provider_last_update": market.last_update,
        },
    )


class CacheWriter:
    async def upsert_event(
        self,
        sport_key: str,
        event: ProviderEvent,
        expires_at: datetime,
        *,
        now: Optional[datetime] = None,
    ) -> WriteResult:
        doc = CachedEvent(
            sport_key=sport_key,
            event_id=event.id,
            event_name=event.event_name,
            home_team=event.home_team,
            away_team=event.away_team,
            commence_time=event.commence_time,
            last_cached_at=now or utcnow(),
            expires_at=expires_at,
            metadata={"sport_title": event.sport_title},
        ).model_dump()

        try:
            result = await _db.db.cached_events.update_one(
                {"sport_key": sport_key, "event_id": event.id},
                {"$set": doc},
                upsert=True,
            )
        except PyMongoError as exc:
            METRIC_WRITE_FAILURES.labels(collection="cached_events").inc()
            logger.error("Error caching event %s/%s: %s", sport_key, event.id, exc)
            return WriteResult(ok=False, error=str(exc))
        return WriteResult(ok=True, upserted=result.upserted_id is not None)

    async def upsert_odds(self, quote: CachedOdds) -> WriteResult:
        doc = quote.model_dump(exclude_none=True)
        # Keep the key even when the provider omitted it, so reads see one shape.
        doc["metadata"].setdefault("provider_last_update", None)

        try:
            result = await _db.db.cached_odds.update_one(
                quote.natural_key(),
                {"$set": doc},
                upsert=True,
            )
        except PyMongoError as exc:
            METRIC_WRITE_FAILURES.labels(collection="cached_odds").inc()
            logger.error(
                "Error caching odds %s/%s/%s/%s: %s",
                quote.sport_key, quote.event_id, quote.bookmaker_key, quote.market_key, exc,
            )
            return WriteResult(ok=False, error=str(exc))
        return WriteResult(ok=True, upserted=result.upserted_id is not None)
