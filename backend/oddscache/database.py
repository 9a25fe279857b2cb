"""
backend/oddscache/database.py

Purpose:
    MongoDB connection bootstrap and index management for the odds cache
    collections (cached_events, cached_odds, odds_update_log).

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - oddscache.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, OperationFailure

from oddscache.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("oddscache.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=10,
        minPoolSize=1,
        tz_aware=True,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()


async def close_db() -> None:
    global client
    if client:
        client.close()


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent, safe to run repeatedly."""

    # ---- Cached events ----
    # Natural key: one row per provider event within a sport.
    try:
        await db.cached_events.create_index(
            [("sport_key", ASCENDING), ("event_id", ASCENDING)],
            unique=True,
            name="cached_events_natural_key",
        )
    except (DuplicateKeyError, OperationFailure) as exc:
        logger.warning("Skipped unique cached_events index due to duplicate data: %s", exc)
    await db.cached_events.create_index([("sport_key", ASCENDING), ("commence_time", ASCENDING)])
    await db.cached_events.create_index("expires_at")

    # ---- Cached odds ----
    try:
        await db.cached_odds.create_index(
            [
                ("sport_key", ASCENDING),
                ("event_id", ASCENDING),
                ("bookmaker_key", ASCENDING),
                ("market_key", ASCENDING),
            ],
            unique=True,
            name="cached_odds_natural_key",
        )
    except (DuplicateKeyError, OperationFailure) as exc:
        logger.warning("Skipped unique cached_odds index due to duplicate data: %s", exc)
    # Reader path: fresh + future rows for a sport, ordered by kickoff.
    await db.cached_odds.create_index(
        [("sport_key", ASCENDING), ("commence_time", ASCENDING), ("expires_at", ASCENDING)]
    )
    # Reaper path.
    await db.cached_odds.create_index("expires_at")

    # ---- Update log (append-only history) ----
    await db.odds_update_log.create_index([("sport_key", ASCENDING), ("started_at", DESCENDING)])
    await db.odds_update_log.create_index("status")
