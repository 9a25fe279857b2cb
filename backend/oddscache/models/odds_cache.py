"""
backend/oddscache/models/odds_cache.py

Purpose:
    Document shapes for the odds cache collections: cached events, cached
    odds quotes (one per event/bookmaker/market) and the refresh audit log.

Dependencies:
    - pydantic
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class OddsTier(str, Enum):
    main_line = "main_line"
    player_prop = "player_prop"


class UpdateStatus(str, Enum):
    running = "running"
    completed = "completed"
    failed = "failed"


class Outcome(BaseModel):
    name: str
    price: float
    point: Optional[float] = None
    description: Optional[str] = None  # player name on prop markets


class CachedEvent(BaseModel):
    """One scheduled contest. Natural key: (sport_key, event_id)."""
    sport_key: str
    event_id: str
    event_name: str                       # "Away @ Home"
    home_team: str
    away_team: str
    commence_time: datetime
    last_cached_at: datetime
    expires_at: datetime
    metadata: dict[str, Any] = {}         # {sport_title}


class CachedOdds(BaseModel):
    """One market snapshot from one bookmaker for one event.

    Natural key: (sport_key, event_id, bookmaker_key, market_key). Each
    refresh replaces ``outcomes`` wholesale.
    """
    sport_key: str
    event_id: str
    event_name: str
    commence_time: datetime
    bookmaker_key: str
    market_key: str
    outcomes: list[Outcome]
    last_updated: datetime
    expires_at: datetime
    metadata: dict[str, Any] = {}         # {tier, provider_last_update}

    @property
    def tier(self) -> str:
        return str(self.metadata.get("tier", OddsTier.main_line.value))

    def natural_key(self) -> dict[str, str]:
        return {
            "sport_key": self.sport_key,
            "event_id": self.event_id,
            "bookmaker_key": self.bookmaker_key,
            "market_key": self.market_key,
        }


class UpdateLogRecord(BaseModel):
    """Append-only audit entry for one refresh cycle.

    Created ``running``; moved exactly once to ``completed`` or ``failed``.
    """
    id: Optional[str] = Field(default=None, alias="_id")
    sport_key: str
    update_type: str = "full_refresh"
    status: UpdateStatus = UpdateStatus.running
    started_at: datetime
    completed_at: Optional[datetime] = None
    events_updated: int = 0
    odds_updated: int = 0
    api_calls_made: int = 0
    write_failures: int = 0
    props_failed_events: int = 0
    expired_purged: int = 0
    error_message: Optional[str] = None

    model_config = {"populate_by_name": True, "use_enum_values": True, "validate_default": True}
