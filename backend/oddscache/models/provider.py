"""
backend/oddscache/models/provider.py

Purpose:
    Typed shapes of The Odds API v4 payloads (event -> bookmakers -> markets
    -> outcomes), validated at the ingestion boundary so a malformed entry
    fails that one event instead of being mis-mapped into the cache.

Dependencies:
    - pydantic
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProviderOutcome(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    price: float
    point: Optional[float] = None
    description: Optional[str] = None


class ProviderMarket(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str
    last_update: Optional[datetime] = None
    outcomes: list[ProviderOutcome] = Field(default_factory=list)


class ProviderBookmaker(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str
    title: Optional[str] = None
    last_update: Optional[datetime] = None
    markets: list[ProviderMarket] = Field(default_factory=list)


class ProviderEvent(BaseModel):
    """One event as returned by /events, /odds or /events/{id}/odds."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    sport_key: Optional[str] = None
    sport_title: Optional[str] = None
    commence_time: datetime
    home_team: str
    away_team: str
    bookmakers: list[ProviderBookmaker] = Field(default_factory=list)

    @property
    def event_name(self) -> str:
        return f"{self.away_team} @ {self.home_team}"


class ProviderBatch(BaseModel):
    """Validated entries of a list payload plus how many entries were rejected."""

    events: list[ProviderEvent] = Field(default_factory=list)
    skipped: int = 0
