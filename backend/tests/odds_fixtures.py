"""
backend/tests/odds_fixtures.py

Purpose:
    Payload builders and a scripted in-memory provider shared by the refresh
    pipeline tests.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from oddscache.config import RefreshPolicy
from oddscache.models.provider import ProviderBatch, ProviderEvent
from oddscache.providers.base import BaseOddsProvider

NOW = datetime(2026, 9, 13, 17, 0, tzinfo=timezone.utc)
KICKOFF = NOW + timedelta(days=1)


def event_payload(
    event_id: str,
    *,
    home: str = "Kansas City Chiefs",
    away: str = "Buffalo Bills",
    commence_time: Optional[datetime] = None,
    bookmakers: Optional[list[dict]] = None,
) -> dict[str, Any]:
    return {
        "id": event_id,
        "sport_key": "americanfootball_nfl",
        "sport_title": "NFL",
        "commence_time": (commence_time or KICKOFF).isoformat().replace("+00:00", "Z"),
        "home_team": home,
        "away_team": away,
        "bookmakers": bookmakers or [],
    }


def market_payload(key: str, outcomes: Optional[list[dict]] = None) -> dict[str, Any]:
    return {
        "key": key,
        "last_update": "2026-09-13T16:59:30Z",
        "outcomes": outcomes if outcomes is not None else [
            {"name": "Kansas City Chiefs", "price": -135},
            {"name": "Buffalo Bills", "price": 115},
        ],
    }


def bookmaker_payload(key: str, markets: list[str]) -> dict[str, Any]:
    return {
        "key": key,
        "title": key.title(),
        "last_update": "2026-09-13T16:59:30Z",
        "markets": [market_payload(m) for m in markets],
    }


def prop_payload(event_id: str, bookmaker: str, markets: list[str]) -> dict[str, Any]:
    return event_payload(
        event_id,
        bookmakers=[{
            "key": bookmaker,
            "markets": [
                market_payload(m, [
                    {"name": "Over", "description": "Patrick Mahomes", "price": -110, "point": 1.5},
                    {"name": "Under", "description": "Patrick Mahomes", "price": -110, "point": 1.5},
                ])
                for m in markets
            ],
        }],
    )


def event(payload: dict[str, Any]) -> ProviderEvent:
    return ProviderEvent.model_validate(payload)


def make_policy(**overrides) -> RefreshPolicy:
    fields = {
        "sport_key": "americanfootball_nfl",
        "bookmakers": ("draftkings", "fanduel"),
        "main_line_markets": ("h2h", "spreads", "totals"),
        "player_prop_markets": ("player_pass_tds", "player_anytime_td", "player_rush_yds"),
        "main_lines_ttl_seconds": 120,
        "player_props_ttl_seconds": 90,
        "interval_seconds": 60,
        "player_props_rpm": 0,
    }
    fields.update(overrides)
    return RefreshPolicy(**fields)


class FakeOddsProvider(BaseOddsProvider):
    """Scripted provider: canned payloads per endpoint, optional errors, call log."""

    def __init__(
        self,
        listing: Optional[list[dict]] = None,
        sport_odds: Optional[list[dict]] = None,
        event_odds: Optional[dict[str, Any]] = None,
    ):
        self.listing = listing or []
        self.sport_odds = sport_odds or []
        # event_id -> payload dict, or an Exception to raise for that event
        self.event_odds = event_odds or {}
        self.list_error: Optional[Exception] = None
        self.sport_odds_error: Optional[Exception] = None
        self.calls: list[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def list_events(self, sport_key: str) -> ProviderBatch:
        self.calls.append(("list_events", sport_key))
        if self.list_error is not None:
            raise self.list_error
        return ProviderBatch(events=[event(p) for p in self.listing])

    async def get_sport_odds(self, sport_key, markets, bookmakers, *, regions="us", odds_format="american"):
        self.calls.append(("get_sport_odds", sport_key, tuple(markets), tuple(bookmakers)))
        if self.sport_odds_error is not None:
            raise self.sport_odds_error
        return ProviderBatch(events=[event(p) for p in self.sport_odds])

    async def get_event_odds(self, sport_key, event_id, markets, bookmakers, *, regions="us", odds_format="american"):
        self.calls.append(("get_event_odds", sport_key, event_id, tuple(markets)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Yield so a wider pool would have other calls in flight here.
            await asyncio.sleep(0)
            await asyncio.sleep(0)
        finally:
            self.in_flight -= 1
        scripted = self.event_odds.get(event_id)
        if isinstance(scripted, Exception):
            raise scripted
        if scripted is None:
            return event(event_payload(event_id))
        return event(scripted)

    def calls_to(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]
