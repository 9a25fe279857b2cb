"""
backend/oddscache/services/main_line_fetcher.py

Purpose:
    Main-line tier of the refresh cycle. The provider can fan out primary
    markets (moneyline, spread, total) across every event of a sport, so this
    phase makes exactly one upstream call and writes an Event row followed by
    one OddsQuote per (bookmaker, market) for each event in the response.

Dependencies:
    - oddscache.providers.base
    - oddscache.services.cache_writer
"""

from __future__ import annotations

import logging
from datetime import timedelta

from oddscache.config import RefreshPolicy
from oddscache.models.odds_cache import OddsTier
from oddscache.models.provider import ProviderEvent
from oddscache.monitoring.refresh_metrics import METRIC_ODDS_WRITTEN
from oddscache.providers.base import BaseOddsProvider
from oddscache.services.cache_writer import CacheWriter, build_quote
from oddscache.services.refresh_types import PhaseResult
from oddscache.utils import utcnow

logger = logging.getLogger("oddscache.main_lines")


class MainLineFetcher:
    def __init__(self, provider: BaseOddsProvider, writer: CacheWriter, policy: RefreshPolicy):
        self._provider = provider
        self._writer = writer
        self._policy = policy

    async def fetch_and_cache(self, sport_key: str, events: list[ProviderEvent]) -> PhaseResult:
        """One batched call; any provider error propagates and is not retried."""
        policy = self._policy
        result = PhaseResult()

        batch = await self._provider.get_sport_odds(
            sport_key,
            policy.main_line_markets,
            policy.bookmakers,
            regions=policy.regions,
            odds_format=policy.odds_format,
        )
        result.api_calls = 1
        result.skipped_events = batch.skipped

        now = utcnow()
        expires_at = now + timedelta(seconds=policy.main_lines_ttl_seconds)
        seen: set[str] = set()

        for event in batch.events:
            seen.add(event.id)
            # Event row first so quotes never reference an uncached event.
            written = await self._writer.upsert_event(sport_key, event, expires_at, now=now)
            if written.ok:
                result.events_written += 1
            else:
                result.write_failures += 1

            for bookmaker in event.bookmakers:
                for market in bookmaker.markets:
                    quote = build_quote(
                        sport_key, event, bookmaker, market,
                        tier=OddsTier.main_line.value,
                        ttl_seconds=policy.ttl_for(OddsTier.main_line.value),
                        now=now,
                    )
                    written = await self._writer.upsert_odds(quote)
                    if written.ok:
                        result.odds_updated += 1
                    else:
                        result.write_failures += 1

        # Listed events the odds endpoint had nothing for are still cached.
        for event in events:
            if event.id in seen:
                continue
            written = await self._writer.upsert_event(sport_key, event, expires_at, now=now)
            if written.ok:
                result.events_written += 1
            else:
                result.write_failures += 1

        if result.odds_updated:
            METRIC_ODDS_WRITTEN.labels(sport_key=sport_key, tier=OddsTier.main_line.value).inc(result.odds_updated)
        logger.info(
            "Main lines: %d odds cached from %d API call(s) (%d write failures, %d malformed events)",
            result.odds_updated, result.api_calls, result.write_failures, result.skipped_events,
        )
        return result
