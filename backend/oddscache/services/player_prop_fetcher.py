"""
backend/oddscache/services/player_prop_fetcher.py

Purpose:
    Player-prop tier of the refresh cycle. The provider scopes prop markets
    to a single event, so this phase makes one call per event. Calls run in a
    bounded pool (default size 1, i.e. sequential) and each one first takes
    a token from the provider rate limiter. A failure for one event is logged
    and counted; the remaining events still run.

Dependencies:
    - asyncio
    - oddscache.services.provider_rate_limiter
    - oddscache.services.cache_writer
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from oddscache.config import RefreshPolicy
from oddscache.models.odds_cache import OddsTier
from oddscache.models.provider import ProviderEvent
from oddscache.monitoring.refresh_metrics import METRIC_ODDS_WRITTEN, METRIC_PROPS_EVENT_FAILURES
from oddscache.providers.base import BaseOddsProvider
from oddscache.services.cache_writer import CacheWriter, build_quote
from oddscache.services.provider_rate_limiter import ProviderRateLimiter, provider_rate_limiter
from oddscache.services.refresh_types import PhaseResult
from oddscache.utils import utcnow

logger = logging.getLogger("oddscache.player_props")

RATE_LIMIT_KEY = "theoddsapi"


class PlayerPropFetcher:
    def __init__(
        self,
        provider: BaseOddsProvider,
        writer: CacheWriter,
        policy: RefreshPolicy,
        rate_limiter: Optional[ProviderRateLimiter] = None,
    ):
        self._provider = provider
        self._writer = writer
        self._policy = policy
        self._limiter = rate_limiter or provider_rate_limiter

    async def fetch_and_cache(self, sport_key: str, events: list[ProviderEvent]) -> PhaseResult:
        result = PhaseResult()
        if not events or not self._policy.player_prop_markets:
            return result

        pool = asyncio.Semaphore(max(1, self._policy.player_props_concurrency))

        async def _run(event: ProviderEvent) -> None:
            async with pool:
                await self._fetch_event(sport_key, event, result)

        await asyncio.gather(*(_run(event) for event in events))

        if result.odds_updated:
            METRIC_ODDS_WRITTEN.labels(sport_key=sport_key, tier=OddsTier.player_prop.value).inc(result.odds_updated)
        logger.info(
            "Player props: %d odds cached from %d API call(s) (%d events failed, %d write failures)",
            result.odds_updated, result.api_calls, len(result.failed_events), result.write_failures,
        )
        return result

    async def _fetch_event(self, sport_key: str, event: ProviderEvent, result: PhaseResult) -> None:
        policy = self._policy
        await self._limiter.acquire(RATE_LIMIT_KEY, policy.player_props_rpm)
        try:
            event_odds = await self._provider.get_event_odds(
                sport_key,
                event.id,
                policy.player_prop_markets,
                policy.bookmakers,
                regions=policy.regions,
                odds_format=policy.odds_format,
            )
        except Exception as e:
            result.failed_events.append(event.id)
            METRIC_PROPS_EVENT_FAILURES.labels(sport_key=sport_key).inc()
            logger.error("Error fetching props for event %s: %s", event.id, e)
            return
        result.api_calls += 1

        now = utcnow()
        for bookmaker in event_odds.bookmakers:
            for market in bookmaker.markets:
                quote = build_quote(
                    sport_key, event, bookmaker, market,
                    tier=OddsTier.player_prop.value,
                    ttl_seconds=policy.ttl_for(OddsTier.player_prop.value),
                    now=now,
                )
                written = await self._writer.upsert_odds(quote)
                if written.ok:
                    result.odds_updated += 1
                else:
                    result.write_failures += 1
