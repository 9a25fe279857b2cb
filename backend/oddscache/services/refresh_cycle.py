"""
backend/oddscache/services/refresh_cycle.py

Purpose:
    One full odds refresh cycle for a sport, in fixed order:
    audit begin -> event listing -> main lines -> player props -> expiry
    sweep -> audit finalize. Event listing and main-line failures abort the
    cycle, mark the audit entry failed and propagate; everything after that
    is failure tolerant.

Dependencies:
    - oddscache.services.*
    - oddscache.providers.odds_api
"""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Optional

from oddscache.config import RefreshPolicy
from oddscache.monitoring.refresh_metrics import METRIC_CYCLE_LATENCY, METRIC_CYCLES_TOTAL
from oddscache.providers.base import BaseOddsProvider
from oddscache.services.cache_writer import CacheWriter
from oddscache.services.event_fetcher import EventFetcher
from oddscache.services.expiry_reaper import ExpiryReaper
from oddscache.services.main_line_fetcher import MainLineFetcher
from oddscache.services.player_prop_fetcher import PlayerPropFetcher
from oddscache.services.provider_rate_limiter import ProviderRateLimiter
from oddscache.services.refresh_types import CycleResult
from oddscache.services.update_log_service import UpdateAuditLog

logger = logging.getLogger("oddscache.refresh_cycle")

UPDATE_TYPE = "full_refresh"


class OddsRefreshCycle:
    def __init__(
        self,
        policy: RefreshPolicy,
        provider: BaseOddsProvider,
        *,
        writer: Optional[CacheWriter] = None,
        reaper: Optional[ExpiryReaper] = None,
        audit: Optional[UpdateAuditLog] = None,
        rate_limiter: Optional[ProviderRateLimiter] = None,
    ):
        self.policy = policy
        writer = writer or CacheWriter()
        self._events = EventFetcher(provider)
        self._main_lines = MainLineFetcher(provider, writer, policy)
        self._player_props = PlayerPropFetcher(provider, writer, policy, rate_limiter=rate_limiter)
        self._reaper = reaper or ExpiryReaper()
        self._audit = audit or UpdateAuditLog()

    async def run(self) -> CycleResult:
        sport_key = self.policy.sport_key
        started = perf_counter()
        log_id = await self._audit.begin(sport_key, UPDATE_TYPE)
        result = CycleResult(sport_key=sport_key, log_id=log_id, status="running")

        try:
            logger.info("Fetching %s events...", sport_key)
            events = await self._events.fetch(sport_key)
            result.api_calls_made += 1

            logger.info("Updating main lines (%s)...", ",".join(self.policy.main_line_markets))
            main = await self._main_lines.fetch_and_cache(sport_key, events)
            result.main_line_odds = main.odds_updated
            result.api_calls_made += main.api_calls
            result.write_failures += main.write_failures

            logger.info("Updating player props for %d events...", len(events))
            props = await self._player_props.fetch_and_cache(sport_key, events)
            result.player_prop_odds = props.odds_updated
            result.api_calls_made += props.api_calls
            result.write_failures += props.write_failures
            result.props_failed_events = len(props.failed_events)

            result.events_updated = len(events)
            result.odds_updated = result.main_line_odds + result.player_prop_odds
            result.expired_purged = await self._reaper.purge()
        except Exception as exc:
            result.status = "failed"
            result.duration_seconds = perf_counter() - started
            message = str(exc) or exc.__class__.__name__
            logger.error("Error updating %s odds: %s", sport_key, message)
            await self._audit.fail(log_id, message, api_calls_made=result.api_calls_made)
            METRIC_CYCLES_TOTAL.labels(sport_key=sport_key, status="failed").inc()
            METRIC_CYCLE_LATENCY.labels(sport_key=sport_key).observe(result.duration_seconds)
            raise

        result.status = "completed"
        result.duration_seconds = perf_counter() - started
        await self._audit.complete(
            log_id,
            result.events_updated,
            result.odds_updated,
            result.api_calls_made,
            write_failures=result.write_failures,
            props_failed_events=result.props_failed_events,
            expired_purged=result.expired_purged,
        )
        METRIC_CYCLES_TOTAL.labels(sport_key=sport_key, status="completed").inc()
        METRIC_CYCLE_LATENCY.labels(sport_key=sport_key).observe(result.duration_seconds)
        logger.info(
            "%s update complete: %d events, %d odds updated, %d API calls, %d expired purged",
            sport_key, result.events_updated, result.odds_updated,
            result.api_calls_made, result.expired_purged,
        )
        return result
