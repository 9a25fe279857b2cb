"""
backend/oddscache/monitoring/refresh_metrics.py

Purpose:
    Prometheus metrics for the odds refresh pipeline: cycle outcomes,
    cache writes, provider calls and quota, and expiry sweeps.

Dependencies:
    - prometheus_client
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

METRIC_CYCLES_TOTAL = Counter(
    "odds_refresh_cycles_total",
    "Refresh cycles finished, by terminal status.",
    ["sport_key", "status"],
)
METRIC_ODDS_WRITTEN = Counter(
    "odds_cache_quotes_written_total",
    "Odds quotes upserted into the cache.",
    ["sport_key", "tier"],
)
METRIC_WRITE_FAILURES = Counter(
    "odds_cache_write_failures_total",
    "Cache upserts that failed at the datastore.",
    ["collection"],
)
METRIC_PROVIDER_CALLS = Counter(
    "odds_provider_calls_total",
    "Upstream provider calls, by endpoint and outcome.",
    ["endpoint", "outcome"],
)
METRIC_PROPS_EVENT_FAILURES = Counter(
    "odds_player_props_event_failures_total",
    "Events whose player-prop fetch failed and was skipped.",
    ["sport_key"],
)
METRIC_EXPIRED_PURGED = Counter(
    "odds_cache_expired_purged_total",
    "Expired odds rows removed by the reaper.",
)
METRIC_QUOTA_REMAINING = Gauge(
    "odds_provider_requests_remaining",
    "Provider quota remaining as reported by the last response.",
)
METRIC_CYCLE_LATENCY = Histogram(
    "odds_refresh_cycle_latency_seconds",
    "Wall time of one refresh cycle.",
    ["sport_key"],
)

