"""
backend/oddscache/services/provider_rate_limiter.py

Purpose:
    Process-local RPM limiter shared by every call to one provider. Gates the
    per-event player-prop requests so a refresh cycle stays under the
    upstream rate limit whatever the pool size. Callers reserve a token and
    are told how long to wait for it, so concurrent callers are staggered
    instead of racing for the same refill.

Dependencies:
    - asyncio
    - time
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass


@dataclass
class _Bucket:
    capacity: float
    refill_per_second: float
    tokens: float
    updated_at: float

    def refill(self, now: float) -> None:
        elapsed = now - self.updated_at
        if elapsed > 0:
            self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_per_second)
        self.updated_at = now

    def reserve(self) -> float:
        """Take one token, on credit if needed. Returns seconds until it is valid."""
        self.tokens -= 1.0
        if self.tokens >= 0:
            return 0.0
        return -self.tokens / self.refill_per_second


class ProviderRateLimiter:
    """Token bucket per provider key.

    ``burst`` caps how many calls may go out back to back once the bucket is
    full; ``burst=1`` spaces every call by 60/rpm seconds.
    """

    def __init__(self, burst: int | None = 1) -> None:
        self._burst = burst
        self._buckets: dict[str, _Bucket] = {}

    def _bucket(self, provider: str, rpm: int, now: float) -> _Bucket:
        capacity = float(rpm)
        if self._burst is not None:
            capacity = min(capacity, float(self._burst))
        capacity = max(1.0, capacity)
        refill = rpm / 60.0

        bucket = self._buckets.get(provider)
        if bucket is None:
            bucket = _Bucket(capacity=capacity, refill_per_second=refill, tokens=capacity, updated_at=now)
            self._buckets[provider] = bucket
        else:
            # Config changes apply immediately; outstanding credit is kept.
            bucket.capacity = capacity
            bucket.refill_per_second = refill
            bucket.tokens = min(bucket.tokens, capacity)
        return bucket

    async def acquire(self, provider: str, rpm: int | None) -> float:
        """Wait for a call slot. Returns the seconds waited (0.0 when unthrottled)."""
        if rpm is None or int(rpm) <= 0:
            return 0.0
        key = str(provider or "").strip().lower()
        if not key:
            return 0.0

        # No await between refill and reserve, so the bucket needs no lock.
        now = time.monotonic()
        bucket = self._bucket(key, int(rpm), now)
        bucket.refill(now)
        wait = bucket.reserve()
        if wait > 0:
            await asyncio.sleep(wait)
        return wait


provider_rate_limiter = ProviderRateLimiter()
