"""
backend/oddscache/workers/refresh_scheduler.py

Purpose:
    Owns the start/stop lifecycle of the recurring odds refresh. Runs one
    cycle immediately on start, then a self-rescheduling loop that waits the
    configured interval only after the previous cycle has returned, so at
    most one cycle is ever in flight. State lives on the instance; every
    deployment (or test) builds its own scheduler.

Dependencies:
    - asyncio
    - oddscache.services.refresh_cycle
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from oddscache.config import RefreshPolicy
from oddscache.providers.base import BaseOddsProvider
from oddscache.providers.odds_api import TheOddsAPIProvider
from oddscache.services.refresh_cycle import OddsRefreshCycle
from oddscache.services.refresh_types import CycleResult

logger = logging.getLogger("oddscache.refresh_scheduler")


class RefreshCycleRunner(Protocol):
    async def run(self) -> CycleResult: ...


class RefreshScheduler:
    def __init__(self, cycle: RefreshCycleRunner, interval_seconds: float, *, name: str = "odds_refresh"):
        self._cycle = cycle
        self._interval = max(0.0, float(interval_seconds))
        self._name = name
        self._running = False
        self._task: asyncio.Task | None = None
        self._wake: asyncio.Event | None = None
        self._cycle_lock = asyncio.Lock()
        self.cycles_run = 0
        self.last_result: Optional[CycleResult] = None
        self.last_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self, *, run_immediately: bool = True) -> None:
        """Run one cycle now, then keep refreshing every interval.

        Calling start() while running is a no-op. If a previous loop is still
        finishing its cycle after stop(wait=False), start() waits for it
        first. An exception from the immediate cycle propagates and leaves
        the scheduler stopped.
        """
        if self._running:
            logger.warning("%s already running", self._name)
            return

        # A loop stopped with wait=False may still be finishing its cycle.
        if self._task is not None:
            await self.wait_stopped()
            if self._running:
                logger.warning("%s already running", self._name)
                return

        self._running = True
        self._wake = asyncio.Event()
        logger.info("Starting %s (every %ss)", self._name, self._interval)

        if run_immediately:
            try:
                await self.run_once()
            except Exception:
                self._running = False
                raise

        # stop() may have been called while the first cycle was in flight.
        if not self._running:
            return
        self._task = asyncio.create_task(self._loop(self._wake), name=self._name)
        logger.info("%s scheduled every %ss", self._name, self._interval)

    async def stop(self, *, wait: bool = True) -> None:
        """Stop scheduling further cycles. An in-flight cycle runs to completion."""
        if not self._running and self._task is None:
            return
        self._running = False
        if self._wake is not None:
            self._wake.set()
        if wait:
            await self.wait_stopped()
        logger.info("%s stopped", self._name)

    async def wait_stopped(self) -> None:
        task = self._task
        if task is None:
            return
        try:
            await task
        finally:
            if self._task is task:
                self._task = None

    async def run_once(self) -> CycleResult:
        """Run a single cycle, serialized against the loop."""
        async with self._cycle_lock:
            self.cycles_run += 1
            try:
                result = await self._cycle.run()
            except Exception as exc:
                self.last_error = str(exc) or exc.__class__.__name__
                raise
            self.last_result = result
            self.last_error = None
            return result

    def _owns_schedule(self, wake: asyncio.Event) -> bool:
        # Each start() arms a fresh wake event; a loop whose event was replaced is stale.
        return self._running and self._wake is wake

    async def _loop(self, wake: asyncio.Event) -> None:
        while self._owns_schedule(wake):
            try:
                await asyncio.wait_for(wake.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
            if not self._owns_schedule(wake):
                break
            try:
                await self.run_once()
            except Exception:
                # Already recorded as failed in the update log; keep the schedule alive.
                logger.exception("Scheduled %s cycle failed", self._name)


def create_refresh_scheduler(
    policy: Optional[RefreshPolicy] = None,
    provider: Optional[BaseOddsProvider] = None,
) -> RefreshScheduler:
    """Wire a scheduler for one sport from settings (or explicit overrides)."""
    policy = policy or RefreshPolicy.from_settings()
    provider = provider or TheOddsAPIProvider()
    cycle = OddsRefreshCycle(policy, provider)
    return RefreshScheduler(cycle, policy.interval_seconds, name=f"{policy.sport_key}_refresh")
