"""
backend/refresh_now.py

Purpose:
    Manual trigger: populate the odds cache with one refresh cycle, then keep
    refreshing on the configured interval until interrupted. Exits non-zero
    only when startup or the first cycle fails.

Dependencies:
    - oddscache.database
    - oddscache.workers.refresh_scheduler
"""

import asyncio
import logging
import os
import sys
from pprint import pprint

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from oddscache.config import RefreshPolicy
from oddscache.database import close_db, connect_db
from oddscache.monitoring.logging import setup_logging
from oddscache.providers.odds_api import TheOddsAPIProvider
from oddscache.workers.refresh_scheduler import create_refresh_scheduler

logger = logging.getLogger("oddscache.refresh_now")


async def main() -> int:
    setup_logging()
    provider = None
    scheduler = None
    try:
        await connect_db()
        policy = RefreshPolicy.from_settings()
        provider = TheOddsAPIProvider()
        scheduler = create_refresh_scheduler(policy, provider)

        logger.info("Manually triggering %s cache update...", policy.sport_key)
        result = await scheduler.run_once()
        pprint(result.as_dict(), indent=2)

        await scheduler.start(run_immediately=False)
        logger.info("Auto-updates started, every %ss. Press Ctrl+C to stop.", policy.interval_seconds)
        await scheduler.wait_stopped()
        return 0
    except Exception as e:
        logger.error("Manual refresh failed: %s", e)
        return 1
    finally:
        if scheduler is not None:
            await scheduler.stop()
        if provider is not None:
            await provider.aclose()
        await close_db()


if __name__ == "__main__":
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        raise SystemExit(0)
