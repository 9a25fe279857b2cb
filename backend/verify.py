"""
backend/verify.py

Purpose:
    Diagnostic CLI for the odds cache: runs one refresh cycle, reads the
    cache back, validates row shape and prints freshness for a sample.
    Exits 0 when everything checks out.

Dependencies:
    - oddscache.database
    - oddscache.services.cache_reader
    - oddscache.workers.refresh_scheduler
"""

import asyncio
import os
import sys
from pprint import pprint

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from oddscache.config import RefreshPolicy
from oddscache.database import close_db, connect_db
from oddscache.monitoring.logging import setup_logging
from oddscache.providers.odds_api import TheOddsAPIProvider
from oddscache.services.cache_reader import CacheReader
from oddscache.services.refresh_cycle import OddsRefreshCycle
from oddscache.services.update_log_service import UpdateAuditLog
from oddscache.utils import ensure_utc, utcnow

REQUIRED_FIELDS = ("event_id", "event_name", "bookmaker_key", "market_key", "outcomes", "expires_at", "last_updated")


def invalid_rows(rows: list[dict]) -> list[dict]:
    """Rows missing a required field or carrying an empty outcome list."""
    return [row for row in rows if any(not row.get(name) for name in REQUIRED_FIELDS)]


def freshness(row: dict, now=None) -> dict:
    now = now or utcnow()
    return {
        "market": row.get("market_key"),
        "bookmaker": row.get("bookmaker_key"),
        "tier": (row.get("metadata") or {}).get("tier"),
        "age_s": round((now - ensure_utc(row["last_updated"])).total_seconds()),
        "expires_in_s": round((ensure_utc(row["expires_at"]) - now).total_seconds()),
    }


async def main() -> int:
    setup_logging()
    print("\nSTARTING ODDS CACHE CHECK")
    print("=" * 50)

    provider = None
    try:
        await connect_db()
        policy = RefreshPolicy.from_settings()
        provider = TheOddsAPIProvider()

        print(f"\n1. Running one {policy.sport_key} refresh cycle...")
        result = await OddsRefreshCycle(policy, provider).run()
        pprint(result.as_dict(), indent=2)

        print("\n2. Reading main lines back from the cache...")
        rows = await CacheReader().get_cached_odds(policy.sport_key, markets=policy.main_line_markets)
        print(f"   {len(rows)} fresh main-line rows")

        print("\n3. Recent update log entries:")
        for entry in await UpdateAuditLog().recent(policy.sport_key, limit=5):
            print(
                f"   {entry.get('update_type')} - {entry.get('status')} - "
                f"{entry.get('events_updated')} events, {entry.get('odds_updated')} odds"
            )

        print("\n4. Validating row shape...")
        bad = invalid_rows(rows)
        if bad:
            print(f"\nSYSTEM RED: {len(bad)} malformed cache rows")
            pprint(bad[:3], indent=2)
            return 1
        if rows:
            sample = rows[0]
            print(f"   sample: {sample['event_name']} | {sample['bookmaker_key']} | "
                  f"{sample['market_key']} | {len(sample['outcomes'])} outcomes")

        print("\n5. Cache freshness:")
        now = utcnow()
        for row in sorted(rows, key=lambda r: ensure_utc(r["last_updated"]), reverse=True)[:5]:
            info = freshness(row, now)
            print(f"   - {info['market']} ({info['bookmaker']}): {info['age_s']}s old, expires in {info['expires_in_s']}s")

        print("-" * 50)
        print("\nSYSTEM GREEN: odds cache is refreshing.")
        return 0
    except ImportError as e:
        print(f"SETUP ERROR: Could not import oddscache modules.\n{e}")
        return 1
    except Exception as e:
        print(f"FATAL ERROR: {e}")
        return 1
    finally:
        if provider is not None:
            await provider.aclose()
        await close_db()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
