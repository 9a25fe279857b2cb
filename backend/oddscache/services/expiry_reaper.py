import logging
from datetime import datetime
from typing import Optional

from pymongo.errors import PyMongoError

import oddscache.database as _db
from oddscache.monitoring.refresh_metrics import METRIC_EXPIRED_PURGED
from oddscache.utils import utcnow

logger = logging.getLogger("oddscache.expiry_reaper")


class ExpiryReaper:
    """Set-based purge of odds rows past expires_at, regardless of tier."""

    async def purge(self, now: Optional[datetime] = None) -> int:
        cutoff = now or utcnow()
        try:
            result = await _db.db.cached_odds.delete_many({"expires_at": {"$lte": cutoff}})
        except PyMongoError as exc:
            logger.error("Expired odds cleanup failed: %s", exc)
            return 0

        purged = int(result.deleted_count or 0)
        if purged:
            METRIC_EXPIRED_PURGED.inc(purged)
        logger.info("Cleaned up %d expired odds entries", purged)
        return purged
