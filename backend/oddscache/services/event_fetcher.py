import logging

from oddscache.models.provider import ProviderEvent
from oddscache.providers.base import BaseOddsProvider

logger = logging.getLogger("oddscache.event_fetcher")


class EventFetcher:
    """Lists the scheduled events of a sport in one upstream call.

    Transport and HTTP errors propagate; they are fatal to the cycle.
    """

    def __init__(self, provider: BaseOddsProvider):
        self._provider = provider

    async def fetch(self, sport_key: str) -> list[ProviderEvent]:
        batch = await self._provider.list_events(sport_key)
        if batch.skipped:
            logger.warning("Dropped %d malformed %s events from listing", batch.skipped, sport_key)
        logger.info("Found %d %s events", len(batch.events), sport_key)
        return batch.events
