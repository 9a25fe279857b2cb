from abc import ABC, abstractmethod
from typing import Sequence

from oddscache.models.provider import ProviderBatch, ProviderEvent


class BaseOddsProvider(ABC):
    """Abstract base class for upstream odds data providers."""

    @abstractmethod
    async def list_events(self, sport_key: str) -> ProviderBatch:
        """Return every scheduled event for a sport, including events without odds."""
        ...

    @abstractmethod
    async def get_sport_odds(
        self,
        sport_key: str,
        markets: Sequence[str],
        bookmakers: Sequence[str],
        *,
        regions: str,
        odds_format: str,
    ) -> ProviderBatch:
        """Batched odds for all events of a sport in one call."""
        ...

    @abstractmethod
    async def get_event_odds(
        self,
        sport_key: str,
        event_id: str,
        markets: Sequence[str],
        bookmakers: Sequence[str],
        *,
        regions: str,
        odds_format: str,
    ) -> ProviderEvent:
        """Odds for a single event. Raises on transport, status or shape errors."""
        ...
