"""
backend/oddscache/providers/odds_api.py

Purpose:
    The Odds API v4 client for the refresh pipeline: event listing, batched
    per-sport odds and per-event odds. Payloads are validated into typed
    provider models; quota headers are tracked on the instance.

Dependencies:
    - httpx
    - pydantic
    - oddscache.providers.http_client
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx
from pydantic import ValidationError

from oddscache.config import settings
from oddscache.models.provider import ProviderBatch, ProviderEvent
from oddscache.monitoring.refresh_metrics import METRIC_PROVIDER_CALLS, METRIC_QUOTA_REMAINING
from oddscache.providers.base import BaseOddsProvider
from oddscache.providers.http_client import ResilientClient

logger = logging.getLogger("oddscache.odds_api")


class ProviderError(Exception):
    """Base class for upstream failures surfaced to the pipeline."""


class ProviderResponseError(ProviderError):
    """Upstream answered with a non-success status."""

    def __init__(self, endpoint: str, status_code: int, detail: str = ""):
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(f"{endpoint} returned HTTP {status_code}{': ' + detail if detail else ''}")


class ProviderPayloadError(ProviderError):
    """Upstream payload did not match the expected shape."""


def parse_event_list(raw: Any, endpoint: str) -> ProviderBatch:
    """Validate a list payload entry by entry, dropping malformed entries."""
    if not isinstance(raw, list):
        raise ProviderPayloadError(f"{endpoint}: expected a JSON list, got {type(raw).__name__}")

    batch = ProviderBatch()
    for item in raw:
        try:
            batch.events.append(ProviderEvent.model_validate(item))
        except ValidationError as exc:
            batch.skipped += 1
            event_id = item.get("id") if isinstance(item, dict) else None
            logger.warning(
                "%s: skipping malformed event %s (%d errors)",
                endpoint, event_id or "?", exc.error_count(),
            )
    return batch


class TheOddsAPIProvider(BaseOddsProvider):
    """The Odds API implementation on top of ResilientClient."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[ResilientClient] = None,
        props_max_retries: Optional[int] = None,
    ):
        self._api_key = api_key or settings.ODDS_API_KEY
        if not self._api_key:
            raise ValueError("ODDS_API_KEY not set in environment")
        self._base_url = (base_url or settings.THEODDSAPI_BASE_URL).rstrip("/")
        self._client = client or ResilientClient("odds_api", timeout=settings.ODDS_API_TIMEOUT_SECONDS)
        # Only per-event prop calls are retried; listing and main-line calls get one attempt.
        self._props_max_retries = (
            settings.ODDS_PLAYER_PROPS_MAX_RETRIES if props_max_retries is None else props_max_retries
        )
        self._api_usage: dict[str, Optional[int]] = {"requests_used": None, "requests_remaining": None}

    def _track_usage_headers(self, resp: httpx.Response) -> None:
        """Extract and store API usage from response headers."""
        used = resp.headers.get("x-requests-used")
        remaining = resp.headers.get("x-requests-remaining")
        try:
            if used is not None:
                self._api_usage["requests_used"] = int(float(used))
            if remaining is not None:
                self._api_usage["requests_remaining"] = int(float(remaining))
                METRIC_QUOTA_REMAINING.set(self._api_usage["requests_remaining"])
        except ValueError:
            logger.debug("Unparseable quota headers: used=%r remaining=%r", used, remaining)

    async def _get_json(self, endpoint: str, path: str, params: dict[str, Any], *, retries: int = 0) -> Any:
        query = {"apiKey": self._api_key, **params}
        try:
            resp = await self._client.get(f"{self._base_url}{path}", params=query, max_retries=retries)
        except httpx.HTTPError:
            METRIC_PROVIDER_CALLS.labels(endpoint=endpoint, outcome="transport_error").inc()
            raise

        self._track_usage_headers(resp)
        if resp.status_code >= 400:
            METRIC_PROVIDER_CALLS.labels(endpoint=endpoint, outcome="http_error").inc()
            detail = ""
            try:
                body = resp.json()
                if isinstance(body, dict):
                    detail = str(body.get("message") or "")
            except ValueError:
                pass
            raise ProviderResponseError(endpoint, resp.status_code, detail)

        try:
            data = resp.json()
        except ValueError as exc:
            METRIC_PROVIDER_CALLS.labels(endpoint=endpoint, outcome="invalid_payload").inc()
            raise ProviderPayloadError(f"{endpoint}: response body is not JSON") from exc

        METRIC_PROVIDER_CALLS.labels(endpoint=endpoint, outcome="ok").inc()
        return data

    @staticmethod
    def _odds_params(
        markets: Sequence[str],
        bookmakers: Sequence[str],
        regions: str,
        odds_format: str,
    ) -> dict[str, str]:
        params = {
            "regions": regions,
            "markets": ",".join(markets),
            "oddsFormat": odds_format,
        }
        # Upstream gives bookmakers priority over regions when both are sent.
        if bookmakers:
            params["bookmakers"] = ",".join(bookmakers)
        return params

    async def list_events(self, sport_key: str) -> ProviderBatch:
        raw = await self._get_json("events", f"/sports/{sport_key}/events", {})
        batch = parse_event_list(raw, "events")
        logger.info("Odds API: %d %s events listed (%d skipped)", len(batch.events), sport_key, batch.skipped)
        return batch

    async def get_sport_odds(
        self,
        sport_key: str,
        markets: Sequence[str],
        bookmakers: Sequence[str],
        *,
        regions: str = "us",
        odds_format: str = "american",
    ) -> ProviderBatch:
        raw = await self._get_json(
            "sport_odds",
            f"/sports/{sport_key}/odds",
            self._odds_params(markets, bookmakers, regions, odds_format),
        )
        batch = parse_event_list(raw, "sport_odds")
        logger.info(
            "Odds API: %d %s games with odds. Quota: %s used, %s remaining",
            len(batch.events), sport_key,
            self._api_usage.get("requests_used", "?"),
            self._api_usage.get("requests_remaining", "?"),
        )
        return batch

    async def get_event_odds(
        self,
        sport_key: str,
        event_id: str,
        markets: Sequence[str],
        bookmakers: Sequence[str],
        *,
        regions: str = "us",
        odds_format: str = "american",
    ) -> ProviderEvent:
        raw = await self._get_json(
            "event_odds",
            f"/sports/{sport_key}/events/{event_id}/odds",
            self._odds_params(markets, bookmakers, regions, odds_format),
            retries=self._props_max_retries,
        )
        try:
            return ProviderEvent.model_validate(raw)
        except ValidationError as exc:
            raise ProviderPayloadError(
                f"event_odds: malformed payload for event {event_id} ({exc.error_count()} errors)"
            ) from exc

    @property
    def api_usage(self) -> dict:
        return self._api_usage

    async def aclose(self) -> None:
        await self._client.aclose()
