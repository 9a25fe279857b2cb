"""
backend/oddscache/providers/http_client.py

Purpose:
    Thin httpx.AsyncClient wrapper used by provider clients: one timeout for
    every call, opt-in retry with exponential backoff for transient statuses
    and network errors, and query-string-free logging.

Dependencies:
    - httpx
"""

import asyncio
import logging
from typing import Optional

import httpx

from oddscache.monitoring.logging import safe_url

logger = logging.getLogger("oddscache.http_client")

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
MAX_BACKOFF_SECONDS = 60.0

_NETWORK_ERRORS = (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)


def _retry_after(response: httpx.Response) -> Optional[float]:
    for header in ("retry-after", "x-ratelimit-retry-after"):
        value = response.headers.get(header)
        if value is None:
            continue
        try:
            return float(value)
        except ValueError:
            continue
    return None


class ResilientClient:
    """Per-call timeout plus opt-in retries.

    ``max_retries=0`` (the default) issues exactly one attempt. When every
    attempt ends in a retryable status the last response is returned and the
    caller maps the status; when every attempt hits a network error the last
    error is raised.
    """

    def __init__(
        self,
        name: str,
        timeout: float = 15.0,
        max_retries: int = 0,
        base_delay: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._name = name
        self._attempts = max(0, max_retries) + 1
        self._base_delay = base_delay
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _backoff(self, attempt: int, response: Optional[httpx.Response] = None) -> float:
        delay = _retry_after(response) if response is not None else None
        if delay is None:
            delay = self._base_delay * (2 ** attempt)
        return min(delay, MAX_BACKOFF_SECONDS)

    async def request(
        self, method: str, url: str, *, max_retries: Optional[int] = None, **kwargs
    ) -> httpx.Response:
        """Send one request. ``max_retries`` overrides the client default for this call."""
        attempts = self._attempts if max_retries is None else max(0, max_retries) + 1
        target = safe_url(url)
        response: Optional[httpx.Response] = None
        error: Optional[Exception] = None

        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                response = await self._client.request(method, url, **kwargs)
            except _NETWORK_ERRORS as exc:
                error, response = exc, None
                logger.warning(
                    "[%s] %s %s network error (attempt %d/%d): %s",
                    self._name, method, target, attempt + 1, attempts, exc,
                )
                if not is_last:
                    await asyncio.sleep(self._backoff(attempt))
                continue

            if response.status_code not in RETRYABLE_STATUSES:
                return response
            logger.warning(
                "[%s] %s %s returned %d (attempt %d/%d)",
                self._name, method, target, response.status_code, attempt + 1, attempts,
            )
            if not is_last:
                await asyncio.sleep(self._backoff(attempt, response))

        if response is not None:
            return response
        logger.error("[%s] %s %s failed after %d attempt(s)", self._name, method, target, attempts)
        raise error  # type: ignore[misc]

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
