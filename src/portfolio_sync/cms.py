"""Read-side access to published portfolio data with an injected TTL cache."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httpx
from pydantic import ValidationError

from .sync.models import PortfolioConfig, PortfolioData

logger = logging.getLogger(__name__)


class TTLCache:
    """Single-value cache; ``clock`` is injectable for tests."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._value: Any = None
        self._stored_at: float | None = None

    def set(self, value: Any) -> None:
        self._value = value
        self._stored_at = self._clock()

    def get(self, allow_stale: bool = False) -> Any:
        if self._stored_at is None:
            return None
        if allow_stale or self._clock() - self._stored_at < self.ttl_seconds:
            return self._value
        return None

    @property
    def is_fresh(self) -> bool:
        return self._stored_at is not None and self._clock() - self._stored_at < self.ttl_seconds

    def clear(self) -> None:
        self._value = None
        self._stored_at = None


class PortfolioRepository:
    """Loads PortfolioData from the CDN, then the local site, then the cache.

    Order: fresh cache, CDN ``portfolio-data-<mode>.json``, local
    ``/portfolio-data-<mode>.json``, stale cache, empty default.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        mode: str = "directing",
        cdn_base_url: str,
        local_base_url: str | None = None,
        cache: TTLCache | None = None,
    ):
        self.http = http_client
        self.mode = mode
        self.cdn_base_url = cdn_base_url.rstrip("/")
        self.local_base_url = local_base_url.rstrip("/") if local_base_url else None
        self.cache = cache or TTLCache(300)

    def _urls(self) -> list[str]:
        filename = f"portfolio-data-{self.mode}.json"
        urls = [f"{self.cdn_base_url}/{filename}"]
        if self.local_base_url:
            urls.append(f"{self.local_base_url}/{filename}")
        return urls

    async def _fetch(self, url: str) -> PortfolioData | None:
        try:
            response = await self.http.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Portfolio data fetch failed for %s: %s", url, exc)
            return None
        if response.status_code != 200:
            logger.warning("Portfolio data fetch failed for %s: HTTP %s", url, response.status_code)
            return None
        try:
            return PortfolioData.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("Invalid portfolio data at %s: %s", url, exc)
            return None

    async def get_data(self) -> PortfolioData:
        cached = self.cache.get()
        if cached is not None:
            return cached

        for url in self._urls():
            data = await self._fetch(url)
            if data is not None:
                self.cache.set(data)
                return data

        stale = self.cache.get(allow_stale=True)
        if stale is not None:
            logger.warning("Serving stale portfolio data for %s", self.mode)
            return stale

        logger.warning("No portfolio data available for %s, using empty default", self.mode)
        return PortfolioData(config=PortfolioConfig.default(self.mode), portfolio_mode=self.mode)
