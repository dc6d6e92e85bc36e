"""Ordered data sources for the meta rewriter, tried until one succeeds."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

logger = logging.getLogger(__name__)

LOCAL_SHARE_META_PATH = "/share-meta.json"


@dataclass(frozen=True)
class SourceResult:
    ok: bool
    data: dict[str, Any] | None = None
    source: str = ""
    reason: str = ""

    @classmethod
    def success(cls, source: str, data: dict[str, Any]) -> "SourceResult":
        return cls(ok=True, data=data, source=source)

    @classmethod
    def failure(cls, source: str, reason: str) -> "SourceResult":
        return cls(ok=False, source=source, reason=reason)


@dataclass(frozen=True)
class JsonSource:
    """A JSON manifest at a fixed URL."""

    name: str
    url: str

    async def load(self, http: httpx.AsyncClient) -> SourceResult:
        try:
            response = await http.get(self.url)
        except httpx.HTTPError as exc:
            return SourceResult.failure(self.name, f"{exc.__class__.__name__}: {exc}")

        if response.status_code != 200:
            return SourceResult.failure(self.name, f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            return SourceResult.failure(self.name, "invalid JSON")

        if not isinstance(data, dict):
            return SourceResult.failure(self.name, "unexpected payload")
        if not data.get("projects") and not data.get("posts"):
            return SourceResult.failure(self.name, "empty manifest")
        return SourceResult.success(self.name, data)


def default_sources(cdn_base_url: str, mode: str, origin: str) -> list[JsonSource]:
    cdn = cdn_base_url.rstrip("/")
    return [
        JsonSource("cdn-portfolio-data", f"{cdn}/portfolio-data-{mode}.json"),
        JsonSource("cdn-share-meta", f"{cdn}/share-meta-{mode}.json"),
        JsonSource("local-share-meta", f"{origin.rstrip('/')}{LOCAL_SHARE_META_PATH}"),
    ]


async def load_first(sources: Sequence[JsonSource], http: httpx.AsyncClient) -> SourceResult:
    """First successful source, or a failure listing every reason."""
    reasons = []
    for source in sources:
        result = await source.load(http)
        if result.ok:
            logger.debug("Loaded portfolio data from %s", source.name)
            return result
        logger.info("Data source %s unavailable: %s", source.name, result.reason)
        reasons.append(f"{source.name}: {result.reason}")
    return SourceResult.failure("", "; ".join(reasons) or "no sources configured")
