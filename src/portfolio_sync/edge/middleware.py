"""Per-request <head> rewriting for the portfolio site."""

from __future__ import annotations

import logging
from typing import Callable, Sequence

import httpx
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..profiles import profile_for
from .meta import has_head_region, rewrite_html, should_rewrite
from .sources import JsonSource, default_sources, load_first

logger = logging.getLogger(__name__)

EDGE_CACHE_CONTROL = "public, max-age=300, stale-while-revalidate=600"
INJECTED_HEADER = "x-edge-meta-injected"

SourcesFactory = Callable[[str, str, str], Sequence[JsonSource]]


def _is_html(response: Response) -> bool:
    return response.headers.get("content-type", "").startswith("text/html")


class MetaRewriteMiddleware(BaseHTTPMiddleware):
    """Injects OpenGraph, Twitter and JSON-LD tags into HTML pages.

    The wrapped app is the origin. Any failure while loading data or
    rewriting returns the origin response untouched.
    """

    def __init__(
        self,
        app,
        *,
        mode: str = "directing",
        cdn_base_url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sources_factory: SourcesFactory | None = None,
    ):
        super().__init__(app)
        self._mode = mode
        self._profile = profile_for(mode)
        self._cdn_base_url = cdn_base_url
        self._timeout = timeout
        self._transport = transport
        self._sources_factory = sources_factory or default_sources

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if request.method != "GET" or not should_rewrite(path):
            return await call_next(request)

        response = await call_next(request)
        if response.status_code != 200 or not _is_html(response):
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        headers = {k: v for k, v in response.headers.items() if k.lower() != "content-length"}

        try:
            html = body.decode("utf-8")
            if not has_head_region(html):
                logger.info("No <title>/canonical region in %s, serving origin response", path)
                return Response(content=body, status_code=response.status_code, headers=headers)

            origin = f"{request.url.scheme}://{request.url.netloc}"
            sources = self._sources_factory(self._cdn_base_url, self._mode, origin)

            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as http:
                loaded = await load_first(sources, http)
            if not loaded.ok:
                logger.info("No portfolio data for %s, using generic meta (%s)", path, loaded.reason)

            rewritten = rewrite_html(html, path, str(request.url), loaded.data, self._profile)
        except Exception:
            logger.exception("Meta rewrite failed for %s, serving origin response", path)
            return Response(content=body, status_code=response.status_code, headers=headers)

        return Response(
            content=rewritten,
            status_code=response.status_code,
            headers={
                "content-type": "text/html; charset=utf-8",
                "cache-control": EDGE_CACHE_CONTROL,
                INJECTED_HEADER: "true",
            },
        )
