"""Edge meta rewriting: data sources, tag generation and the ASGI middleware."""

from .meta import (
    ULTIMATE_FALLBACK_IMAGE,
    MetaDescriptor,
    build_descriptor,
    build_structured_data,
    find_item,
    has_head_region,
    render_meta_block,
    rewrite_html,
    should_rewrite,
    splice_head,
)
from .middleware import MetaRewriteMiddleware
from .sources import JsonSource, SourceResult, default_sources, load_first

__all__ = [
    "ULTIMATE_FALLBACK_IMAGE",
    "MetaDescriptor",
    "MetaRewriteMiddleware",
    "JsonSource",
    "SourceResult",
    "build_descriptor",
    "build_structured_data",
    "default_sources",
    "find_item",
    "has_head_region",
    "load_first",
    "render_meta_block",
    "rewrite_html",
    "should_rewrite",
    "splice_head",
]
