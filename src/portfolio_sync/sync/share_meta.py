"""Lightweight share manifest used by the edge rewriter as a fallback source."""

from __future__ import annotations

import hashlib
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .engine import write_json_atomic
from .models import PortfolioData

logger = logging.getLogger(__name__)

SHARE_DESCRIPTION_LENGTH = 220

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def _plain(text: str, limit: int = SHARE_DESCRIPTION_LENGTH) -> str:
    return _WS_RE.sub(" ", _TAG_RE.sub(" ", text or "")).strip()[:limit]


def build_share_manifest(data: PortfolioData, generated_at: str | None = None) -> dict[str, Any]:
    projects = [
        {
            "id": p.id,
            "slug": p.slug,
            "title": p.title,
            "description": _plain(p.description),
            "image": p.hero_image or p.video_thumbnail,
            "type": p.category,
            "year": p.year,
        }
        for p in data.projects
    ]
    posts = [
        {
            "id": post.id,
            "slug": post.slug,
            "title": post.title,
            "description": _plain(post.excerpt or post.content),
            "image": post.cover_image,
            "type": "article",
            "date": post.publish_date,
        }
        for post in data.posts
    ]
    return {
        "generatedAt": generated_at or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "projects": projects,
        "posts": posts,
        "config": {"defaultOgImage": data.config.default_og_image},
    }


def manifest_hash(manifest: dict[str, Any]) -> str:
    """sha256 over the projects and posts only, so regenerating unchanged data keeps the hash."""
    compact = {"separators": (",", ":"), "ensure_ascii": False}
    payload = json.dumps(manifest["projects"], **compact) + json.dumps(manifest["posts"], **compact)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def write_share_manifest(data: PortfolioData, output_dir: str | Path, mode: str) -> tuple[Path, str]:
    """Write ``share-meta-<mode>.json`` and its ``.hash`` sibling."""
    output_dir = Path(output_dir)
    manifest = build_share_manifest(data)
    json_path = write_json_atomic(output_dir / f"share-meta-{mode}.json", manifest)

    digest = manifest_hash(manifest)
    (output_dir / f"share-meta-{mode}.hash").write_text(digest, encoding="utf-8")
    logger.info(
        "Wrote share manifest with %d projects and %d posts (hash %s)",
        len(manifest["projects"]),
        len(manifest["posts"]),
        digest[:12],
    )
    return json_path, digest
