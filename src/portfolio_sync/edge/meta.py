"""Page meta descriptors, JSON-LD and the <head> splice."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from ..profiles import OwnerProfile
from ..sync.text import escape_html, truncate

logger = logging.getLogger(__name__)

ULTIMATE_FALLBACK_IMAGE = "https://images.unsplash.com/photo-1492691527719-9d1e07e534b4?q=80&w=1200"
OG_IMAGE_WIDTH = 1200
OG_IMAGE_HEIGHT = 630

REWRITE_EXACT_PATHS = frozenset({"/", "/work", "/about", "/journal", "/game"})
REWRITE_PREFIXES = ("/work/", "/journal/")

# From the first <title> through the last canonical link.
_HEAD_REGION_RE = re.compile(r"<title>[\s\S]*<link rel=\"canonical\"[^>]*>", re.IGNORECASE)


def should_rewrite(path: str) -> bool:
    return path in REWRITE_EXACT_PATHS or path.startswith(REWRITE_PREFIXES)


def path_slug(path: str) -> str:
    parts = [p for p in path.split("/") if p]
    return parts[-1] if parts else ""


def is_project_path(path: str) -> bool:
    return path.startswith("/work/")


def is_post_path(path: str) -> bool:
    return path.startswith("/journal/")


def find_item(data: dict[str, Any] | None, path: str) -> dict[str, Any] | None:
    """Project or post named by ``/work/<slug>`` or ``/journal/<slug>``, by slug or id."""
    if not data:
        return None
    if is_project_path(path):
        collection, label = data.get("projects"), "project"
    elif is_post_path(path):
        collection, label = data.get("posts"), "post"
    else:
        return None

    slug = path_slug(path)
    for item in collection or []:
        if isinstance(item, dict) and slug and (item.get("slug") == slug or item.get("id") == slug):
            return item
    logger.info("No %s found for slug %r", label, slug)
    return None


def project_type(item: dict[str, Any]) -> str:
    return item.get("category") or item.get("type") or ""


def _gallery_first(item: dict[str, Any]) -> str:
    gallery = item.get("gallery") or []
    if gallery and isinstance(gallery[0], str):
        return gallery[0]
    images = item.get("images") or []
    if images and isinstance(images[0], dict):
        return images[0].get("url") or ""
    return ""


def item_image(item: dict[str, Any], default_image: str) -> str:
    return (
        item.get("heroImage")
        or item.get("imageUrl")
        or item.get("image")
        or item.get("coverImage")
        or _gallery_first(item)
        or default_image
        or ULTIMATE_FALLBACK_IMAGE
    )


def _iso_date(value: str | None) -> str | None:
    if not value:
        return None
    return value if "T" in value else f"{value}T00:00:00Z"


def _post_date(item: dict[str, Any]) -> str:
    return item.get("publishDate") or item.get("date") or ""


@dataclass(frozen=True)
class MetaDescriptor:
    title: str
    description: str
    image: str
    type: str = "website"


def _config(data: dict[str, Any] | None) -> dict[str, Any]:
    config = (data or {}).get("config")
    return config if isinstance(config, dict) else {}


def default_image(data: dict[str, Any] | None) -> str:
    return _config(data).get("defaultOgImage") or ULTIMATE_FALLBACK_IMAGE


def build_descriptor(
    path: str,
    item: dict[str, Any] | None,
    data: dict[str, Any] | None,
    profile: OwnerProfile,
) -> MetaDescriptor:
    """Unescaped title, description, image and OG type for one page."""
    fallback_image = default_image(data)
    suffix = profile.title_suffix

    if item:
        if is_post_path(path):
            og_type = "article"
        elif is_project_path(path):
            og_type = "video.movie" if project_type(item) == "Narrative" else "video.other"
        else:
            og_type = "website"
        text = item.get("description") or item.get("excerpt") or item.get("content") or ""
        return MetaDescriptor(
            title=f"{item.get('title') or 'Untitled'} | {suffix}",
            description=truncate(text, 200),
            image=item_image(item, fallback_image),
            type=og_type,
        )

    if path == "/work":
        return MetaDescriptor(
            title=f"{profile.work_index_title} | {suffix}",
            description=profile.work_index_description,
            image=fallback_image,
        )
    if path == "/about":
        about = _config(data).get("about") or {}
        return MetaDescriptor(
            title=f"About | {suffix}",
            description=truncate(about.get("bio") or profile.default_description, 200),
            image=about.get("profileImage") or fallback_image,
        )
    if path == "/journal":
        return MetaDescriptor(
            title=f"Journal | {suffix}",
            description=profile.journal_index_description,
            image=fallback_image,
        )
    return MetaDescriptor(
        title=profile.default_title,
        description=profile.default_description,
        image=fallback_image,
    )


def _person(profile: OwnerProfile, url: str) -> dict[str, Any]:
    return {
        "@type": "Person",
        "name": profile.owner_name,
        "jobTitle": profile.job_title,
        "url": url,
        "sameAs": list(profile.same_as),
    }


def build_structured_data(
    path: str,
    item: dict[str, Any] | None,
    canonical_url: str,
    profile: OwnerProfile,
    descriptor: MetaDescriptor | None = None,
) -> dict[str, Any]:
    """schema.org object: Movie/VideoObject for work, Article for journal, Person otherwise."""
    parts = urlsplit(canonical_url)
    site_origin = f"{parts.scheme}://{parts.netloc}"

    if item and is_project_path(path):
        kind = project_type(item)
        image = descriptor.image if descriptor else item_image(item, "")
        schema: dict[str, Any] = {
            "@context": "https://schema.org",
            "@type": "Movie" if kind == "Narrative" else "VideoObject",
            "name": item.get("title"),
            "description": item.get("description") or "",
            "thumbnailUrl": image,
            "image": image,
            "url": canonical_url,
        }
        year = item.get("year")
        iso_date = _iso_date(item.get("releaseDate") or item.get("workDate") or (f"{year}-01-01" if year else None))
        if iso_date:
            schema["dateCreated"] = iso_date
            schema["uploadDate"] = iso_date
        schema["director"] = _person(profile, site_origin)

        if item.get("credits"):
            schema["credits"] = [
                {"@type": "Role", "roleName": c.get("role"), "name": c.get("name")}
                for c in item["credits"]
                if isinstance(c, dict)
            ]
        if item.get("productionCompany"):
            schema["productionCompany"] = {"@type": "Organization", "name": item["productionCompany"]}
        if kind == "Commercial" and item.get("client"):
            schema["sponsor"] = {"@type": "Organization", "name": item["client"]}
        if item.get("genre"):
            schema["genre"] = item["genre"]
        if item.get("awards"):
            schema["award"] = item["awards"]
        if item.get("videoUrl"):
            schema["contentUrl"] = item["videoUrl"]
            schema["embedUrl"] = item["videoUrl"]
        gallery = [g for g in item.get("gallery") or [] if isinstance(g, str)]
        if gallery:
            schema["thumbnail"] = [{"@type": "ImageObject", "url": url} for url in gallery]
        return schema

    if item and is_post_path(path):
        schema = {
            "@context": "https://schema.org",
            "@type": "Article",
            "headline": item.get("title"),
            "description": truncate(item.get("content") or item.get("description") or "", 200),
            "image": item.get("coverImage") or item.get("image") or (descriptor.image if descriptor else ""),
            "url": canonical_url,
            "author": _person(profile, site_origin),
            "publisher": {"@type": "Person", "name": profile.owner_name},
        }
        published = _iso_date(_post_date(item))
        if published:
            schema["datePublished"] = published
        if item.get("tags"):
            schema["keywords"] = ", ".join(item["tags"])
        return schema

    person = _person(profile, canonical_url)
    person["areaServed"] = list(profile.area_served)
    return {"@context": "https://schema.org", **person}


def _json_ld(schema: dict[str, Any]) -> str:
    # "</" would close the surrounding <script> early.
    return json.dumps(schema, ensure_ascii=False).replace("</", "<\\/")


def render_meta_block(
    descriptor: MetaDescriptor,
    item: dict[str, Any] | None,
    canonical_url: str,
    structured_data: dict[str, Any],
    profile: OwnerProfile,
) -> str:
    title = escape_html(descriptor.title)
    description = escape_html(descriptor.description)
    image = escape_html(descriptor.image)
    canonical = escape_html(canonical_url)

    lines = [
        f"<title>{title}</title>",
        f'<meta name="description" content="{description}">',
        f'<meta property="og:title" content="{title}">',
        f'<meta property="og:description" content="{description}">',
        f'<meta property="og:type" content="{descriptor.type}">',
        f'<meta property="og:image" content="{image}">',
        f'<meta property="og:image:width" content="{OG_IMAGE_WIDTH}">',
        f'<meta property="og:image:height" content="{OG_IMAGE_HEIGHT}">',
        f'<meta property="og:image:alt" content="{title}">',
        f'<meta property="og:url" content="{canonical}">',
        f'<meta property="og:site_name" content="{escape_html(profile.site_name)}">',
    ]

    if item and descriptor.type == "article":
        published = _iso_date(_post_date(item))
        if published:
            lines.append(f'<meta property="article:published_time" content="{escape_html(published)}">')
        lines.append(f'<meta property="article:author" content="{escape_html(profile.owner_name)}">')
        for tag in item.get("tags") or []:
            lines.append(f'<meta property="article:tag" content="{escape_html(tag)}">')
    elif item and descriptor.type in ("video.movie", "video.other"):
        if item.get("year"):
            lines.append(f'<meta property="video:release_date" content="{escape_html(item["year"])}-01-01">')
        lines.append(f'<meta property="video:director" content="{escape_html(profile.owner_name)}">')
        if item.get("videoUrl"):
            lines.append(f'<meta property="og:video" content="{escape_html(item["videoUrl"])}">')
        kind = project_type(item)
        if kind:
            lines.append(f'<meta property="video:tag" content="{escape_html(kind)}">')

    lines += [
        '<meta name="twitter:card" content="summary_large_image">',
        f'<meta name="twitter:title" content="{title}">',
        f'<meta name="twitter:description" content="{description}">',
        f'<meta name="twitter:image" content="{image}">',
        f'<meta name="twitter:creator" content="{escape_html(profile.twitter_creator)}">',
        f'<link rel="canonical" href="{canonical}">',
        f'<script type="application/ld+json">{_json_ld(structured_data)}</script>',
    ]
    return "\n    ".join(lines)


def has_head_region(html: str) -> bool:
    """True when the page has a <title>...canonical region to replace."""
    return _HEAD_REGION_RE.search(html) is not None


def splice_head(html: str, meta_block: str) -> str:
    """Replace the head region from the first <title> to the last canonical link."""
    match = _HEAD_REGION_RE.search(html)
    if not match:
        logger.info("No <title>/canonical region found, leaving HTML unchanged")
        return html
    return html[: match.start()] + meta_block + html[match.end():]


def rewrite_html(
    html: str,
    path: str,
    canonical_url: str,
    data: dict[str, Any] | None,
    profile: OwnerProfile,
) -> str:
    """Full rewrite for one request: descriptor, JSON-LD, meta block, splice."""
    item = find_item(data, path)
    descriptor = build_descriptor(path, item, data, profile)
    structured = build_structured_data(path, item, canonical_url, profile, descriptor)
    block = render_meta_block(descriptor, item, canonical_url, structured, profile)
    return splice_head(html, block)
