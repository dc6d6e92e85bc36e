"""Video URL classification (YouTube, Vimeo, Facebook) and thumbnail lookup."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

_YOUTUBE_RE = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?|shorts|live)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})"
)
_VIMEO_RE = re.compile(
    r"(?:vimeo\.com/|player\.vimeo\.com/video/)"
    r"(?:(?:channels/[a-zA-Z0-9]+/)|(?:groups/[a-zA-Z0-9]+/videos/)|(?:manage/videos/))?"
    r"([0-9]+)(?:/([a-zA-Z0-9]+))?"
)
_VIMEO_HASH_QUERY_RE = re.compile(r"[?&]h=([a-zA-Z0-9]+)")

VIMEO_OEMBED_URL = "https://vimeo.com/api/oembed.json"
FACEBOOK_OEMBED_URL = "https://www.facebook.com/plugins/video/oembed.json/"


@dataclass(frozen=True)
class VideoRef:
    type: str
    id: str
    hash: str | None = None


def get_video_id(url: str | None) -> VideoRef | None:
    """Identify the provider and id of a video URL, or None for anything else."""
    if not url:
        return None
    clean = url.strip()

    yt = _YOUTUBE_RE.search(clean)
    if yt:
        return VideoRef("youtube", yt.group(1))

    # Facebook embeds need the full URL.
    if "facebook.com/" in clean or "fb.watch/" in clean:
        return VideoRef("facebook", clean)

    vimeo = _VIMEO_RE.search(clean)
    if vimeo:
        video_hash = vimeo.group(2)
        if not video_hash and "?" in clean:
            query_hash = _VIMEO_HASH_QUERY_RE.search(clean)
            if query_hash:
                video_hash = query_hash.group(1)
        return VideoRef("vimeo", vimeo.group(1), video_hash)

    # Vanity URLs (vimeo.com/user/title) are resolved later through oEmbed.
    if "vimeo.com/" in clean and "player.vimeo.com" not in clean:
        return VideoRef("vimeo", clean)

    return None


def is_video_url(url: str | None) -> bool:
    return get_video_id(url) is not None


async def get_video_thumbnail(url: str, http: httpx.AsyncClient | None = None) -> str:
    """Best-effort thumbnail URL for the first video in a comma-separated list."""
    first = url.split(",")[0].strip() if url else ""
    ref = get_video_id(first)
    if ref is None:
        return ""

    if ref.type == "youtube":
        return f"https://img.youtube.com/vi/{ref.id}/maxresdefault.jpg"

    if ref.type == "vimeo":
        # Vanity URLs carry no numeric id, so only oEmbed can resolve them.
        fallback = f"https://vumbnail.com/{ref.id}.jpg" if ref.id.isdigit() else ""
        if http is None:
            return fallback
        try:
            response = await http.get(VIMEO_OEMBED_URL, params={"url": first})
            if response.status_code == 200:
                data = response.json()
                return data.get("thumbnail_url") or data.get("thumbnail_url_with_play_button") or fallback
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Vimeo oEmbed thumbnail failed for %s: %s", first, exc)
        return fallback

    if ref.type == "facebook" and http is not None:
        video_url = ref.id if ref.id.startswith("http") else f"https://{ref.id}"
        try:
            response = await http.get(FACEBOOK_OEMBED_URL, params={"url": video_url})
            if response.status_code == 200:
                return response.json().get("thumbnail_url") or ""
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Facebook oEmbed thumbnail failed for %s: %s", first, exc)

    return ""
