"""External link parsing and linked-record name resolution."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import urlparse

from .video import is_video_url

_LINK_SPLIT_RE = re.compile(r"[,|\n]+")

_KNOWN_LABELS = {
    "imdb": "IMDb",
    "youtube": "YouTube",
    "linkedin": "LinkedIn",
    "instagram": "Instagram",
    "vimeo": "Vimeo",
    "facebook": "Facebook",
}


@dataclass
class ExternalLinks:
    links: list[dict[str, str]] = field(default_factory=list)
    videos: list[str] = field(default_factory=list)


def link_label(url: str) -> str:
    """Human label derived from a URL's hostname."""
    try:
        hostname = urlparse(url).hostname or ""
    except ValueError:
        return "Link"
    core = hostname.replace("www.", "", 1).split(".")[0]
    if not core:
        return "Link"
    return _KNOWN_LABELS.get(core, core[:1].upper() + core[1:])


def parse_external_links(raw_text: str | None) -> ExternalLinks:
    """Split a free-text link field into video URLs and labelled links."""
    result = ExternalLinks()
    if not raw_text:
        return result

    for item in _LINK_SPLIT_RE.split(raw_text):
        item = item.strip()
        if not item.startswith("http"):
            continue
        if is_video_url(item):
            result.videos.append(item)
        else:
            result.links.append({"label": link_label(item), "url": item})
    return result


def resolve_awards(value: list[str] | str | None, festivals_map: Mapping[str, str]) -> list[str]:
    """Festival ids (or newline-separated award text) to display names."""
    if not value:
        return []
    if isinstance(value, str):
        lines = [line.strip() for line in value.split("\n")]
        return [festivals_map.get(line, line) for line in lines if line]
    return [festivals_map.get(record_id, record_id) for record_id in value]


def resolve_production_company(value: list[str] | str | None, clients_map: Mapping[str, str]) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        return clients_map.get(value, value)
    return ", ".join(clients_map.get(record_id, record_id) for record_id in value)
