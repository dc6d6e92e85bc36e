"""Text normalisation helpers shared by the sync builders and the edge rewriter."""

from __future__ import annotations

import math
import re
import unicodedata

READING_SPEED_WPM = 225
MAX_SLUG_LENGTH = 80

_TITLE_SEPARATORS_RE = re.compile(r"[_-]")
_WHITESPACE_RE = re.compile(r"\s+")
_TITLE_WORD_RE = re.compile(r"\w\S*", re.ASCII)
_SLUG_INVALID_RE = re.compile(r"[^a-z0-9]+")
_CREDIT_LINE_RE = re.compile(r"\r?\n")
# Split on a comma only when the next item looks like "Role: ..." so that
# names such as "Smith, Jr." stay in one piece.
_CREDIT_COMMA_RE = re.compile(r",\s*(?=[A-Z][^:]*:)")
_HTML_TAG_RE = re.compile(r"<[^>]*>")


def normalize_title(title: str | None) -> str:
    """Title-case every word after turning ``_``/``-`` into spaces.

    Articles and acronyms are not special-cased ("UK" becomes "Uk").
    """
    if not title:
        return "Untitled"
    clean = _TITLE_SEPARATORS_RE.sub(" ", title)
    clean = _WHITESPACE_RE.sub(" ", clean).strip()
    if not clean:
        return "Untitled"
    return _TITLE_WORD_RE.sub(lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), clean)


def make_slug(base: str | None) -> str:
    """URL-safe slug, at most 80 characters, ``"item"`` when nothing survives."""
    if not base:
        return "item"
    decomposed = unicodedata.normalize("NFKD", str(base))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()
    slug = _SLUG_INVALID_RE.sub("-", stripped).strip("-")
    slug = slug[:MAX_SLUG_LENGTH].strip("-")
    return slug or "item"


def make_unique_slug(base: str | None, used: set[str], fallback_id: str | None = None) -> str:
    """Slug for ``base`` that is not yet in ``used``; records the result in ``used``."""
    candidate = make_slug(base)
    if candidate not in used:
        used.add(candidate)
        return candidate

    if fallback_id:
        suffix = re.sub(r"[^a-z0-9]", "", fallback_id.lower())[:6]
        if suffix:
            alt = f"{candidate}-{suffix}"
            if alt not in used:
                used.add(alt)
                return alt

    i = 2
    while True:
        alt = f"{candidate}-{i}"
        if alt not in used:
            used.add(alt)
            return alt
        i += 1


def parse_credits_text(text: str | None) -> list[dict[str, str]]:
    """Parse "Role: Name" credits separated by newlines and/or commas."""
    if not text:
        return []

    items: list[str] = []
    for line in _CREDIT_LINE_RE.split(text):
        for part in _CREDIT_COMMA_RE.split(line):
            part = part.strip()
            if part:
                items.append(part)

    credits: list[dict[str, str]] = []
    for item in items:
        colon = item.find(":")
        if colon > 0:
            credits.append({"role": item[:colon].strip(), "name": item[colon + 1 :].strip()})
        else:
            credits.append({"role": "Credit", "name": item})
    return credits


def normalize_project_type(raw_type: str | None) -> str:
    if not raw_type:
        return "Uncategorized"
    lowered = raw_type.lower()
    if re.search(r"short|feature|narrative", lowered):
        return "Narrative"
    if re.search(r"commercial|tvc|brand", lowered):
        return "Commercial"
    if "music" in lowered:
        return "Music Video"
    if "documentary" in lowered:
        return "Documentary"
    return "Uncategorized"


def escape_html(text: str | None) -> str:
    """Escape the five HTML entities and flatten newlines for attribute values."""
    if not text:
        return ""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#039;")
        .replace("\r\n", " ")
        .replace("\n", " ")
    )


def truncate(text: str | None, max_length: int = 200) -> str:
    if not text:
        return ""
    clean = _WHITESPACE_RE.sub(" ", text).strip()
    if len(clean) <= max_length:
        return clean
    return clean[:max_length] + "..."


def calculate_reading_time(content: str | None) -> str:
    if not content:
        return "1 min read"
    words = _HTML_TAG_RE.sub("", content).split()
    minutes = max(1, math.ceil(len(words) / READING_SPEED_WPM))
    return f"{minutes} min read"
