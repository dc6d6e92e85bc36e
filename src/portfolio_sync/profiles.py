"""Per-mode owner profiles used for credits, titles and structured data."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class OwnerProfile:
    mode: str
    owner_name: str
    job_title: str
    site_name: str
    title_suffix: str
    default_title: str
    default_description: str
    work_index_title: str
    work_index_description: str
    journal_index_description: str
    twitter_creator: str
    area_served: tuple[str, ...] = ()
    same_as: tuple[str, ...] = field(default_factory=tuple)


_SOCIAL_LINKS = (
    "https://twitter.com/gab_ath",
    "https://www.instagram.com/gab.ath",
    "https://www.linkedin.com/in/gabathanasiou/",
    "https://www.imdb.com/name/nm7048843/",
)

DIRECTING = OwnerProfile(
    mode="directing",
    owner_name="Gabriel Athanasiou",
    job_title="Director",
    site_name="Gabriel Athanasiou",
    title_suffix="GABRIEL ATHANASIOU",
    default_title="GABRIEL ATHANASIOU | Director",
    default_description="Director based in London & Athens. Narrative, Commercial, Music Video.",
    work_index_title="Filmography",
    work_index_description=(
        "Browse my collection of narrative films, commercials, music videos, and documentaries."
    ),
    journal_index_description="Updates, behind-the-scenes insights, and reflections from my filmmaking journey.",
    twitter_creator="@gabrielcine",
    area_served=("London", "Athens"),
    same_as=_SOCIAL_LINKS,
)

POSTPRODUCTION = OwnerProfile(
    mode="postproduction",
    owner_name="Gabriel Athanasiou",
    job_title="Colourist",
    site_name="Gabriel Athanasiou Post",
    title_suffix="GABRIEL ATHANASIOU | POST",
    default_title="GABRIEL ATHANASIOU | Colourist & Post-Production",
    default_description="Colourist and post-production supervisor based in London & Athens.",
    work_index_title="Work",
    work_index_description="Selected grading and post-production work across film, commercials and music videos.",
    journal_index_description="Notes on colour, finishing and post-production workflows.",
    twitter_creator="@gabrielcine",
    area_served=("London", "Athens"),
    same_as=_SOCIAL_LINKS,
)

PROFILES: dict[str, OwnerProfile] = {p.mode: p for p in (DIRECTING, POSTPRODUCTION)}


def profile_for(mode: str | None) -> OwnerProfile:
    return PROFILES.get((mode or "").strip().lower(), DIRECTING)
