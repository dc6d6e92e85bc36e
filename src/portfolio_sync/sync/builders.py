"""Builders that turn raw Airtable records into portfolio models."""

from __future__ import annotations

import logging
from typing import Iterable

import httpx

from ..airtable.records import JournalRow, ProjectRow, SettingsRow
from ..profiles import profile_for
from .links import parse_external_links, resolve_awards, resolve_production_company
from .lookups import LookupMaps
from .models import (
    AboutInfo,
    ContactInfo,
    JournalPost,
    PortfolioConfig,
    Project,
    ProjectImage,
    Showreel,
)
from .text import (
    calculate_reading_time,
    make_unique_slug,
    normalize_project_type,
    normalize_title,
    parse_credits_text,
)
from .video import get_video_thumbnail

logger = logging.getLogger(__name__)

_EPOCH_DATE = "1900-01-01"


def _select_settings_row(records: list[dict], mode: str) -> SettingsRow:
    rows = [SettingsRow.from_record(r) for r in records]
    for row in rows:
        if row.portfolio_id.lower() == mode.lower():
            return row
    logger.warning("No settings row for portfolio mode %r, using the first row", mode)
    return rows[0]


def build_config(records: list[dict], mode: str = "directing") -> PortfolioConfig:
    """PortfolioConfig for ``mode``; defaults when Settings is empty."""
    if not records:
        logger.warning("Settings table is empty, using default config")
        return PortfolioConfig.default(mode)

    row = _select_settings_row(records, mode)
    owner = row.owner_name or row.site_title or profile_for(mode).owner_name

    return PortfolioConfig(
        portfolio_id=row.portfolio_id or mode,
        site_title=row.site_title,
        nav_title=row.nav_title,
        seo_title=row.seo_title,
        seo_description=row.seo_description,
        domain=row.domain,
        logo=row.logo,
        favicon=row.favicon,
        work_section_label=row.work_section_label or "Filmography",
        has_journal=row.has_journal,
        show_role_filter=row.show_role_filter,
        show_other_portfolio_link=row.show_other_portfolio_link,
        other_portfolio_url=row.other_portfolio_url,
        other_portfolio_label=row.other_portfolio_label,
        theme_mode=row.theme_mode or "dark",
        ga_measurement_id=row.ga_measurement_id,
        showreel=Showreel(
            enabled=row.showreel_enabled,
            video_url=row.showreel_url,
            placeholder_image=row.showreel_placeholder,
        ),
        contact=ContactInfo(
            email=row.contact_email,
            phone=row.contact_phone,
            rep_uk=row.rep_uk,
            rep_usa=row.rep_usa,
            instagram=row.instagram_url,
            vimeo=row.vimeo_url,
            linkedin=row.linkedin_url,
            imdb=row.imdb_url,
        ),
        about=AboutInfo(bio=row.bio, profile_image=row.about_image),
        allowed_roles=row.allowed_roles,
        default_og_image=row.default_og_image,
        portfolio_owner_name=owner,
        last_modified=row.last_modified,
    )


def owner_credits(roles: list[str], allowed_roles: list[str], owner_name: str) -> list[dict[str, str]]:
    """One ``{role, name: owner}`` credit per project role the portfolio allows."""
    if not owner_name or not allowed_roles:
        return []
    return [{"role": role, "name": owner_name} for role in roles if role in allowed_roles]


def _merge_videos(video_field: str, external_videos: list[str]) -> list[str]:
    videos = [v.strip() for v in video_field.split(",") if v.strip()]
    for url in external_videos:
        if url not in videos:
            videos.append(url)
    return videos


async def build_project(
    row: ProjectRow,
    slug: str,
    lookups: LookupMaps,
    config: PortfolioConfig,
    *,
    display_status: str,
    http: httpx.AsyncClient | None = None,
) -> Project:
    title = normalize_title(row.name)
    release_date = row.release_date
    work_date = row.work_date or release_date
    year = (release_date or work_date).split("-")[0]

    credits = owner_credits(row.roles, config.allowed_roles, config.portfolio_owner_name)
    if credits:
        logger.debug("Added %d owner credit(s) to %r", len(credits), title)
    credits += parse_credits_text(row.credits_text)

    external = parse_external_links(row.external_links)
    videos = _merge_videos(row.video_url, external.videos)
    video_url = ", ".join(videos)

    images = [
        ProjectImage(url=a.url, thumbnails=a.thumbnails, width=a.width, height=a.height, type=a.type)
        for a in row.gallery
    ]
    gallery = [image.url for image in images]

    video_thumbnail = ""
    if video_url:
        video_thumbnail = await get_video_thumbnail(video_url, http)
    hero_image = gallery[0] if gallery else video_thumbnail

    return Project(
        id=row.id,
        slug=slug,
        title=title,
        category=normalize_project_type(row.project_type),
        kinds=row.kinds,
        genre=row.genre,
        role=row.roles,
        production_company=resolve_production_company(row.production_company, lookups.clients),
        client=row.client,
        year=year,
        release_date=release_date,
        work_date=work_date,
        description=row.description,
        display_status=display_status,
        is_featured=display_status in ("Featured", "Hero"),
        is_hero=display_status == "Hero",
        hero_image=hero_image,
        images=images,
        gallery=gallery,
        videos=videos,
        video_url=video_url,
        video_thumbnail=video_thumbnail,
        awards=resolve_awards(row.awards, lookups.festivals),
        credits=credits,
        external_links=external.links,
        related_article_id=row.related_article_id,
    )


def _is_visible(row: ProjectRow, display_status: str, allowed_roles: list[str]) -> bool:
    if not display_status or display_status == "Hidden":
        return False
    if allowed_roles and not any(role in allowed_roles for role in row.roles):
        return False
    return True


async def build_projects(
    records: Iterable[dict],
    lookups: LookupMaps,
    config: PortfolioConfig,
    mode: str = "directing",
    *,
    http: httpx.AsyncClient | None = None,
) -> list[Project]:
    """Visible projects for ``mode``, newest first, with unique slugs."""
    projects: list[Project] = []
    used_slugs: set[str] = set()

    for record in records:
        row = ProjectRow.from_record(record)
        status = row.display_status_for(mode)
        if not _is_visible(row, status, config.allowed_roles):
            continue
        slug = make_unique_slug(normalize_title(row.name), used_slugs, row.id)
        projects.append(
            await build_project(row, slug, lookups, config, display_status=status, http=http)
        )

    projects.sort(key=lambda p: p.release_date or p.work_date or _EPOCH_DATE, reverse=True)
    return projects


def build_posts(records: Iterable[dict]) -> list[JournalPost]:
    """Published journal posts, newest first."""
    posts: list[JournalPost] = []
    used_slugs: set[str] = set()

    for record in records:
        row = JournalRow.from_record(record)
        if row.status != "Published":
            continue

        title = normalize_title(row.title)
        posts.append(
            JournalPost(
                id=row.id,
                slug=make_unique_slug(title, used_slugs, row.id),
                title=title,
                publish_date=row.date,
                status=row.status,
                content=row.content,
                excerpt=row.excerpt,
                reading_time=calculate_reading_time(row.content),
                cover_image=row.cover_image[0].url if row.cover_image else "",
                tags=row.tags,
                related_project_id=row.related_project_id,
                related_links=[s.strip() for s in row.links_text.split(",") if s.strip()],
            )
        )

    posts.sort(key=lambda p: p.publish_date or _EPOCH_DATE, reverse=True)
    return posts
