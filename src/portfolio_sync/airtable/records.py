"""Typed views over raw Airtable records.

Every Airtable column name used by the sync pipeline lives in this module.
Rows are built once, right after fetch, and the rest of the package works
with the typed attributes instead of ``fields["Some Column"]`` lookups.
Malformed or missing values degrade to empty defaults; nothing here raises.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

# Table names
PROJECTS_TABLE = "Projects"
JOURNAL_TABLE = "Journal"
FESTIVALS_TABLE = "Festivals"
CLIENTS_TABLE = "Client Book"
SETTINGS_TABLE = "Settings"

ALL_TABLES: tuple[str, ...] = (
    PROJECTS_TABLE,
    JOURNAL_TABLE,
    FESTIVALS_TABLE,
    CLIENTS_TABLE,
    SETTINGS_TABLE,
)

SORT_FIELDS: dict[str, str | None] = {
    PROJECTS_TABLE: "Release Date",
    JOURNAL_TABLE: "Date",
    FESTIVALS_TABLE: None,
    CLIENTS_TABLE: None,
    SETTINGS_TABLE: None,
}


def _fields(record: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not isinstance(record, Mapping):
        return {}
    fields = record.get("fields")
    return fields if isinstance(fields, Mapping) else {}


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def _first_text(fields: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = _text(fields.get(name))
        if value:
            return value
    return ""


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str) and item]
    return []


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1", "checked"}
    return bool(value)


def _linked_or_text(value: Any) -> list[str] | str:
    """Linked-record fields arrive as id lists; older bases use free text."""
    if isinstance(value, (list, tuple)):
        return _string_list(value)
    return _text(value)


def _first_id(value: Any) -> str | None:
    ids = _string_list(value)
    return ids[0] if ids else None


@dataclass(frozen=True)
class Attachment:
    id: str
    url: str
    filename: str = ""
    width: int | None = None
    height: int | None = None
    type: str = ""
    thumbnails: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "Attachment | None":
        if not isinstance(data, Mapping):
            return None
        url = _text(data.get("url"))
        if not url:
            return None
        width = data.get("width")
        height = data.get("height")
        thumbnails = data.get("thumbnails")
        return cls(
            id=_text(data.get("id")),
            url=url,
            filename=_text(data.get("filename")),
            width=width if isinstance(width, int) else None,
            height=height if isinstance(height, int) else None,
            type=_text(data.get("type")),
            thumbnails=dict(thumbnails) if isinstance(thumbnails, Mapping) else {},
        )


def _attachments(value: Any) -> tuple[Attachment, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    parsed = (Attachment.from_dict(item) for item in value)
    return tuple(a for a in parsed if a is not None)


def _first_attachment_url(fields: Mapping[str, Any], name: str) -> str:
    attachments = _attachments(fields.get(name))
    return attachments[0].url if attachments else ""


@dataclass(frozen=True)
class RecordTimestamp:
    id: str
    last_modified: str | None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "RecordTimestamp":
        value = _text(_fields(record).get("Last Modified"))
        return cls(id=_text(record.get("id")), last_modified=value or None)


@dataclass(frozen=True)
class ProjectRow:
    id: str
    name: str
    release_date: str
    work_date: str
    description: str
    project_type: str
    kinds: list[str]
    genre: list[str]
    client: str
    roles: list[str]
    credits_text: str
    video_url: str
    external_links: str
    gallery: tuple[Attachment, ...]
    awards: list[str] | str
    production_company: list[str] | str
    related_article_id: str | None
    display_status: str
    display_status_post: str

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ProjectRow":
        f = _fields(record)
        kinds = _string_list(f.get("Kind")) or _string_list(f.get("Kinds"))
        gallery = _attachments(f.get("Gallery")) or _attachments(f.get("Gallery (Image)"))
        awards_field = f.get("Festivals") if f.get("Festivals") else f.get("Awards")
        return cls(
            id=_text(record.get("id")),
            name=_text(f.get("Name")),
            release_date=_text(f.get("Release Date")),
            work_date=_text(f.get("Work Date")),
            description=_first_text(f, "About", "Description"),
            project_type=_text(f.get("Project Type")),
            kinds=kinds,
            genre=_string_list(f.get("Genre")),
            client=_text(f.get("Client")),
            roles=_string_list(f.get("Role")),
            credits_text=_first_text(f, "Credits (new)", "Credits"),
            video_url=_text(f.get("Video URL")),
            external_links=_text(f.get("External Links")),
            gallery=gallery,
            awards=_linked_or_text(awards_field),
            production_company=_linked_or_text(f.get("Production Company")),
            related_article_id=_first_id(f.get("Related Article")),
            display_status=_text(f.get("Display Status")),
            display_status_post=_text(f.get("Display Status (Post)")),
        )

    def display_status_for(self, mode: str) -> str:
        return self.display_status_post if mode == "postproduction" else self.display_status


@dataclass(frozen=True)
class JournalRow:
    id: str
    title: str
    date: str
    content: str
    excerpt: str
    status: str
    cover_image: tuple[Attachment, ...]
    tags: list[str]
    related_project_id: str | None
    links_text: str

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "JournalRow":
        f = _fields(record)
        return cls(
            id=_text(record.get("id")),
            title=_text(f.get("Title")),
            date=_first_text(f, "Publish Date", "Date"),
            content=_text(f.get("Content")),
            excerpt=_text(f.get("Excerpt")),
            status=_text(f.get("Status")),
            cover_image=_attachments(f.get("Cover Image")),
            tags=_string_list(f.get("Tags")),
            related_project_id=_first_id(f.get("Related Project")),
            links_text=_first_text(f, "Links", "External Links"),
        )


@dataclass(frozen=True)
class SettingsRow:
    id: str
    portfolio_id: str
    owner_name: str
    site_title: str
    nav_title: str
    seo_title: str
    seo_description: str
    domain: str
    logo: str
    favicon: str
    work_section_label: str
    has_journal: bool
    show_role_filter: bool
    show_other_portfolio_link: bool
    other_portfolio_url: str
    other_portfolio_label: str
    theme_mode: str
    ga_measurement_id: str
    showreel_enabled: bool
    showreel_url: str
    showreel_placeholder: str
    contact_email: str
    contact_phone: str
    rep_uk: str
    rep_usa: str
    instagram_url: str
    vimeo_url: str
    linkedin_url: str
    imdb_url: str
    bio: str
    about_image: str
    allowed_roles: list[str]
    default_og_image: str
    last_modified: str

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "SettingsRow":
        f = _fields(record)
        raw_roles = f.get("Allowed Roles")
        if isinstance(raw_roles, str):
            allowed_roles = [r.strip() for r in raw_roles.split(",") if r.strip()]
        else:
            allowed_roles = _string_list(raw_roles)

        return cls(
            id=_text(record.get("id")),
            portfolio_id=_text(f.get("Portfolio ID")),
            owner_name=_first_text(f, "Owner Name", "Portfolio Owner"),
            site_title=_text(f.get("Site Title")),
            nav_title=_text(f.get("Nav Title")),
            seo_title=_text(f.get("SEO Title")),
            seo_description=_text(f.get("SEO Description")),
            domain=_text(f.get("Domain")),
            logo=_first_attachment_url(f, "Logo"),
            favicon=_first_attachment_url(f, "Favicon"),
            work_section_label=_text(f.get("Work Section Label")),
            has_journal=_bool(f.get("Has Journal")),
            show_role_filter=_bool(f.get("Show Role Filter")),
            show_other_portfolio_link=_bool(f.get("Show Other Portfolio Link")),
            other_portfolio_url=_text(f.get("Other Portfolio URL")),
            other_portfolio_label=_text(f.get("Other Portfolio Label")),
            theme_mode=_text(f.get("Theme Mode")),
            ga_measurement_id=_text(f.get("GA Measurement ID")),
            showreel_enabled=_bool(f.get("Showreel Enabled")),
            showreel_url=_text(f.get("Showreel URL")),
            showreel_placeholder=_first_attachment_url(f, "Showreel Placeholder"),
            contact_email=_text(f.get("Contact Email")),
            contact_phone=_text(f.get("Contact Phone")),
            rep_uk=_text(f.get("Rep UK")),
            rep_usa=_text(f.get("Rep USA")),
            instagram_url=_text(f.get("Instagram URL")),
            vimeo_url=_text(f.get("Vimeo URL")),
            linkedin_url=_first_text(f, "LinkedIn URL", "Linkedin URL"),
            imdb_url=_first_text(f, "IMDb URL", "IMDB URL"),
            bio=_text(f.get("Bio")),
            about_image=_first_attachment_url(f, "About Image"),
            allowed_roles=allowed_roles,
            default_og_image=_first_attachment_url(f, "Default OG Image"),
            last_modified=_text(f.get("Last Modified")),
        )


@dataclass(frozen=True)
class FestivalRow:
    id: str
    display_name: str

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "FestivalRow":
        f = _fields(record)
        name = _first_text(f, "Display Name", "Name", "Award") or "Unknown Award"
        return cls(id=_text(record.get("id")), display_name=name)


@dataclass(frozen=True)
class ClientRow:
    id: str
    display_name: str

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ClientRow":
        f = _fields(record)
        name = _first_text(f, "Company", "Company Name", "Client") or "Unknown"
        return cls(id=_text(record.get("id")), display_name=name)
