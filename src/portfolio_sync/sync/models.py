"""Portfolio data schemas written to the JSON artifact."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..profiles import profile_for

PROJECT_CATEGORIES: tuple[str, ...] = (
    "Narrative",
    "Commercial",
    "Music Video",
    "Documentary",
    "Uncategorized",
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Credit(CamelModel):
    role: str
    name: str


class ExternalLink(CamelModel):
    label: str
    url: str


class ProjectImage(CamelModel):
    url: str
    thumbnails: dict[str, Any] = {}
    width: int | None = None
    height: int | None = None
    type: str = ""


class Project(CamelModel):
    id: str
    slug: str
    title: str
    category: str = "Uncategorized"
    kinds: list[str] = []
    genre: list[str] = []
    role: list[str] = []
    production_company: str = ""
    client: str = ""
    year: str = ""
    release_date: str = ""
    work_date: str = ""
    description: str = ""
    display_status: str = ""
    is_featured: bool = False
    is_hero: bool = False
    hero_image: str = ""
    images: list[ProjectImage] = []
    gallery: list[str] = []
    videos: list[str] = []
    video_url: str = ""
    video_thumbnail: str = ""
    awards: list[str] = []
    credits: list[Credit] = []
    external_links: list[ExternalLink] = []
    related_article_id: str | None = None


class JournalPost(CamelModel):
    id: str
    slug: str
    title: str
    publish_date: str = ""
    status: str = ""
    content: str = ""
    excerpt: str = ""
    reading_time: str = "1 min read"
    cover_image: str = ""
    tags: list[str] = []
    related_project_id: str | None = None
    related_links: list[str] = []


class Showreel(CamelModel):
    enabled: bool = False
    video_url: str = ""
    placeholder_image: str = ""


class ContactInfo(CamelModel):
    email: str = ""
    phone: str = ""
    rep_uk: str = Field(default="", alias="repUK")
    rep_usa: str = Field(default="", alias="repUSA")
    instagram: str = ""
    vimeo: str = ""
    linkedin: str = ""
    imdb: str = ""


class AboutInfo(CamelModel):
    bio: str = ""
    profile_image: str = ""


class PortfolioConfig(CamelModel):
    portfolio_id: str = "directing"
    site_title: str = ""
    nav_title: str = ""
    seo_title: str = ""
    seo_description: str = ""
    domain: str = ""
    logo: str = ""
    favicon: str = ""
    work_section_label: str = "Filmography"
    has_journal: bool = True
    show_role_filter: bool = False
    show_other_portfolio_link: bool = False
    other_portfolio_url: str = ""
    other_portfolio_label: str = ""
    theme_mode: str = "dark"
    ga_measurement_id: str = ""
    showreel: Showreel = Field(default_factory=Showreel)
    contact: ContactInfo = Field(default_factory=ContactInfo)
    about: AboutInfo = Field(default_factory=AboutInfo)
    allowed_roles: list[str] = []
    default_og_image: str = ""
    portfolio_owner_name: str = ""
    last_modified: str = ""

    @classmethod
    def default(cls, mode: str = "directing") -> "PortfolioConfig":
        """Fallback used when the Settings table is empty or unreadable."""
        return cls(portfolio_id=mode, portfolio_owner_name=profile_for(mode).owner_name)


class PortfolioData(CamelModel):
    projects: list[Project] = []
    posts: list[JournalPost] = []
    config: PortfolioConfig = Field(default_factory=PortfolioConfig)
    generated_at: str = ""
    portfolio_mode: str = "directing"
