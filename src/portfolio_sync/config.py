"""Portfolio sync configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

PORTFOLIO_MODES: tuple[str, ...] = ("directing", "postproduction")


class PortfolioSettings(BaseSettings):
    airtable_token: str = ""
    airtable_base_id: str = ""
    airtable_api_url: str = "https://api.airtable.com/v0"
    airtable_timeout_seconds: float = 30.0

    # Selects the settings row, display-status column and branding profile.
    mode: str = "directing"

    output_dir: str = "public"
    cdn_base_url: str = "https://res.cloudinary.com/date24ay6/raw/upload/portfolio-static"
    site_url: str = "https://directedbygabriel.com"
    site_dir: str = "dist"

    # Bearer token for POST /sync; empty leaves the trigger open.
    sync_token: str = ""

    cache_ttl_seconds: int = 300
    edge_fetch_timeout_seconds: float = 5.0
    oembed_timeout_seconds: float = 10.0
    log_level: str = "INFO"

    model_config = {"env_prefix": "PORTFOLIO_", "env_file": ".env", "extra": "ignore"}

    @property
    def airtable_configured(self) -> bool:
        return bool(self.airtable_token and self.airtable_base_id)

    @property
    def normalized_mode(self) -> str:
        mode = self.mode.strip().lower()
        return mode if mode in PORTFOLIO_MODES else "directing"

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir)

    def data_file(self, mode: str | None = None) -> Path:
        return self.output_path / f"portfolio-data-{mode or self.normalized_mode}.json"

    def cdn_data_url(self, mode: str | None = None) -> str:
        return f"{self.cdn_base_url.rstrip('/')}/portfolio-data-{mode or self.normalized_mode}.json"

    def cdn_share_meta_url(self, mode: str | None = None) -> str:
        return f"{self.cdn_base_url.rstrip('/')}/share-meta-{mode or self.normalized_mode}.json"


settings = PortfolioSettings()
