"""Application settings loaded from environment / .env file."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Record store (Airtable) ───────────────────────────
    airtable_api_key: str = ""  # MUST be set
    airtable_base_id: str = ""  # MUST be set
    airtable_endpoint_url: str = "https://api.airtable.com"
    airtable_timeout_seconds: float = 30.0
    airtable_max_retries: int = 3

    # ── Table names ───────────────────────────────────────
    table_tenants: str = "Sites"
    table_articles: str = "Blog posts"
    table_guides: str = "Listing posts"
    table_pages: str = "Pages"
    table_features: str = "Features"
    table_categories: str = "Categories"
    table_authors: str = "Authors"
    table_businesses: str = "Businesses"

    # ── Runtime mode ──────────────────────────────────────
    environment: str = "production"  # "production" | "development"

    # Development only: request port -> tenant "Local domain"
    port_aliases: dict[str, str] = {
        "3000": "localhost:3000",
        "3001": "localhost:3001",
        "3002": "localhost:3002",
        "3003": "localhost:3003",
    }

    # Pre-filtered views per tenant domain: {"example.com": {"articles": "example.com"}}
    tenant_views: dict[str, dict[str, str]] = {}

    # ── Caching & querying ────────────────────────────────
    content_cache_ttl_hours: float = 12.0
    query_tier_timeout_seconds: float = 10.0
    # After a failed bulk refresh, serve scoped queries this long before retrying
    snapshot_retry_seconds: float = 60.0

    # ── Delivery ──────────────────────────────────────────
    content_path_prefix: str = "/blog"
    related_limit: int = 4
    popular_limit: int = 3
    default_page_size: int = 12

    # ── CORS ──────────────────────────────────────────────
    allowed_origins: str = "*"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def content_cache_ttl_seconds(self) -> float:
        return self.content_cache_ttl_hours * 3600


@lru_cache
def get_settings() -> Settings:
    return Settings()
