"""Tenant model — one independently branded site."""

from pydantic import BaseModel, Field

from app.models.base import Attachment, Record, attachments, number, text
from app.models.tables import TableKind

ACTIVE_STATUS = "Active"

_TABLE_VALUES = frozenset(t.value for t in TableKind)


class TenantTheme(BaseModel):
    """Branding fields; opaque to the resolution and caching core."""
    primary_color: str = "#000000"
    secondary_color: str = "#666666"
    accent_color: str = "#000000"
    background_color: str = "#FFFFFF"
    text_color: str = "#333333"
    heading_font: str = "Inter"
    body_font: str = "Inter"
    logo: Attachment | None = None
    logo_alt: str | None = None
    logo_title: str | None = None


class Tenant(BaseModel):
    id: str
    ordinal: int = 0
    name: str = ""
    domain: str = ""
    local_domain: str | None = None
    is_active: bool = True
    views: dict[TableKind, str] = Field(default_factory=dict)
    theme: TenantTheme = Field(default_factory=TenantTheme)
    footer_text: str | None = None
    language: str | None = None
    instagram: str | None = None
    email_contact: str | None = None
    google_analytics_id: str | None = None
    google_tag_manager_id: str | None = None
    default_meta_title: str | None = None
    default_meta_description: str | None = None

    def view_for(self, table: TableKind) -> str | None:
        return self.views.get(table)

    @classmethod
    def from_record(
        cls, record: Record, views: dict[str, str] | None = None
    ) -> "Tenant":
        f = record.fields
        name = text(f.get("Name")) or ""
        logos = attachments(f.get("Site logo"))
        return cls(
            id=record.id,
            ordinal=number(f.get("ID"), 0) or 0,
            name=name,
            domain=(text(f.get("Domain")) or "").lower(),
            local_domain=(text(f.get("Local domain")) or None),
            is_active=text(f.get("Active")) == ACTIVE_STATUS,
            views={
                TableKind(k): v for k, v in (views or {}).items()
                if k in _TABLE_VALUES and v
            },
            theme=TenantTheme(
                primary_color=text(f.get("Primary color")) or "#000000",
                secondary_color=text(f.get("Secondary color")) or "#666666",
                accent_color=text(f.get("Accent color")) or "#000000",
                background_color=text(f.get("Background color")) or "#FFFFFF",
                text_color=text(f.get("Text color")) or "#333333",
                heading_font=text(f.get("Heading font")) or "Inter",
                body_font=text(f.get("Body font")) or "Inter",
                logo=logos[0] if logos else None,
                logo_alt=text(f.get("Site logo alt text")) or name or None,
                logo_title=text(f.get("Site logo title")) or name or None,
            ),
            footer_text=text(f.get("Footer text")),
            language=text(f.get("Language")),
            instagram=text(f.get("Instagram")),
            email_contact=text(f.get("Email contact")),
            google_analytics_id=text(f.get("Google analytics ID")),
            google_tag_manager_id=text(f.get("Google Tag Manager ID")),
            default_meta_title=text(f.get("Default meta title")),
            default_meta_description=text(f.get("Default meta description")),
        )


# ── Pydantic schemas (read) ──────────────────────────────────

class TenantRead(BaseModel):
    id: str
    name: str
    domain: str
    local_domain: str | None
    theme: TenantTheme
    footer_text: str | None
    language: str | None
    google_analytics_id: str | None
    google_tag_manager_id: str | None
