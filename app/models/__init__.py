"""Typed records for tenants and their content."""

from app.models.base import Attachment, Record
from app.models.content import (
    Article,
    Author,
    Business,
    Category,
    ContentItem,
    ContentKind,
    Feature,
    Guide,
    Page,
    PageType,
)
from app.models.snapshot import ContentSnapshot
from app.models.tables import TableKind
from app.models.tenant import Tenant, TenantRead, TenantTheme

__all__ = [
    "Article",
    "Attachment",
    "Author",
    "Business",
    "Category",
    "ContentItem",
    "ContentKind",
    "ContentSnapshot",
    "Feature",
    "Guide",
    "Page",
    "PageType",
    "Record",
    "TableKind",
    "Tenant",
    "TenantRead",
    "TenantTheme",
]
