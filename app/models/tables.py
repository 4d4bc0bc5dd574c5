"""Record-store tables the subsystem reads, and how each links to a tenant."""

from enum import StrEnum

from app.core.config import Settings


class TableKind(StrEnum):
    TENANTS = "tenants"
    ARTICLES = "articles"
    GUIDES = "guides"
    PAGES = "pages"
    FEATURES = "features"
    CATEGORIES = "categories"
    AUTHORS = "authors"
    BUSINESSES = "businesses"


# Field holding the list of tenant ids a row belongs to (None = not tenant-scoped)
TENANT_LINK_FIELDS: dict[TableKind, str | None] = {
    TableKind.TENANTS: None,
    TableKind.ARTICLES: "Site",
    TableKind.GUIDES: "Site",
    TableKind.PAGES: "Site",
    TableKind.FEATURES: "Enabled sites",
    TableKind.CATEGORIES: "Site",
    TableKind.AUTHORS: None,
    TableKind.BUSINESSES: None,
}

# Tables carrying a "Published" checkbox
PUBLISHABLE: frozenset[TableKind] = frozenset(
    {TableKind.ARTICLES, TableKind.GUIDES, TableKind.PAGES}
)

PUBLISHED_FIELD = "Published"


def table_name(kind: TableKind, settings: Settings) -> str:
    return getattr(settings, f"table_{kind.value}")
