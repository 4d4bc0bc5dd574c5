"""ContentSnapshot — one bulk, internally consistent fetch of every tenant's content."""

from collections import defaultdict
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from app.core.errors import SlugConflictError
from app.models.base import utcnow
from app.models.content import Article, Category, Feature, Guide, Page
from app.models.tenant import Tenant


def check_unique_slugs(articles: list[Article], guides: list[Guide]) -> None:
    """Raise SlugConflictError when an article and a guide of one tenant share a slug."""
    article_slugs: dict[str, set[str]] = defaultdict(set)
    for article in articles:
        if article.slug:
            for tenant_id in article.tenant_ids:
                article_slugs[tenant_id].add(article.slug)

    conflicts: dict[str, set[str]] = defaultdict(set)
    for guide in guides:
        if not guide.slug:
            continue
        for tenant_id in guide.tenant_ids:
            if guide.slug in article_slugs.get(tenant_id, ()):
                conflicts[tenant_id].add(guide.slug)

    if conflicts:
        tenant_id = sorted(conflicts)[0]
        raise SlugConflictError(tenant_id, sorted(conflicts[tenant_id]))


class ContentSnapshot(BaseModel):
    tenants: list[Tenant] = Field(default_factory=list)
    articles: list[Article] = Field(default_factory=list)
    guides: list[Guide] = Field(default_factory=list)
    pages: list[Page] = Field(default_factory=list)
    features: list[Feature] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _slugs_unique_per_tenant(self) -> "ContentSnapshot":
        check_unique_slugs(self.articles, self.guides)
        return self

    # ── Per-tenant views (fetch order preserved) ─────────────

    def articles_for(self, tenant_id: str) -> list[Article]:
        return [a for a in self.articles if a.belongs_to(tenant_id)]

    def guides_for(self, tenant_id: str) -> list[Guide]:
        return [g for g in self.guides if g.belongs_to(tenant_id)]

    def pages_for(self, tenant_id: str) -> list[Page]:
        return [p for p in self.pages if tenant_id in p.tenant_ids]

    def features_for(self, tenant_id: str) -> list[Feature]:
        return [f for f in self.features if f.enabled_for(tenant_id)]

    def categories_for(self, tenant_id: str) -> list[Category]:
        return [c for c in self.categories if tenant_id in c.tenant_ids]

    def active_tenants(self) -> list[Tenant]:
        return [t for t in self.tenants if t.is_active]

    def counts(self) -> dict[str, int]:
        return {
            "tenants": len(self.tenants),
            "articles": len(self.articles),
            "guides": len(self.guides),
            "pages": len(self.pages),
            "features": len(self.features),
            "categories": len(self.categories),
        }
