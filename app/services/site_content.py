"""Site content delivery — what the rendering layer asks for, per tenant.

Flow for a single path:
  1. Look the slug up among the tenant's articles, then guides
  2. Run the publish/redirect resolver on whatever was found
  3. For renderable items, attach related articles or guide entries
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from app.core.config import Settings
from app.models.content import (
    Article,
    Author,
    Business,
    Category,
    ContentItem,
    Feature,
    Guide,
    Page,
    PageType,
)
from app.models.tenant import Tenant
from app.services.aggregator import (
    CategoryFeed,
    Paginated,
    exclude_ids,
    group_by_category,
    items_in_category,
    merge_and_sort,
    paginate,
    popular_articles,
    related_articles,
)
from app.services.content_repository import ContentRepository
from app.services.publish import NotFound, Redirect, Render, evaluate

logger = logging.getLogger(__name__)


@dataclass
class RenderArticle:
    item: Article
    related: list[Article] = field(default_factory=list)
    authors: list[Author] = field(default_factory=list)
    category: Category | None = None


@dataclass
class RenderGuide:
    item: Guide
    businesses: list[Business] = field(default_factory=list)
    authors: list[Author] = field(default_factory=list)
    category: Category | None = None


ContentOutcome = Redirect | NotFound | RenderArticle | RenderGuide


@dataclass
class SiteData:
    tenant: Tenant
    pages: list[Page]
    features: list[Feature]
    homepage: Page | None


@dataclass
class CategoryPage:
    category: Category
    feed: Paginated[ContentItem]


@dataclass
class AuthorPage:
    author: Author
    feed: Paginated[ContentItem]


class SiteContentService:
    def __init__(
        self,
        repository: ContentRepository,
        settings: Settings,
        rng: random.Random | None = None,
    ) -> None:
        self.repository = repository
        self.settings = settings
        # Unseeded by default: related fallbacks differ per request
        self.rng = rng or random.Random()

    async def resolve_path(self, tenant: Tenant, slug: str) -> ContentOutcome:
        item: ContentItem | None = await self.repository.article_by_slug(tenant, slug)
        if item is None:
            item = await self.repository.guide_by_slug(tenant, slug)

        outcome = evaluate(item, self.settings.content_path_prefix)
        if not isinstance(outcome, Render):
            if isinstance(outcome, Redirect):
                logger.info("Redirecting %s/%s to %s", tenant.domain, slug, outcome.location)
            return outcome

        category = await self._primary_category(tenant, outcome.item)
        authors = await self.repository.authors(outcome.item.author_ids)
        if isinstance(outcome.item, Article):
            pool = await self.repository.articles(tenant)
            related = related_articles(
                outcome.item, pool, self.settings.related_limit, self.rng
            )
            return RenderArticle(
                item=outcome.item, related=related, authors=authors, category=category
            )

        businesses = await self.repository.businesses(outcome.item.entry_ids)
        if len(businesses) < len(outcome.item.entry_ids):
            logger.warning(
                "Guide %s: resolved %d of %d entries",
                outcome.item.slug, len(businesses), len(outcome.item.entry_ids),
            )
        return RenderGuide(
            item=outcome.item, businesses=businesses, authors=authors, category=category
        )

    async def _primary_category(self, tenant: Tenant, item: ContentItem) -> Category | None:
        if not item.category_ids:
            return None
        assigned = {c.id: c for c in await self.repository.categories(tenant)}
        return next((assigned[cid] for cid in item.category_ids if cid in assigned), None)

    # ── Listings ─────────────────────────────────────────────

    async def combined(self, tenant: Tenant) -> list[ContentItem]:
        articles = await self.repository.articles(tenant)
        guides = await self.repository.guides(tenant)
        return merge_and_sort(articles, guides)

    async def feed(self, tenant: Tenant, page: int = 1, per_page: int | None = None) -> Paginated[ContentItem]:
        per_page = per_page or self.settings.default_page_size
        return paginate(await self.combined(tenant), page, per_page)

    async def category_feed(
        self,
        tenant: Tenant,
        per_group: int | None = 4,
        page: int = 1,
        per_page: int | None = None,
        exclude_popular: bool = False,
    ) -> CategoryFeed:
        items = await self.combined(tenant)
        if exclude_popular:
            popular = await self.popular(tenant)
            items = exclude_ids(items, {a.id for a in popular})
        assigned = await self.repository.categories(tenant)
        return group_by_category(
            items,
            assigned,
            per_group=per_group,
            page=page,
            per_page=per_page or self.settings.default_page_size,
        )

    async def category_page(
        self, tenant: Tenant, slug: str, page: int = 1, per_page: int | None = None
    ) -> CategoryPage | None:
        category = await self.repository.category_by_slug(tenant, slug)
        if category is None:
            return None
        items = items_in_category(await self.combined(tenant), category)
        return CategoryPage(
            category=category,
            feed=paginate(items, page, per_page or self.settings.default_page_size),
        )

    async def author_page(
        self, tenant: Tenant, slug: str, page: int = 1, per_page: int | None = None
    ) -> AuthorPage | None:
        """The author's articles and guides on this tenant, newest first."""
        author = await self.repository.author_by_slug(slug)
        if author is None:
            return None
        items = [i for i in await self.combined(tenant) if author.id in i.author_ids]
        return AuthorPage(
            author=author,
            feed=paginate(items, page, per_page or self.settings.default_page_size),
        )

    async def popular(self, tenant: Tenant, limit: int | None = None) -> list[Article]:
        limit = limit if limit is not None else self.settings.popular_limit
        return popular_articles(await self.repository.articles(tenant), limit)

    async def site_data(self, tenant: Tenant) -> SiteData:
        pages = await self.repository.pages(tenant)
        return SiteData(
            tenant=tenant,
            pages=pages,
            features=await self.repository.features(tenant),
            homepage=next((p for p in pages if p.page_type == PageType.HOME), None),
        )
