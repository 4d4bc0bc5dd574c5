"""Content endpoints: merged feed, category rails, popular posts and single paths."""

from typing import Annotated, Generic, TypeVar

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from app.api.deps import CurrentTenant, Services
from app.models.content import Article, Author, Business, Category, ContentKind, Guide
from app.services.aggregator import CategoryFeed, Paginated
from app.services.publish import NotFound, Redirect
from app.services.site_content import RenderArticle

router = APIRouter(prefix="/content", tags=["content"])

T = TypeVar("T")


# ── Response schemas ─────────────────────────────────────────

class PageOut(BaseModel, Generic[T]):
    items: list[T]
    page: int
    per_page: int
    total: int
    total_pages: int
    has_next: bool

    @classmethod
    def of(cls, paginated: Paginated) -> "PageOut":
        return cls(
            items=paginated.items,
            page=paginated.page,
            per_page=paginated.per_page,
            total=paginated.total,
            total_pages=paginated.total_pages,
            has_next=paginated.has_next,
        )


class CategoryGroupOut(BaseModel):
    category: Category
    items: list[Article | Guide]
    total: int


class CategoryFeedOut(BaseModel):
    grouped: bool
    groups: list[CategoryGroupOut] = []
    feed: PageOut[Article | Guide] | None = None
    unassigned_category_ids: list[str] = []

    @classmethod
    def of(cls, feed: CategoryFeed) -> "CategoryFeedOut":
        return cls(
            grouped=feed.is_grouped,
            groups=[
                CategoryGroupOut(category=g.category, items=g.items, total=g.total)
                for g in feed.groups
            ],
            feed=PageOut[Article | Guide].of(feed.unified) if feed.unified else None,
            unassigned_category_ids=feed.unassigned_category_ids,
        )


class ContentDetail(BaseModel):
    kind: ContentKind
    item: Article | Guide
    category: Category | None = None
    authors: list[Author] = []
    related: list[Article] = []
    businesses: list[Business] = []


# ── Routes ───────────────────────────────────────────────────

@router.get("", response_model=PageOut[Article | Guide])
async def list_content(
    tenant: CurrentTenant,
    services: Services,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> PageOut:
    """Articles and guides merged, newest first."""
    feed = await services.site.feed(tenant, page, per_page)
    return PageOut[Article | Guide].of(feed)


@router.get("/by-category", response_model=CategoryFeedOut)
async def content_by_category(
    tenant: CurrentTenant,
    services: Services,
    per_group: Annotated[int, Query(ge=1, le=50)] = 4,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int | None, Query(ge=1, le=100)] = None,
    exclude_popular: bool = False,
) -> CategoryFeedOut:
    feed = await services.site.category_feed(
        tenant,
        per_group=per_group,
        page=page,
        per_page=per_page,
        exclude_popular=exclude_popular,
    )
    return CategoryFeedOut.of(feed)


@router.get("/popular", response_model=list[Article])
async def popular_content(
    tenant: CurrentTenant,
    services: Services,
    limit: Annotated[int | None, Query(ge=0, le=50)] = None,
) -> list[Article]:
    return await services.site.popular(tenant, limit)


@router.get("/items/{slug}", response_model=ContentDetail, responses={307: {"description": "Redirect"}})
async def get_content(slug: str, tenant: CurrentTenant, services: Services):
    """Render payload for one path, or a redirect, or 404."""
    outcome = await services.site.resolve_path(tenant, slug)

    if isinstance(outcome, Redirect):
        return RedirectResponse(outcome.location, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    if isinstance(outcome, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")

    if isinstance(outcome, RenderArticle):
        return ContentDetail(
            kind=ContentKind.ARTICLE,
            item=outcome.item,
            category=outcome.category,
            authors=outcome.authors,
            related=outcome.related,
        )
    return ContentDetail(
        kind=ContentKind.GUIDE,
        item=outcome.item,
        category=outcome.category,
        authors=outcome.authors,
        businesses=outcome.businesses,
    )
