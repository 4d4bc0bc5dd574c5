"""Category endpoints — only categories assigned to the current tenant are visible."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from app.api.deps import CurrentTenant, Services
from app.api.v1.content import PageOut
from app.models.content import Article, Category, Guide

router = APIRouter(prefix="/categories", tags=["categories"])


class CategoryPageOut(BaseModel):
    category: Category
    feed: PageOut[Article | Guide]


@router.get("", response_model=list[Category])
async def list_categories(tenant: CurrentTenant, services: Services) -> list[Category]:
    """Assigned categories in priority order."""
    return await services.repository.categories(tenant)


@router.get("/{slug}", response_model=CategoryPageOut)
async def get_category(
    slug: str,
    tenant: CurrentTenant,
    services: Services,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> CategoryPageOut:
    result = await services.site.category_page(tenant, slug, page, per_page)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return CategoryPageOut(
        category=result.category,
        feed=PageOut[Article | Guide].of(result.feed),
    )
