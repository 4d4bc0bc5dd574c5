"""Author pages: an author's articles and guides on the current site."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from app.api.deps import CurrentTenant, Services
from app.api.v1.content import PageOut
from app.models.content import Article, Author, Guide

router = APIRouter(prefix="/authors", tags=["authors"])


class AuthorPageOut(BaseModel):
    author: Author
    feed: PageOut[Article | Guide]


@router.get("/{slug}", response_model=AuthorPageOut)
async def get_author(
    slug: str,
    tenant: CurrentTenant,
    services: Services,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> AuthorPageOut:
    result = await services.site.author_page(tenant, slug, page, per_page)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Author not found")
    return AuthorPageOut(
        author=result.author,
        feed=PageOut[Article | Guide].of(result.feed),
    )
