"""Content aggregation — merged feeds, category groups, popular and related rails.

Everything here is pure: inputs are already-fetched, tenant-scoped models.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from app.models.content import Article, Category, ContentItem, Guide

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A tenant needs more than this many assigned categories to get grouped rails
GROUPING_THRESHOLD = 1


@dataclass
class Paginated(Generic[T]):
    items: list[T]
    page: int
    per_page: int
    total: int

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.per_page)) if self.per_page else 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


@dataclass
class CategoryGroup:
    category: Category
    items: list[ContentItem]
    total: int


@dataclass
class CategoryFeed:
    """Either per-category groups, or one unified feed for single-category tenants."""
    groups: list[CategoryGroup] = field(default_factory=list)
    unified: Paginated[ContentItem] | None = None
    unassigned_category_ids: list[str] = field(default_factory=list)

    @property
    def is_grouped(self) -> bool:
        return self.unified is None


def _sort_key(item: ContentItem) -> tuple[int, float]:
    # Undated items last; otherwise newest first
    if item.published_date is None:
        return (1, 0.0)
    return (0, -_timestamp(item.published_date))


def _timestamp(value: datetime) -> float:
    return (value - datetime(1970, 1, 1)).total_seconds()


def merge_and_sort(articles: Sequence[Article], guides: Sequence[Guide]) -> list[ContentItem]:
    """Articles then guides, stably sorted by publish date, newest first."""
    combined: list[ContentItem] = [*articles, *guides]
    return sorted(combined, key=_sort_key)


def paginate(items: Sequence[T], page: int = 1, per_page: int = 12) -> Paginated[T]:
    page = max(1, page)
    per_page = max(1, per_page)
    start = (page - 1) * per_page
    return Paginated(
        items=list(items[start : start + per_page]),
        page=page,
        per_page=per_page,
        total=len(items),
    )


def items_in_category(items: Sequence[ContentItem], category: Category) -> list[ContentItem]:
    return [i for i in items if category.id in i.category_ids]


def unassigned_references(
    items: Sequence[ContentItem], assigned: Sequence[Category]
) -> list[str]:
    """Category ids referenced by content but not assigned to the tenant."""
    assigned_ids = {c.id for c in assigned}
    seen: dict[str, None] = {}
    for item in items:
        for cid in item.category_ids:
            if cid not in assigned_ids:
                seen.setdefault(cid, None)
    return list(seen)


def group_by_category(
    items: Sequence[ContentItem],
    assigned: Sequence[Category],
    per_group: int | None = None,
    page: int = 1,
    per_page: int = 12,
) -> CategoryFeed:
    """Group content by the tenant's assigned categories.

    Only assigned categories become groups, in priority order. Tenants with at
    most one assigned category get a single paginated feed instead.
    References to unassigned categories are reported, not silently dropped.
    """
    unassigned = unassigned_references(items, assigned)
    if unassigned:
        logger.warning(
            "Content references %d categories not assigned to this tenant: %s",
            len(unassigned), ", ".join(unassigned),
        )

    if len(assigned) <= GROUPING_THRESHOLD:
        return CategoryFeed(
            unified=paginate(items, page, per_page),
            unassigned_category_ids=unassigned,
        )

    groups: list[CategoryGroup] = []
    for category in sorted(assigned, key=lambda c: c.priority):
        members = items_in_category(items, category)
        if not members:
            continue
        groups.append(
            CategoryGroup(
                category=category,
                items=members[:per_group] if per_group else members,
                total=len(members),
            )
        )
    return CategoryFeed(groups=groups, unassigned_category_ids=unassigned)


def popular_articles(articles: Sequence[Article], limit: int = 3) -> list[Article]:
    """Published articles flagged popular, newest first."""
    flagged = [a for a in articles if a.popular and a.published]
    return sorted(flagged, key=_sort_key)[: max(0, limit)]


def exclude_ids(items: Sequence[T], ids: set[str]) -> list[T]:
    return [i for i in items if i.id not in ids]  # type: ignore[attr-defined]


def related_articles(
    article: Article,
    pool: Sequence[Article],
    limit: int = 4,
    rng: random.Random | None = None,
) -> list[Article]:
    """Articles to show next to ``article``.

    ``pool`` is the tenant's published articles. The explicit related list is
    used when it resolves to anything; otherwise a fresh random sample of the
    other articles is drawn. The current article is never included.
    """
    if limit <= 0:
        return []
    others = [a for a in pool if a.id != article.id]

    if article.related_ids:
        by_id = {a.id: a for a in others}
        explicit = [by_id[i] for i in dict.fromkeys(article.related_ids) if i in by_id]
        if explicit:
            return explicit[:limit]

    if not others:
        return []
    rng = rng or random.Random()
    return rng.sample(others, min(limit, len(others)))
