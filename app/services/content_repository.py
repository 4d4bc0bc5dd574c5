"""Content repository — the cached read path for tenant-scoped content.

Every getter first asks for a fresh ContentSnapshot and filters it in memory.
Only when no snapshot can be obtained does it fall back to per-tenant queries
through the QueryEngine, caching those results under derived keys.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Hashable
from typing import TypeVar

from app.core.cache import ContentCache
from app.core.config import Settings
from app.core.domains import normalize_domain
from app.core.errors import ContentFetchError, SlugConflictError
from app.models.base import Record
from app.models.content import (
    Article,
    Author,
    Business,
    Category,
    Feature,
    Guide,
    Page,
)
from app.models.snapshot import ContentSnapshot
from app.models.tables import TableKind
from app.models.tenant import ACTIVE_STATUS, Tenant
from app.services.formula import Eq, Expr, RecordIdIn
from app.services.query_engine import QueryConstraints, QueryEngine
from app.services.record_store import SortSpec

logger = logging.getLogger(__name__)

T = TypeVar("T")

SNAPSHOT_KEY = "snapshot"

_BY_PUBLISHED_DATE = (SortSpec("Published date", "desc"),)
_BY_ORDINAL = (SortSpec("ID", "asc"),)


class ContentRepository:
    def __init__(self, engine: QueryEngine, cache: ContentCache, settings: Settings) -> None:
        self.engine = engine
        self.cache = cache
        self.settings = settings
        self._snapshot_failed_at: float | None = None

    # ── Snapshot ─────────────────────────────────────────────

    async def snapshot(self) -> ContentSnapshot:
        """Return the fresh snapshot, refreshing it (once, coalesced) if needed."""
        return await self.cache.get_or_load(SNAPSHOT_KEY, self._load_snapshot)

    async def refresh(self) -> ContentSnapshot:
        """Force a bulk refresh and publish the new snapshot.

        Joins a refresh that is already running instead of starting another.
        """
        snapshot = await self.cache.reload(SNAPSHOT_KEY, self._load_snapshot)
        self._snapshot_failed_at = None
        return snapshot

    async def _load_snapshot(self) -> ContentSnapshot:
        logger.info("Bulk fetching all content for snapshot")
        t0 = time.monotonic()
        fetch = self.engine.fetch
        (
            tenant_rows,
            article_rows,
            guide_rows,
            page_rows,
            feature_rows,
            category_rows,
        ) = await asyncio.gather(
            fetch(
                TableKind.TENANTS,
                constraints=QueryConstraints(match=Eq("Active", ACTIVE_STATUS), sort=_BY_ORDINAL),
                operation="bulk_tenants",
            ),
            # Unpublished rows are kept: they may still carry a redirect
            fetch(
                TableKind.ARTICLES,
                constraints=QueryConstraints(sort=_BY_PUBLISHED_DATE),
                operation="bulk_articles",
            ),
            fetch(
                TableKind.GUIDES,
                constraints=QueryConstraints(sort=_BY_PUBLISHED_DATE),
                operation="bulk_guides",
            ),
            fetch(
                TableKind.PAGES,
                constraints=QueryConstraints(published_only=True, sort=_BY_ORDINAL),
                operation="bulk_pages",
            ),
            fetch(TableKind.FEATURES, operation="bulk_features"),
            fetch(TableKind.CATEGORIES, operation="bulk_categories"),
        )

        snapshot = ContentSnapshot(
            tenants=[self._tenant(r) for r in tenant_rows],
            articles=[Article.from_record(r) for r in article_rows],
            guides=[Guide.from_record(r) for r in guide_rows],
            pages=[Page.from_record(r) for r in page_rows],
            features=[Feature.from_record(r) for r in feature_rows],
            categories=[Category.from_record(r) for r in category_rows],
        )
        logger.info(
            "Bulk content fetch completed in %dms: %s",
            int((time.monotonic() - t0) * 1000),
            snapshot.counts(),
        )
        return snapshot

    async def snapshot_or_none(self) -> ContentSnapshot | None:
        """Fresh snapshot, or None while bulk refresh is failing."""
        if self.cache.get(SNAPSHOT_KEY) is None and self._in_retry_cooldown():
            return None
        try:
            snapshot = await self.snapshot()
        except (ContentFetchError, SlugConflictError):
            logger.exception("Snapshot refresh failed, falling back to scoped queries")
            self._snapshot_failed_at = self.cache.now()
            return None
        self._snapshot_failed_at = None
        return snapshot

    def _in_retry_cooldown(self) -> bool:
        if self._snapshot_failed_at is None:
            return False
        return self.cache.now() - self._snapshot_failed_at < self.settings.snapshot_retry_seconds

    def _tenant(self, record: Record) -> Tenant:
        domain = normalize_domain(str(record.fields.get("Domain") or ""))
        return Tenant.from_record(record, views=self.settings.tenant_views.get(domain))

    async def _scoped(
        self,
        key: Hashable,
        load: Callable[[], object],
        *,
        critical: bool,
    ) -> list:
        """Cached per-tenant fallback query; non-critical tables degrade to []."""
        try:
            return await self.cache.get_or_load(key, load)  # type: ignore[arg-type]
        except ContentFetchError as exc:
            if critical:
                raise
            logger.warning("Degrading %s to empty result: %s", key, exc)
            return []

    async def _fetch_mapped(
        self,
        table: TableKind,
        tenant: Tenant | None,
        constraints: QueryConstraints,
        mapper: Callable[[Record], T],
        operation: str,
    ) -> list[T]:
        records = await self.engine.fetch(table, tenant, constraints, operation=operation)
        return [mapper(r) for r in records]

    # ── Tenants ──────────────────────────────────────────────

    async def query_tenants(self, match: Expr | None = None) -> list[Tenant]:
        """Tenant-table lookup through the fallback engine (not cached here)."""
        return await self._fetch_mapped(
            TableKind.TENANTS,
            None,
            QueryConstraints(match=match, sort=_BY_ORDINAL),
            self._tenant,
            "query_tenants",
        )

    # ── Articles & guides ────────────────────────────────────

    async def articles(self, tenant: Tenant, limit: int | None = None) -> list[Article]:
        """Published articles of a tenant, newest first."""
        if limit is not None and limit <= 0:
            return []
        snapshot = await self.snapshot_or_none()
        if snapshot is not None:
            items = [a for a in snapshot.articles_for(tenant.id) if a.published]
            return items[:limit] if limit is not None else items

        async def load() -> list[Article]:
            return await self._fetch_mapped(
                TableKind.ARTICLES,
                tenant,
                QueryConstraints(published_only=True, sort=_BY_PUBLISHED_DATE, max_records=limit),
                Article.from_record,
                "articles",
            )

        return await self._scoped((TableKind.ARTICLES.value, tenant.id, limit), load, critical=True)

    async def guides(self, tenant: Tenant, limit: int | None = None) -> list[Guide]:
        """Published guides of a tenant, newest first."""
        if limit is not None and limit <= 0:
            return []
        snapshot = await self.snapshot_or_none()
        if snapshot is not None:
            items = [g for g in snapshot.guides_for(tenant.id) if g.published]
            return items[:limit] if limit is not None else items

        async def load() -> list[Guide]:
            return await self._fetch_mapped(
                TableKind.GUIDES,
                tenant,
                QueryConstraints(published_only=True, sort=_BY_PUBLISHED_DATE, max_records=limit),
                Guide.from_record,
                "guides",
            )

        return await self._scoped((TableKind.GUIDES.value, tenant.id, limit), load, critical=True)

    async def article_by_slug(self, tenant: Tenant, slug: str) -> Article | None:
        """Article by slug, published or not (redirects apply to both)."""
        snapshot = await self.snapshot_or_none()
        if snapshot is not None:
            return next((a for a in snapshot.articles_for(tenant.id) if a.slug == slug), None)

        async def load() -> list[Article]:
            return await self._fetch_mapped(
                TableKind.ARTICLES,
                tenant,
                QueryConstraints(match=Eq("Slug", slug)),
                Article.from_record,
                "article_by_slug",
            )

        found = await self._scoped(
            (TableKind.ARTICLES.value, tenant.id, f"slug:{slug}"), load, critical=True
        )
        return found[0] if found else None

    async def guide_by_slug(self, tenant: Tenant, slug: str) -> Guide | None:
        snapshot = await self.snapshot_or_none()
        if snapshot is not None:
            return next((g for g in snapshot.guides_for(tenant.id) if g.slug == slug), None)

        async def load() -> list[Guide]:
            return await self._fetch_mapped(
                TableKind.GUIDES,
                tenant,
                QueryConstraints(match=Eq("Slug", slug)),
                Guide.from_record,
                "guide_by_slug",
            )

        found = await self._scoped(
            (TableKind.GUIDES.value, tenant.id, f"slug:{slug}"), load, critical=True
        )
        return found[0] if found else None

    async def articles_by_ids(self, tenant: Tenant, ids: list[str]) -> list[Article]:
        """Published articles of this tenant among ``ids``, in ``ids`` order."""
        if not ids:
            return []
        by_id = {a.id: a for a in await self.articles(tenant)}
        return [by_id[i] for i in ids if i in by_id]

    # ── Pages, features, categories ──────────────────────────

    async def pages(self, tenant: Tenant) -> list[Page]:
        snapshot = await self.snapshot_or_none()
        if snapshot is not None:
            return snapshot.pages_for(tenant.id)

        async def load() -> list[Page]:
            return await self._fetch_mapped(
                TableKind.PAGES,
                tenant,
                QueryConstraints(published_only=True, sort=_BY_ORDINAL),
                Page.from_record,
                "pages",
            )

        return await self._scoped((TableKind.PAGES.value, tenant.id, None), load, critical=False)

    async def page(self, tenant: Tenant, page_type: str) -> Page | None:
        return next((p for p in await self.pages(tenant) if p.page_type == page_type), None)

    async def features(self, tenant: Tenant) -> list[Feature]:
        snapshot = await self.snapshot_or_none()
        if snapshot is not None:
            return snapshot.features_for(tenant.id)

        async def load() -> list[Feature]:
            return await self._fetch_mapped(
                TableKind.FEATURES,
                tenant,
                QueryConstraints(),
                Feature.from_record,
                "features",
            )

        return await self._scoped(
            (TableKind.FEATURES.value, tenant.id, None), load, critical=False
        )

    async def has_feature(self, tenant: Tenant, name: str) -> bool:
        return any(f.name == name for f in await self.features(tenant))

    async def categories(self, tenant: Tenant) -> list[Category]:
        """Categories assigned to the tenant, by priority (1 first, unset last)."""
        snapshot = await self.snapshot_or_none()
        if snapshot is not None:
            assigned = snapshot.categories_for(tenant.id)
        else:

            async def load() -> list[Category]:
                return await self._fetch_mapped(
                    TableKind.CATEGORIES,
                    tenant,
                    QueryConstraints(),
                    Category.from_record,
                    "categories",
                )

            assigned = await self._scoped(
                (TableKind.CATEGORIES.value, tenant.id, None), load, critical=False
            )
        return sorted(assigned, key=lambda c: c.priority)

    async def category_by_slug(self, tenant: Tenant, slug: str) -> Category | None:
        return next((c for c in await self.categories(tenant) if c.slug == slug), None)

    # ── Enrichments (not part of the snapshot) ───────────────

    async def authors(self, ids: list[str]) -> list[Author]:
        return await self._by_ids(TableKind.AUTHORS, ids, Author.from_record)

    async def author_by_slug(self, slug: str) -> Author | None:
        """Authors are shared across tenants; a missing or unreadable table gives None."""

        async def load() -> list[Author]:
            return await self._fetch_mapped(
                TableKind.AUTHORS,
                None,
                QueryConstraints(match=Eq("Slug", slug), max_records=1),
                Author.from_record,
                "author_by_slug",
            )

        found = await self._scoped(
            (TableKind.AUTHORS.value, None, f"slug:{slug}"), load, critical=False
        )
        return found[0] if found else None

    async def businesses(self, ids: list[str]) -> list[Business]:
        return await self._by_ids(TableKind.BUSINESSES, ids, Business.from_record)

    async def _by_ids(
        self, table: TableKind, ids: list[str], mapper: Callable[[Record], T]
    ) -> list[T]:
        if not ids:
            return []
        wanted = tuple(dict.fromkeys(ids))

        async def load() -> list[T]:
            return await self._fetch_mapped(
                table, None, QueryConstraints(match=RecordIdIn(wanted)), mapper, f"{table}_by_ids"
            )

        found = await self._scoped((table.value, None, wanted), load, critical=False)
        by_id = {item.id: item for item in found}
        return [by_id[i] for i in wanted if i in by_id]
