"""Query fallback engine — tiered strategies against the record store.

Flow for one ``fetch(table, tenant, constraints)``:
  1. View:      query the tenant's pre-filtered view, filter the rest client-side
  2. Formula:   one server-side filter over tenant link + constraints
  3. Full scan: server-side "published" only, tenant link + constraints client-side

Filtering on multi-value link fields is unreliable server-side: a formula that
should match can come back empty. An empty tier result is therefore never
authoritative; the engine keeps going and the full scan is the ground truth.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from app.core.config import Settings
from app.core.errors import ContentFetchError, RecordStorePermissionError, RemoteQueryError
from app.models.base import Record
from app.models.tables import (
    PUBLISHABLE,
    PUBLISHED_FIELD,
    TENANT_LINK_FIELDS,
    TableKind,
    table_name,
)
from app.models.tenant import Tenant
from app.services.formula import Expr, IsTrue, LinkContains, all_of
from app.services.record_store import RecordStore, SortSpec

logger = logging.getLogger(__name__)

DEFAULT_TIER_TIMEOUT = 10.0


@dataclass(frozen=True)
class QueryConstraints:
    """Content-local constraints; the tenant scope is added by each strategy."""
    published_only: bool = False
    match: Expr | None = None
    sort: tuple[SortSpec, ...] = ()
    max_records: int | None = None


@dataclass(frozen=True)
class QueryRequest:
    table: TableKind
    table_name: str
    tenant: Tenant | None
    constraints: QueryConstraints
    operation: str = "fetch"

    @property
    def link_field(self) -> str | None:
        return TENANT_LINK_FIELDS.get(self.table)

    @property
    def published_filter(self) -> Expr | None:
        if self.constraints.published_only and self.table in PUBLISHABLE:
            return IsTrue(PUBLISHED_FIELD)
        return None

    def tenant_filter(self) -> Expr | None:
        if self.tenant is None or self.link_field is None:
            return None
        return LinkContains(self.link_field, self.tenant.id)


@dataclass
class StrategyResult:
    """Outcome of one tier.

    ``resolved`` means non-empty records. An empty result that completed
    without error is ``inconclusive`` but still counts as ``completed``.
    """
    strategy: str
    records: list[Record] = field(default_factory=list)
    completed: bool = False
    skipped: bool = False
    error: Exception | None = None

    @property
    def resolved(self) -> bool:
        return self.completed and bool(self.records)


def _apply_client_filters(records: list[Record], expr: Expr | None) -> list[Record]:
    if expr is None:
        return records
    return [r for r in records if expr.matches(r.id, r.fields)]


def _cap(records: list[Record], max_records: int | None) -> list[Record]:
    return records[:max_records] if max_records is not None else records


class QueryStrategy:
    """One fallback tier. Subclasses implement ``applies`` and ``run``."""

    name = "strategy"

    def applies(self, request: QueryRequest) -> bool:
        return True

    async def run(self, store: RecordStore, request: QueryRequest) -> list[Record]:
        raise NotImplementedError

    async def attempt(
        self, store: RecordStore, request: QueryRequest, timeout: float
    ) -> StrategyResult:
        if not self.applies(request):
            return StrategyResult(strategy=self.name, skipped=True)
        try:
            records = await asyncio.wait_for(self.run(store, request), timeout=timeout)
        except (TimeoutError, asyncio.TimeoutError) as exc:
            logger.warning(
                "%s strategy timed out for %s (tenant %s)",
                self.name, request.table_name, _tenant_id(request),
            )
            return StrategyResult(strategy=self.name, error=exc)
        except RemoteQueryError as exc:
            logger.warning(
                "%s strategy failed for %s (tenant %s): %s",
                self.name, request.table_name, _tenant_id(request), exc,
            )
            return StrategyResult(strategy=self.name, error=exc)
        return StrategyResult(strategy=self.name, records=records, completed=True)


class ViewStrategy(QueryStrategy):
    """Query the tenant's pre-filtered view; views may include unpublished rows."""

    name = "view"

    def applies(self, request: QueryRequest) -> bool:
        return request.tenant is not None and bool(request.tenant.view_for(request.table))

    async def run(self, store: RecordStore, request: QueryRequest) -> list[Record]:
        view = request.tenant.view_for(request.table) if request.tenant else None
        c = request.constraints
        records = await store.query(
            request.table_name,
            view=view,
            sort=list(c.sort) or None,
        )
        records = _apply_client_filters(records, all_of(request.published_filter, c.match))
        return _cap(records, c.max_records)


class FormulaStrategy(QueryStrategy):
    """Single server-side formula over tenant link + constraints."""

    name = "formula"

    async def run(self, store: RecordStore, request: QueryRequest) -> list[Record]:
        c = request.constraints
        return await store.query(
            request.table_name,
            filter=all_of(request.tenant_filter(), request.published_filter, c.match),
            sort=list(c.sort) or None,
            max_records=c.max_records,
        )


class FullScanStrategy(QueryStrategy):
    """Fetch every published row tenant-agnostically and filter here."""

    name = "full_scan"

    async def run(self, store: RecordStore, request: QueryRequest) -> list[Record]:
        c = request.constraints
        records = await store.query(
            request.table_name,
            filter=request.published_filter,
            sort=list(c.sort) or None,
        )
        records = _apply_client_filters(records, all_of(request.tenant_filter(), c.match))
        return _cap(records, c.max_records)


DEFAULT_STRATEGIES: tuple[QueryStrategy, ...] = (
    ViewStrategy(),
    FormulaStrategy(),
    FullScanStrategy(),
)


def _tenant_id(request: QueryRequest) -> str | None:
    return request.tenant.id if request.tenant else None


class QueryEngine:
    """Runs the strategies in order and returns the first non-empty result."""

    def __init__(
        self,
        store: RecordStore,
        settings: Settings,
        strategies: tuple[QueryStrategy, ...] = DEFAULT_STRATEGIES,
        tier_timeout: float | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.strategies = strategies
        self.tier_timeout = (
            tier_timeout if tier_timeout is not None else settings.query_tier_timeout_seconds
        )

    async def fetch(
        self,
        table: TableKind,
        tenant: Tenant | None = None,
        constraints: QueryConstraints | None = None,
        operation: str = "fetch",
    ) -> list[Record]:
        request = QueryRequest(
            table=table,
            table_name=table_name(table, self.settings),
            tenant=tenant,
            constraints=constraints or QueryConstraints(),
            operation=operation,
        )

        results: list[StrategyResult] = []
        for strategy in self.strategies:
            result = await strategy.attempt(self.store, request, self.tier_timeout)
            results.append(result)
            if result.resolved:
                logger.info(
                    "%s: %d %s records via %s strategy (tenant %s)",
                    operation, len(result.records), request.table_name,
                    result.strategy, _tenant_id(request),
                )
                return result.records
            if result.completed:
                logger.info(
                    "%s: %s strategy returned no %s records, escalating",
                    operation, result.strategy, request.table_name,
                )

        if any(r.completed for r in results):
            return []

        errors = [r.error for r in results if r.error is not None]
        if errors and all(isinstance(e, RecordStorePermissionError) for e in errors):
            logger.warning(
                "%s: no permission to read %s, treating as empty",
                operation, request.table_name,
            )
            return []

        raise ContentFetchError(
            f"All query strategies failed for {request.table_name}",
            table=request.table_name,
            operation=operation,
            tenant_id=_tenant_id(request),
        )
