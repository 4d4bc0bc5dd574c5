"""Shared test fixtures — in-memory record store, controllable clock + test client."""

import asyncio
import random
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps import ContentServices, build_services, get_services
from app.core.cache import ContentCache
from app.core.config import Settings
from app.core.errors import RemoteQueryError
from app.main import app
from app.models.base import Record
from app.services.formula import And, Expr, LinkContains, Or
from app.services.record_store import SortSpec


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _uses_link_filter(expr: Expr | None) -> bool:
    if isinstance(expr, LinkContains):
        return True
    if isinstance(expr, (And, Or)):
        return any(_uses_link_filter(p) for p in expr.parts)
    return False


def _sorted(rows: list[Record], sort: list[SortSpec] | None) -> list[Record]:
    for spec in reversed(sort or []):
        rows = sorted(
            rows,
            key=lambda r, f=spec.field: (r.fields.get(f) is None, r.fields.get(f) or ""),
            reverse=spec.direction == "desc",
        )
    return rows


class FakeRecordStore:
    """In-memory RecordStore.

    Filters are evaluated with ``Expr.matches``. Knobs reproduce the remote
    store's failure modes: link formulas that silently match nothing, slow
    views, and per-table errors.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[Record]] = {}
        self.views: dict[tuple[str, str], list[str]] = {}
        self.failures: dict[str, Exception] = {}
        self.unreliable_link_formulas = False
        self.view_delay = 0.0
        self.calls: list[dict] = []

    def add(self, table: str, record_id: str, **fields) -> Record:
        record = Record(id=record_id, fields=fields)
        self.tables.setdefault(table, []).append(record)
        return record

    def calls_for(self, table: str) -> list[dict]:
        return [c for c in self.calls if c["table"] == table]

    async def query(
        self,
        table: str,
        *,
        view: str | None = None,
        filter: Expr | None = None,
        sort: list[SortSpec] | None = None,
        max_records: int | None = None,
    ) -> list[Record]:
        self.calls.append({"table": table, "view": view, "filter": filter, "max_records": max_records})
        if view is not None and self.view_delay:
            await asyncio.sleep(self.view_delay)
        if table in self.failures:
            raise self.failures[table]

        rows = list(self.tables.get(table, []))
        if view is not None:
            if (table, view) not in self.views:
                raise RemoteQueryError(
                    f"View {view} not found", table=table, operation="query", status_code=422
                )
            allowed = self.views[(table, view)]
            rows = [r for r in rows if r.id in allowed]
        if filter is not None:
            if self.unreliable_link_formulas and _uses_link_filter(filter):
                rows = []
            else:
                rows = [r for r in rows if filter.matches(r.id, r.fields)]
        rows = _sorted(rows, sort)
        return rows[:max_records] if max_records else rows

    async def find(self, table: str, record_id: str) -> Record | None:
        return next((r for r in self.tables.get(table, []) if r.id == record_id), None)


# ── Sample data ──────────────────────────────────────────────
# Two active sites (beta has the lowest ID, so it is the default) and one inactive.

def build_sample_store() -> FakeRecordStore:
    store = FakeRecordStore()

    store.add("Sites", "recAlpha", ID=2, Name="Alpha", Domain="alpha.com",
              **{"Local domain": "localhost:3001"}, Active="Active")
    store.add("Sites", "recBeta", ID=1, Name="Beta", Domain="https://www.beta.com/",
              **{"Local domain": "localhost:3000"}, Active="Active")
    store.add("Sites", "recGone", ID=0, Name="Gone", Domain="gone.com", Active="Inactive")

    store.add("Blog posts", "recArt1", Site=["recAlpha"], Published=True, Title="First post",
              Slug="first-post", Popular=True, Categories=["recFood"], Author=["recAuthor"],
              **{"Published date": "2024-03-01", "Related blogs": ["recArt2", "recBetaArt"]})
    store.add("Blog posts", "recArt2", Site=["recAlpha"], Published=True, Title="Second post",
              Slug="second-post", Categories=["recDrink"], **{"Published date": "2024-02-01"})
    store.add("Blog posts", "recArt3", Site=["recAlpha"], Published=False, Title="Old post",
              Slug="old-post", **{"Published date": "2023-01-01", "Redirect status": "Redirect",
                                  "Redirect to": "second-post"})
    store.add("Blog posts", "recArt4", Site=["recAlpha"], Published=False, Title="Draft",
              Slug="draft", **{"Published date": "2024-04-01"})
    store.add("Blog posts", "recBetaArt", Site=["recBeta"], Published=True, Title="Beta post",
              Slug="beta-post", Popular=True, Author=["recAuthor"],
              **{"Published date": "2024-01-10"})

    store.add("Listing posts", "recGuide1", Site=["recAlpha"], Published=True, Title="Best bars",
              Slug="best-bars", Categories=["recDrink"], Businesses=["recBiz2", "recBiz1"],
              **{"Published date": "2024-02-15"})

    store.add("Pages", "recHome", Site=["recAlpha"], Published=True, Page="Home", Title="Welcome", ID=1)
    store.add("Pages", "recAbout", Site=["recAlpha"], Published=True, Page="About us", Title="About", ID=2)
    store.add("Features", "recNewsletter", ID=1, Name="Newsletter", **{"Enabled sites": ["recAlpha"]})
    store.add("Categories", "recFood", Site=["recAlpha"], Name="Food", Slug="food", Priority=1)
    store.add("Categories", "recDrink", Site=["recAlpha"], Name="Drink", Slug="drink", Priority=2)
    store.add("Categories", "recOther", Site=["recBeta"], Name="Other", Slug="other")
    store.add("Authors", "recAuthor", Name="Ada", Slug="ada")
    store.add("Businesses", "recBiz1", Competitor="Bar One")
    store.add("Businesses", "recBiz2", Competitor="Bar Two")
    return store


# ── Fixtures ─────────────────────────────────────────────────

@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, airtable_api_key="key", airtable_base_id="appTest")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FakeRecordStore:
    return build_sample_store()


@pytest.fixture
def cache(settings, clock) -> ContentCache:
    return ContentCache(ttl=settings.content_cache_ttl_seconds, clock=clock)


@pytest.fixture
def services(store, settings, cache) -> ContentServices:
    built = build_services(store, settings, cache)
    built.site.rng = random.Random(7)
    return built


@pytest.fixture
async def client(services) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client; requests arrive for the alpha.com site."""
    app.dependency_overrides[get_services] = lambda: services

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://alpha.com") as ac:
        yield ac

    app.dependency_overrides.clear()
