"""Tests for the cached content read path (snapshot + scoped fallback)."""

import asyncio

import pytest

from app.core.errors import ContentFetchError, RemoteQueryError
from app.models.tenant import Tenant

HOUR = 3600


def _alpha() -> Tenant:
    return Tenant(id="recAlpha", ordinal=2, name="Alpha", domain="alpha.com")


def _break_snapshot(store) -> None:
    # A guide sharing an article's slug makes the bulk snapshot invalid
    store.add("Listing posts", "recClash", Site=["recAlpha"], Published=True, Slug="first-post")


@pytest.mark.asyncio
async def test_fresh_snapshot_serves_without_remote_calls(services, store, clock):
    repo = services.repository
    await repo.snapshot()
    before = len(store.calls)

    clock.advance(11 * HOUR + 59 * 60)
    articles = await repo.articles(_alpha())
    await repo.guides(_alpha())
    await repo.categories(_alpha())

    assert [a.slug for a in articles] == ["first-post", "second-post"]
    assert len(store.calls) == before


@pytest.mark.asyncio
async def test_stale_snapshot_refreshes_once(services, store, clock):
    repo = services.repository
    await repo.snapshot()
    bulk_calls = len(store.calls)

    clock.advance(12 * HOUR + 60)
    await repo.articles(_alpha())
    await repo.pages(_alpha())

    assert len(store.calls) == 2 * bulk_calls


@pytest.mark.asyncio
async def test_slug_lookup_includes_unpublished(services):
    repo = services.repository
    old = await repo.article_by_slug(_alpha(), "old-post")
    assert old is not None and not old.published
    assert await repo.article_by_slug(_alpha(), "beta-post") is None
    assert (await repo.guide_by_slug(_alpha(), "best-bars")).id == "recGuide1"


@pytest.mark.asyncio
@pytest.mark.parametrize("broken", [False, True])
async def test_article_and_guide_limits(services, store, broken):
    if broken:
        _break_snapshot(store)
    repo = services.repository

    assert await repo.articles(_alpha(), limit=0) == []
    assert await repo.guides(_alpha(), limit=0) == []
    assert [a.slug for a in await repo.articles(_alpha(), limit=1)] == ["first-post"]
    assert len(await repo.articles(_alpha())) == 2


@pytest.mark.asyncio
async def test_refresh_publishes_new_content(services, store):
    repo = services.repository
    await repo.snapshot()
    store.add("Blog posts", "recNew", Site=["recAlpha"], Published=True, Slug="brand-new",
              **{"Published date": "2024-05-01"})

    assert "brand-new" not in [a.slug for a in await repo.articles(_alpha())]
    await repo.refresh()
    assert [a.slug for a in await repo.articles(_alpha())][0] == "brand-new"


@pytest.mark.asyncio
async def test_concurrent_refreshes_share_one_bulk_fetch(services, store):
    repo = services.repository

    results = await asyncio.gather(*(repo.refresh() for _ in range(5)), repo.snapshot())

    assert len(store.calls_for("Sites")) == 1
    # One query per table
    tables = [c["table"] for c in store.calls]
    assert len(tables) == len(set(tables))
    assert all(r is results[0] for r in results)


@pytest.mark.asyncio
async def test_refresh_replaces_fresh_snapshot(services, store):
    repo = services.repository
    first = await repo.snapshot()

    second = await repo.refresh()

    assert second is not first
    assert await repo.snapshot() is second
    assert len(store.calls_for("Sites")) == 2


@pytest.mark.asyncio
async def test_failed_snapshot_falls_back_to_scoped_queries(services, store):
    _break_snapshot(store)
    repo = services.repository

    articles = await repo.articles(_alpha())
    assert [a.slug for a in articles] == ["first-post", "second-post"]

    # Cached under the derived key; bulk refresh is not retried right away
    calls = len(store.calls)
    assert [a.slug for a in await repo.articles(_alpha())] == ["first-post", "second-post"]
    assert len(store.calls) == calls


@pytest.mark.asyncio
async def test_bulk_refresh_retried_after_cooldown(services, store, clock, settings):
    _break_snapshot(store)
    repo = services.repository
    assert await repo.snapshot_or_none() is None

    store.tables["Listing posts"] = [r for r in store.tables["Listing posts"] if r.id != "recClash"]
    assert await repo.snapshot_or_none() is None

    clock.advance(settings.snapshot_retry_seconds + 1)
    assert await repo.snapshot_or_none() is not None


@pytest.mark.asyncio
async def test_non_critical_tables_degrade_to_empty(services, store):
    store.failures["Pages"] = RemoteQueryError("boom", table="Pages")
    repo = services.repository

    assert await repo.pages(_alpha()) == []
    assert await repo.page(_alpha(), "Home") is None
    # Critical content is still served through the fallback engine
    assert len(await repo.articles(_alpha())) == 2


@pytest.mark.asyncio
async def test_critical_tables_propagate_failure(services, store):
    store.failures["Blog posts"] = RemoteQueryError("boom", table="Blog posts")

    with pytest.raises(ContentFetchError) as exc_info:
        await services.repository.articles(_alpha())
    assert exc_info.value.table == "Blog posts"


@pytest.mark.asyncio
async def test_categories_by_priority_and_features(services):
    repo = services.repository
    categories = await repo.categories(_alpha())
    assert [c.slug for c in categories] == ["food", "drink"]
    assert (await repo.category_by_slug(_alpha(), "drink")).id == "recDrink"
    assert await repo.category_by_slug(_alpha(), "other") is None

    assert await repo.has_feature(_alpha(), "Newsletter")
    assert not await repo.has_feature(_alpha(), "Events")


@pytest.mark.asyncio
async def test_enrichments_keep_requested_order(services):
    repo = services.repository
    businesses = await repo.businesses(["recBiz2", "recBiz1", "recMissing"])
    assert [b.name for b in businesses] == ["Bar Two", "Bar One"]

    authors = await repo.authors(["recAuthor"])
    assert [a.name for a in authors] == ["Ada"]
    assert await repo.authors([]) == []


@pytest.mark.asyncio
async def test_articles_by_ids(services):
    repo = services.repository
    found = await repo.articles_by_ids(_alpha(), ["recArt2", "recBetaArt", "recArt3", "recArt1"])
    # Other tenants' and unpublished articles are left out
    assert [a.id for a in found] == ["recArt2", "recArt1"]


@pytest.mark.asyncio
async def test_tenant_views_come_from_settings(services, settings):
    settings.tenant_views = {"alpha.com": {"articles": "alpha-articles"}}
    repo = services.repository

    snapshot = await repo.snapshot()
    alpha = next(t for t in snapshot.tenants if t.id == "recAlpha")
    assert alpha.view_for("articles") == "alpha-articles"
    assert [t.id for t in snapshot.tenants] == ["recBeta", "recAlpha"]


@pytest.mark.asyncio
async def test_author_by_slug(services, store):
    repo = services.repository
    author = await repo.author_by_slug("ada")
    assert author is not None and author.id == "recAuthor"
    assert await repo.author_by_slug("nobody") is None

    # Cached per slug
    calls = len(store.calls_for("Authors"))
    await repo.author_by_slug("ada")
    assert len(store.calls_for("Authors")) == calls


@pytest.mark.asyncio
async def test_unreadable_authors_table_gives_none(services, store):
    store.failures["Authors"] = RemoteQueryError("boom", table="Authors")
    assert await services.repository.author_by_slug("ada") is None
