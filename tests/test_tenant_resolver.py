"""Tests for host-to-tenant resolution."""

import pytest

from app.core.errors import ConfigurationError, RemoteQueryError
from app.models.tenant import Tenant
from app.services.tenant_resolver import pick_default_tenant


@pytest.mark.asyncio
async def test_resolves_by_normalized_domain(services):
    resolver = services.resolver
    assert (await resolver.resolve("alpha.com")).id == "recAlpha"
    assert (await resolver.resolve("www.alpha.com:443")).id == "recAlpha"
    # Stored domain carries scheme, www and a trailing slash
    assert (await resolver.resolve("beta.com")).id == "recBeta"


@pytest.mark.asyncio
async def test_unknown_host_gets_default_tenant(services):
    tenant = await services.resolver.resolve("unknown.example")
    # Lowest ID among active tenants; the inactive one has ID 0
    assert tenant.id == "recBeta"


@pytest.mark.asyncio
async def test_inactive_tenant_is_never_resolved(services):
    assert (await services.resolver.resolve("gone.com")).id == "recBeta"


@pytest.mark.asyncio
async def test_second_resolution_uses_fast_path(services, store):
    await services.resolver.resolve("alpha.com")
    calls = len(store.calls)

    services.cache.invalidate("snapshot")
    assert (await services.resolver.resolve("alpha.com")).id == "recAlpha"
    assert len(store.calls) == calls


@pytest.mark.asyncio
async def test_invalidate_clears_fast_path(services):
    resolver = services.resolver
    await resolver.resolve("alpha.com")
    await resolver.resolve("beta.com")
    assert any(k[0] == "tenant" for k in services.cache.keys() if isinstance(k, tuple))

    resolver.invalidate("alpha.com")
    assert [k for k in services.cache.keys() if isinstance(k, tuple)] == [("tenant", "beta.com", "")]

    resolver.invalidate()
    assert services.cache.keys() == ["snapshot"]


@pytest.mark.asyncio
async def test_development_port_alias(services, settings):
    settings.environment = "development"

    # The request host belongs to no tenant, but port 3001 aliases alpha's local domain
    assert (await services.resolver.resolve("example.com:3001")).id == "recAlpha"
    assert (await services.resolver.resolve("localhost:3000")).id == "recBeta"


@pytest.mark.asyncio
async def test_falls_back_to_tenant_query_without_snapshot(services, store):
    store.failures["Categories"] = RemoteQueryError("boom", table="Categories")

    assert (await services.resolver.resolve("alpha.com")).id == "recAlpha"
    assert (await services.resolver.resolve("nowhere.test")).id == "recBeta"


@pytest.mark.asyncio
async def test_no_active_tenant_is_a_configuration_error(services, store):
    store.tables["Sites"] = [r for r in store.tables["Sites"] if r.fields["Active"] != "Active"]

    with pytest.raises(ConfigurationError):
        await services.resolver.resolve("alpha.com")


def test_pick_default_tenant():
    tenants = [
        Tenant(id="a", ordinal=5),
        Tenant(id="b", ordinal=1, is_active=False),
        Tenant(id="c", ordinal=3),
    ]
    assert pick_default_tenant(tenants).id == "c"
    assert pick_default_tenant([]) is None
