"""Tenant resolution — inbound host to Tenant, with a default-tenant fallback."""

from __future__ import annotations

import logging

from app.core.cache import ContentCache
from app.core.config import Settings
from app.core.domains import DomainMatch, domain_candidates
from app.core.errors import ConfigurationError
from app.models.tenant import ACTIVE_STATUS, Tenant
from app.services.content_repository import ContentRepository
from app.services.formula import Eq

logger = logging.getLogger(__name__)


def pick_default_tenant(tenants: list[Tenant]) -> Tenant | None:
    """The lowest-ordinal active tenant."""
    active = [t for t in tenants if t.is_active]
    if not active:
        return None
    return min(active, key=lambda t: t.ordinal)


def match_tenant(tenants: list[Tenant], match: DomainMatch) -> Tenant | None:
    for tenant in tenants:
        if tenant.is_active and match.matches(tenant.domain, tenant.local_domain):
            return tenant
    return None


class TenantResolver:
    def __init__(
        self,
        repository: ContentRepository,
        cache: ContentCache,
        settings: Settings,
    ) -> None:
        self.repository = repository
        self.cache = cache
        self.settings = settings

    async def resolve(self, raw_host: str) -> Tenant:
        """Resolve a request host to a Tenant; unknown hosts get the default tenant.

        Raises ConfigurationError only when no active tenant exists at all.
        """
        match = domain_candidates(raw_host, self.settings)
        cached = self.cache.get(match.cache_key)
        if cached is not None:
            return cached

        tenant = await self._lookup(match)
        self.cache.put(match.cache_key, tenant)
        return tenant

    def invalidate(self, raw_host: str | None = None) -> None:
        if raw_host is None:
            for key in [k for k in self.cache.keys() if isinstance(k, tuple) and k[0] == "tenant"]:
                self.cache.invalidate(key)
            return
        self.cache.invalidate(domain_candidates(raw_host, self.settings).cache_key)

    async def _lookup(self, match: DomainMatch) -> Tenant:
        snapshot = await self.repository.snapshot_or_none()
        if snapshot is not None:
            tenant = match_tenant(snapshot.tenants, match)
            if tenant is not None:
                logger.info("Resolved %s to tenant %s", match.host, tenant.name or tenant.id)
                return tenant
            return self._default(snapshot.tenants, match)

        # No snapshot: scan the active tenants directly. Domains are compared
        # after normalization, which a server-side formula cannot do.
        active = await self.repository.query_tenants(Eq("Active", ACTIVE_STATUS))
        tenant = match_tenant(active, match)
        if tenant is not None:
            logger.info("Resolved %s to tenant %s via query", match.host, tenant.name or tenant.id)
            return tenant
        return self._default(active, match)

    def _default(self, tenants: list[Tenant], match: DomainMatch) -> Tenant:
        tenant = pick_default_tenant(tenants)
        if tenant is None:
            raise ConfigurationError("No active tenant exists in the record store")
        logger.warning(
            "No tenant found for %s, using default tenant %s",
            match.host, tenant.name or tenant.id,
        )
        return tenant
