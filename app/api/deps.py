"""FastAPI dependencies for the shared content services and tenant resolution."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from app.core.cache import ContentCache
from app.core.config import Settings, get_settings
from app.models.tenant import Tenant
from app.services.content_repository import ContentRepository
from app.services.query_engine import QueryEngine
from app.services.record_store import AirtableRecordStore, RecordStore
from app.services.site_content import SiteContentService
from app.services.tenant_resolver import TenantResolver


@dataclass
class ContentServices:
    """Process-wide service graph; one cache shared by every request."""

    settings: Settings
    store: RecordStore
    cache: ContentCache
    engine: QueryEngine
    repository: ContentRepository
    resolver: TenantResolver
    site: SiteContentService


def build_services(store: RecordStore, settings: Settings, cache: ContentCache | None = None) -> ContentServices:
    cache = cache or ContentCache(ttl=settings.content_cache_ttl_seconds)
    engine = QueryEngine(store, settings)
    repository = ContentRepository(engine, cache, settings)
    return ContentServices(
        settings=settings,
        store=store,
        cache=cache,
        engine=engine,
        repository=repository,
        resolver=TenantResolver(repository, cache, settings),
        site=SiteContentService(repository, settings),
    )


@lru_cache
def get_services() -> ContentServices:
    settings = get_settings()
    return build_services(AirtableRecordStore.from_settings(settings), settings)


Services = Annotated[ContentServices, Depends(get_services)]


def request_host(request: Request) -> str:
    """The host the visitor asked for; proxies put it in X-Forwarded-Host."""
    forwarded = request.headers.get("x-forwarded-host")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("host", "")


async def get_current_tenant(request: Request, services: Services) -> Tenant:
    return await services.resolver.resolve(request_host(request))


# Typed shorthand for use in route signatures
CurrentTenant = Annotated[Tenant, Depends(get_current_tenant)]
