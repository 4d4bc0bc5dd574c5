"""Site endpoint — branding, pages and features of the tenant serving this host."""

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.deps import CurrentTenant, Services
from app.models.content import Feature, Page
from app.models.tenant import TenantRead

router = APIRouter(prefix="/site", tags=["site"])


class SiteOut(BaseModel):
    tenant: TenantRead
    pages: list[Page]
    features: list[Feature]
    homepage: Page | None = None


@router.get("", response_model=SiteOut)
async def get_site(tenant: CurrentTenant, services: Services) -> SiteOut:
    data = await services.site.site_data(tenant)
    return SiteOut(
        tenant=TenantRead.model_validate(data.tenant.model_dump()),
        pages=data.pages,
        features=data.features,
        homepage=data.homepage,
    )
