"""V1 API router aggregation."""

from fastapi import APIRouter

from app.api.v1.authors import router as authors_router
from app.api.v1.categories import router as categories_router
from app.api.v1.content import router as content_router
from app.api.v1.sites import router as sites_router
from app.api.v1.system import router as system_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(sites_router)
v1_router.include_router(content_router)
v1_router.include_router(categories_router)
v1_router.include_router(authors_router)
v1_router.include_router(system_router)
