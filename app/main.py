"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.deps import get_services
from app.api.v1 import v1_router
from app.core.config import get_settings
from app.core.errors import ConfigurationError, ContentFetchError, SlugConflictError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: credentials must be present and at least one tenant active
    services = get_services()
    try:
        snapshot = await services.repository.refresh()
    except (ContentFetchError, SlugConflictError):
        # Not fatal: requests fall back to scoped queries until a refresh succeeds
        logger.exception("Initial content snapshot failed")
    else:
        if not snapshot.active_tenants():
            raise ConfigurationError("No active tenant exists in the record store")
        logger.info("Content snapshot warmed: %s", snapshot.counts())
    yield
    # Shutdown: release the HTTP client
    close = getattr(services.store, "aclose", None)
    if close is not None:
        await close()


app = FastAPI(
    title="Multisite Content",
    version="0.1.0",
    description="Tenant resolution and cached content delivery for multi-branded sites",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────
_settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error mapping ────────────────────────────────────────────
@app.exception_handler(ContentFetchError)
async def content_fetch_error_handler(_request: Request, exc: ContentFetchError) -> JSONResponse:
    logger.error("Content fetch failed: %s", exc)
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=exc.to_dict())


@app.exception_handler(SlugConflictError)
async def slug_conflict_error_handler(_request: Request, exc: SlugConflictError) -> JSONResponse:
    logger.error("Content snapshot rejected: %s", exc)
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=exc.to_dict())


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(_request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error: %s", exc)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})


# ── API routes ───────────────────────────────────────────────
app.include_router(v1_router)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    return {"status": "ok"}
