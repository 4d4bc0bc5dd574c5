"""System endpoints — content cache inspection, invalidation and forced refresh."""

import logging
import time
from collections.abc import Hashable
from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.deps import Services
from app.services.content_repository import SNAPSHOT_KEY

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["system"])

_start_time = time.time()


class SnapshotInfo(BaseModel):
    fetched_at: datetime
    fresh: bool
    counts: dict[str, int]


class CacheStats(BaseModel):
    uptime_seconds: int
    size: int
    fresh: int
    ttl_seconds: float
    in_flight: list[str]
    snapshot: SnapshotInfo | None = None


class InvalidateRequest(BaseModel):
    # None clears everything; "snapshot", "tenant", "articles", ... clear one family
    key: str | None = None


class InvalidateResponse(BaseModel):
    removed: int


def _matching_keys(keys: list[Hashable], key: str) -> list[Hashable]:
    return [
        k for k in keys
        if k == key or (isinstance(k, tuple) and k and k[0] == key)
    ]


@router.get("/cache", response_model=CacheStats)
async def cache_stats(services: Services) -> CacheStats:
    stats = services.cache.stats()
    snapshot = None
    entry = services.cache.peek(SNAPSHOT_KEY)
    if entry is not None:
        snapshot = SnapshotInfo(
            fetched_at=entry.value.fetched_at,
            fresh=services.cache.is_fresh(SNAPSHOT_KEY),
            counts=entry.value.counts(),
        )
    return CacheStats(uptime_seconds=int(time.time() - _start_time), snapshot=snapshot, **stats)


@router.post("/cache/invalidate", response_model=InvalidateResponse)
async def invalidate_cache(services: Services, body: InvalidateRequest | None = None) -> InvalidateResponse:
    """Drop cached entries; the next read reloads them from the record store."""
    keys = services.cache.keys()
    if body is None or body.key is None:
        services.cache.invalidate()
        return InvalidateResponse(removed=len(keys))

    matching = _matching_keys(keys, body.key)
    for k in matching:
        services.cache.invalidate(k)
    logger.info("Invalidated %d cache entries for %r", len(matching), body.key)
    return InvalidateResponse(removed=len(matching))


@router.post("/cache/refresh", response_model=SnapshotInfo)
async def refresh_snapshot(services: Services) -> SnapshotInfo:
    """Bulk-refetch every table now and publish the new snapshot."""
    snapshot = await services.repository.refresh()
    return SnapshotInfo(fetched_at=snapshot.fetched_at, fresh=True, counts=snapshot.counts())
