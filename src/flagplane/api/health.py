"""API routes for health and system info."""

from typing import Annotated

from fastapi import APIRouter, Depends

from flagplane import __version__
from flagplane.api.deps import get_app_settings, get_response_cache, get_watcher
from flagplane.config import Settings
from flagplane.schemas import CacheStats, HealthResponse
from flagplane.services.cache import VersionedResponseCache
from flagplane.services.distribution import Watcher

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: Annotated[Settings, Depends(get_app_settings)],
    watcher: Annotated[Watcher, Depends(get_watcher)],
    cache: Annotated[VersionedResponseCache, Depends(get_response_cache)],
) -> HealthResponse:
    """Report what the responder is serving."""
    snapshot = watcher.broadcaster.latest
    return HealthResponse(
        status="healthy" if snapshot is not None else "degraded",
        version=__version__,
        namespace=settings.namespace,
        snapshot_version=snapshot.version if snapshot else None,
        current_sha=snapshot.current_sha if snapshot else None,
        features=len(snapshot.features) if snapshot else 0,
        watcher_running=watcher.running,
        cache=CacheStats(**cache.stats),
    )


@router.get("/live")
async def liveness_check() -> dict:
    """Kubernetes liveness probe."""
    return {"status": "alive"}
