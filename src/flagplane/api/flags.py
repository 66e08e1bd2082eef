"""Snapshot endpoint.

Serves the current flag document with an ``ETag`` equal to the snapshot
version. The body is rendered once per version and reused until the
watcher publishes a new one.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from flagplane.api.deps import get_broadcaster, get_response_cache
from flagplane.services.cache import CachedResponse, VersionedResponseCache
from flagplane.services.distribution import SnapshotBroadcaster

CURRENT_SHA_HEADER = "X-Flagplane-Current-Sha"


def _etag_matches(header: str | None, cached: CachedResponse) -> bool:
    if not header:
        return False
    candidates = {tag.strip().removeprefix("W/") for tag in header.split(",")}
    return "*" in candidates or cached.etag in candidates


def create_flags_router(endpoint: str) -> APIRouter:
    """Router serving the snapshot document at ``endpoint``."""
    router = APIRouter(tags=["flags"])

    @router.get(endpoint)
    async def get_flags(
        request: Request,
        broadcaster: Annotated[SnapshotBroadcaster, Depends(get_broadcaster)],
        cache: Annotated[VersionedResponseCache, Depends(get_response_cache)],
    ) -> Response:
        """Return the latest flag snapshot."""
        snapshot = broadcaster.latest
        if snapshot is None:
            raise HTTPException(status_code=503, detail="no snapshot available")

        cached = cache.get(snapshot)
        headers = {
            "ETag": cached.etag,
            CURRENT_SHA_HEADER: cached.current_sha,
            "Cache-Control": "no-cache",
        }
        if _etag_matches(request.headers.get("if-none-match"), cached):
            return Response(status_code=304, headers=headers)
        return Response(content=cached.body, media_type="application/json", headers=headers)

    return router
