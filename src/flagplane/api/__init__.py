"""API routes package."""

from fastapi import APIRouter

from flagplane.api.flags import create_flags_router
from flagplane.api.health import router as health_router


def create_api_router(endpoint: str) -> APIRouter:
    """Combine health routes and the snapshot endpoint."""
    api_router = APIRouter()
    api_router.include_router(health_router)
    api_router.include_router(create_flags_router(endpoint))
    return api_router


__all__ = ["create_api_router"]
