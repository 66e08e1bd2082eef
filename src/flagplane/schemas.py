"""Pydantic schemas for API responses."""

from pydantic import BaseModel, Field


class CacheStats(BaseModel):
    """Response cache counters."""

    hits: int = 0
    misses: int = 0
    hit_rate_percent: float = 0.0


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str = Field(..., description="Package version")
    namespace: str
    snapshot_version: str | None = Field(None, description="Version marker being served")
    current_sha: str | None = Field(None, description="Latest committed sha")
    features: int = Field(0, description="Number of live features in the snapshot")
    watcher_running: bool
    cache: CacheStats = Field(default_factory=CacheStats)
