"""Storage backends."""

from flagplane.config import Settings
from flagplane.store.base import FeatureStore, SnapshotListener
from flagplane.store.git import GitRepository
from flagplane.store.memory import InMemoryFeatureStore
from flagplane.store.redis_store import RedisFeatureStore


def build_store(settings: Settings) -> FeatureStore:
    """Build the production store for ``settings``."""
    return RedisFeatureStore(settings)


__all__ = [
    "FeatureStore",
    "GitRepository",
    "InMemoryFeatureStore",
    "RedisFeatureStore",
    "SnapshotListener",
    "build_store",
]
