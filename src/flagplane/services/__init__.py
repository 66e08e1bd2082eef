"""Services package."""

from flagplane.services.cache import CachedResponse, VersionedResponseCache, document_renderer
from flagplane.services.distribution import DistributionCoordinator, SnapshotBroadcaster, Watcher
from flagplane.services.feature_builder import FeatureBuilder
from flagplane.services.importer import BulkImporter
from flagplane.services.mutations import CommitResult, MutationService
from flagplane.services.repository import InitResult, RepositoryManager

__all__ = [
    # Cache
    "CachedResponse",
    "VersionedResponseCache",
    "document_renderer",
    # Distribution
    "DistributionCoordinator",
    "SnapshotBroadcaster",
    "Watcher",
    # Mutations
    "BulkImporter",
    "CommitResult",
    "FeatureBuilder",
    "MutationService",
    # Repository
    "InitResult",
    "RepositoryManager",
]
