"""Storage capability interface consumed by the core.

Any backend (distributed key-value store, version-control system, in-memory
double) can back flagplane by implementing :class:`FeatureStore`.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable

from flagplane.models import Feature, Snapshot

SnapshotListener = Callable[[Snapshot], None]


class FeatureStore(ABC):
    """Abstract base class for flag storage and history."""

    @property
    @abstractmethod
    def namespace(self) -> str:
        """Namespace isolating this deployment's flags."""

    @abstractmethod
    def list(self, prefix: str = "", scope: str = "") -> list[Feature]:
        """List features whose key starts with ``prefix``.

        A blank scope lists every scope.
        """

    @abstractmethod
    def set(self, feature: Feature) -> None:
        """Write a feature."""

    @abstractmethod
    def delete(self, name: str, scope: str) -> None:
        """Delete a feature.

        Raises:
            FeatureNotFoundError: no such feature
        """

    @abstractmethod
    def commit(self, feature: Feature, deleted: bool) -> None:
        """Record a change in the backing history."""

    @abstractmethod
    def update_current_sha(self) -> str:
        """Advance the version pointer to the latest commit and return it."""

    @abstractmethod
    def current_sha(self) -> str:
        """Read the version pointer, empty if never written."""

    @abstractmethod
    def push(self) -> None:
        """Push local history to the remote."""

    @abstractmethod
    def init_repo(self, create: bool) -> None:
        """Create and push a new history, or clone an existing one."""

    @abstractmethod
    def watch(self, listener: SnapshotListener, stop: threading.Event) -> None:
        """Call ``listener`` with a new snapshot on every change until ``stop`` is set."""

    def snapshot(self) -> Snapshot:
        """Current state of the namespace."""
        return Snapshot.build(self.namespace, self.list(), self.current_sha())
