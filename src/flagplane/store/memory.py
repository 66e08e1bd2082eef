"""In-memory feature store.

Keeps features in a dict and a list of fake commit shas. Every call is
recorded in :attr:`InMemoryFeatureStore.calls` and any operation can be made
to fail through :attr:`InMemoryFeatureStore.failures`, which makes it the
test double for the commit pipeline and the watcher.
"""

from __future__ import annotations

import hashlib
import threading

from flagplane.errors import FeatureNotFoundError, StoreError
from flagplane.models import Feature
from flagplane.store.base import FeatureStore, SnapshotListener


class InMemoryFeatureStore(FeatureStore):
    """Thread-safe in-memory implementation of :class:`FeatureStore`."""

    def __init__(self, namespace: str = "flagplane") -> None:
        self._namespace = namespace
        self._features: dict[tuple[str, str], Feature] = {}
        self._commits: list[tuple[str, Feature, bool]] = []
        self._current_sha = ""
        self._changes = 0
        self._cond = threading.Condition()

        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.pushed_sha = ""
        self.repo_initialized: bool | None = None

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        error = self.failures.get(operation)
        if error is not None:
            raise error

    def _touch(self) -> None:
        with self._cond:
            self._changes += 1
            self._cond.notify_all()

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def commits(self) -> list[tuple[str, Feature, bool]]:
        """Recorded ``(sha, feature, deleted)`` history, oldest first."""
        return list(self._commits)

    def list(self, prefix: str = "", scope: str = "") -> list[Feature]:
        self._enter("list")
        with self._cond:
            features = [
                f
                for (f_scope, key), f in self._features.items()
                if key.startswith(prefix) and (not scope or f_scope == scope)
            ]
        return sorted(features, key=lambda f: (f.scope, f.key))

    def set(self, feature: Feature) -> None:
        self._enter("set")
        with self._cond:
            self._features[(feature.scope, feature.key)] = feature
        self._touch()

    def delete(self, name: str, scope: str) -> None:
        self._enter("delete")
        with self._cond:
            if (scope, name) not in self._features:
                raise FeatureNotFoundError(f"{self._namespace}/{scope}/{name}")
            del self._features[(scope, name)]
        self._touch()

    def commit(self, feature: Feature, deleted: bool) -> None:
        self._enter("commit")
        seed = f"{len(self._commits)}:{feature.scoped_key}:{deleted}"
        sha = hashlib.sha1(seed.encode()).hexdigest()  # nosec B324
        self._commits.append((sha, feature, deleted))

    def update_current_sha(self) -> str:
        self._enter("update_current_sha")
        if not self._commits:
            raise StoreError("no commits to point at")
        self._current_sha = self._commits[-1][0]
        self._touch()
        return self._current_sha

    def current_sha(self) -> str:
        return self._current_sha

    def push(self) -> None:
        self._enter("push")
        self.pushed_sha = self._current_sha

    def init_repo(self, create: bool) -> None:
        self._enter("init_repo")
        self.repo_initialized = create

    def watch(self, listener: SnapshotListener, stop: threading.Event) -> None:
        self._enter("watch")
        seen = -1
        while not stop.is_set():
            with self._cond:
                if self._changes == seen:
                    self._cond.wait(timeout=0.05)
                    continue
                seen = self._changes
            listener(self.snapshot())
