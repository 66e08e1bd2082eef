"""Redis-backed feature store with git history.

Layout inside the configured Redis database::

    <namespace>/features/<scope>/<key>   JSON document of the feature
    <namespace>/info/current_sha         version pointer

Changes are committed to a :class:`GitRepository` as an export of the whole
namespace. Watching polls the namespace and emits a snapshot whenever its
digest changes.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import redis

from flagplane.config import Settings
from flagplane.errors import FeatureNotFoundError, StoreError
from flagplane.models import Feature, Snapshot
from flagplane.store.base import FeatureStore, SnapshotListener
from flagplane.store.git import GitRepository

logger = logging.getLogger(__name__)

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except redis.RedisError as e:
        raise StoreError(f"{action} failed: {e}") from e


def _escape(text: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", text)


def _decode(key: str, raw: str) -> Feature:
    try:
        return Feature.from_dict(json.loads(raw))
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise StoreError(f"corrupt record {key}: {e}") from e


class RedisFeatureStore(FeatureStore):
    """Production :class:`FeatureStore` adapter."""

    def __init__(
        self,
        settings: Settings,
        client: redis.Redis | None = None,
        repository: GitRepository | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            settings: Resolved settings
            client: Redis client (default: built from ``settings.redis``)
            repository: History backend (default: built from ``settings.git``)
        """
        self._settings = settings
        self._client = client or redis.Redis.from_url(
            settings.redis.url,
            decode_responses=True,
            socket_timeout=settings.redis.socket_timeout,
        )
        self._repo = repository or GitRepository(
            settings.git.repo_path,
            url=settings.git.repo_url,
            author_name=settings.username,
            author_email=settings.git.author_email,
        )

    @property
    def namespace(self) -> str:
        return self._settings.namespace

    @property
    def repository(self) -> GitRepository:
        return self._repo

    @property
    def _sha_key(self) -> str:
        return f"{self.namespace}/info/current_sha"

    def _feature_key(self, scope: str, key: str) -> str:
        return f"{self.namespace}/features/{scope}/{key}"

    def list(self, prefix: str = "", scope: str = "") -> list[Feature]:
        if scope:
            pattern = f"{self.namespace}/features/{_escape(scope)}/{_escape(prefix)}*"
        else:
            pattern = f"{self.namespace}/features/*"

        with _store_errors("list"):
            keys = sorted(self._client.scan_iter(match=pattern))
            values = self._client.mget(keys) if keys else []

        features = [_decode(key, raw) for key, raw in zip(keys, values) if raw]
        # glob * also matches "/", so nested scopes need an exact check
        if scope:
            features = [f for f in features if f.scope == scope]
        if prefix:
            features = [f for f in features if f.key.startswith(prefix)]
        return sorted(features, key=lambda f: (f.scope, f.key))

    def set(self, feature: Feature) -> None:
        payload = json.dumps(feature.to_dict())
        with _store_errors("set"):
            self._client.set(self._feature_key(feature.scope, feature.key), payload)

    def delete(self, name: str, scope: str) -> None:
        with _store_errors("delete"):
            removed = self._client.delete(self._feature_key(scope, name))
        if not removed:
            raise FeatureNotFoundError(f"{self.namespace}/{scope}/{name}")

    def export(self) -> bytes:
        """Namespace export written to the repository on every commit."""
        document = self.snapshot().to_document(self._settings.server.json_root)
        return json.dumps(document, indent=2, sort_keys=True).encode("utf-8")

    def commit(self, feature: Feature, deleted: bool) -> None:
        if deleted:
            message = f"{feature.updated_by} deleted {feature.scoped_key}"
        else:
            message = f"{feature.updated_by} set {feature.scoped_key} to {feature.value!r}"
        self._repo.commit(self.export(), message, author=feature.updated_by or None)

    def update_current_sha(self) -> str:
        sha = self._repo.current_sha()
        with _store_errors("update current_sha"):
            self._client.set(self._sha_key, sha)
        return sha

    def current_sha(self) -> str:
        with _store_errors("read current_sha"):
            return self._client.get(self._sha_key) or ""

    def push(self) -> None:
        self._repo.push()

    def init_repo(self, create: bool) -> None:
        if create:
            self._repo.create(self.export())
        else:
            self._repo.clone()

    def watch(self, listener: SnapshotListener, stop: threading.Event) -> None:
        """Poll the namespace every ``watcher.interval_seconds``.

        Storage errors while polling are logged and the poll is retried on
        the next tick.
        """
        interval = self._settings.watcher.interval_seconds
        last_version = ""
        while not stop.is_set():
            try:
                snapshot = self.snapshot()
            except StoreError as e:
                logger.error(f"Watch poll failed for {self.namespace}: {e}")
            else:
                if snapshot.version != last_version:
                    last_version = snapshot.version
                    listener(snapshot)
            stop.wait(interval)
