"""Response caching for the flag snapshot endpoint.

The cached body is keyed on the watcher's snapshot version instead of a
TTL: it stays valid until a new version is published.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from dataclasses import dataclass

from flagplane.models import Snapshot


@dataclass(frozen=True)
class CachedResponse:
    """Serialized snapshot document for one version."""

    version: str
    current_sha: str
    body: bytes

    @property
    def etag(self) -> str:
        return f'"{self.version}"'


class VersionedResponseCache:
    """Thread-safe single-entry cache invalidated by version changes."""

    def __init__(self, render: Callable[[Snapshot], bytes]) -> None:
        """Initialize cache.

        Args:
            render: Serializes a snapshot into the response body
        """
        self._render = render
        self._entry: CachedResponse | None = None
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get(self, snapshot: Snapshot) -> CachedResponse:
        """Return the cached body for ``snapshot``, rendering on version change."""
        with self._lock:
            entry = self._entry
            if entry is not None and entry.version == snapshot.version:
                self._hits += 1
                return entry

            self._misses += 1
            entry = CachedResponse(
                version=snapshot.version,
                current_sha=snapshot.current_sha,
                body=self._render(snapshot),
            )
            self._entry = entry
            return entry

    @property
    def version(self) -> str | None:
        """Version of the cached body, if any."""
        entry = self._entry
        return entry.version if entry else None

    def clear(self) -> None:
        with self._lock:
            self._entry = None

    @property
    def stats(self) -> dict[str, int | float]:
        """Return cache statistics."""
        with self._lock:
            total = self._hits + self._misses
            hit_rate = (self._hits / total * 100) if total > 0 else 0.0
            return {
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate_percent": round(hit_rate, 1),
            }


def document_renderer(json_root: str) -> Callable[[Snapshot], bytes]:
    """Renderer producing the served JSON document under ``json_root``."""

    def render(snapshot: Snapshot) -> bytes:
        return json.dumps(snapshot.to_document(json_root), sort_keys=True).encode("utf-8")

    return render
