"""Snapshot distribution: watcher, broadcaster and serving coordinator.

The watcher is the only writer. It publishes immutable snapshots to a
:class:`SnapshotBroadcaster`; readers take the latest reference without
blocking the watcher, so they see either the previous or the new snapshot.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from flagplane.config import Settings
from flagplane.errors import WatcherStartError
from flagplane.models import Snapshot
from flagplane.store.base import FeatureStore

logger = logging.getLogger(__name__)


class SnapshotBroadcaster:
    """Single-writer, many-reader holder of the latest snapshot."""

    def __init__(self) -> None:
        self._latest: Snapshot | None = None
        self._cond = threading.Condition()

    @property
    def latest(self) -> Snapshot | None:
        """Most recently published snapshot."""
        return self._latest

    @property
    def version(self) -> str | None:
        latest = self._latest
        return latest.version if latest else None

    def publish(self, snapshot: Snapshot) -> bool:
        """Replace the current snapshot.

        Returns:
            False if ``snapshot`` has the version already published
        """
        with self._cond:
            if self._latest is not None and self._latest.version == snapshot.version:
                return False
            self._latest = snapshot
            self._cond.notify_all()
        return True

    def wait_for_change(self, version: str | None, timeout: float | None = None) -> Snapshot | None:
        """Block until a snapshot other than ``version`` is published."""
        with self._cond:
            self._cond.wait_for(
                lambda: self._latest is not None and self._latest.version != version,
                timeout=timeout,
            )
            return self._latest


class Watcher:
    """Background task tracking the store and publishing snapshots."""

    def __init__(
        self,
        settings: Settings,
        store: FeatureStore,
        broadcaster: SnapshotBroadcaster | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._broadcaster = broadcaster or SnapshotBroadcaster()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._error: Exception | None = None

    @property
    def broadcaster(self) -> SnapshotBroadcaster:
        return self._broadcaster

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def error(self) -> Exception | None:
        """Error that ended the watch loop, if any."""
        return self._error

    def start(self) -> Snapshot:
        """Load the initial snapshot and start watching in a daemon thread.

        Raises:
            WatcherStartError: the initial snapshot could not be loaded
        """
        try:
            snapshot = self._store.snapshot()
        except Exception as e:
            raise WatcherStartError(
                f"could not load namespace {self._store.namespace}: {e}"
            ) from e

        self._handle(snapshot)
        self._stop.clear()
        self._error = None
        self._thread = threading.Thread(target=self._run, name="flagplane-watcher", daemon=True)
        self._thread.start()
        return snapshot

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _run(self) -> None:
        try:
            self._store.watch(self._handle, self._stop)
        except Exception as e:
            self._error = e
            logger.error(f"Watcher for {self._store.namespace} stopped: {e}")

    def _handle(self, snapshot: Snapshot) -> None:
        if not self._broadcaster.publish(snapshot):
            return
        logger.info(
            f"namespace {snapshot.namespace} at version {snapshot.version} "
            f"(current_sha: {snapshot.current_sha or '-'}, {len(snapshot.features)} features)"
        )
        if self._settings.watcher.output_path:
            self._write_output(snapshot, Path(self._settings.watcher.output_path))

    def _write_output(self, snapshot: Snapshot, path: Path) -> None:
        """Atomically replace ``path`` with the served document."""
        document = snapshot.to_document(self._settings.server.json_root)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_name, path)
        except OSError as e:
            logger.error(f"Could not write {path}: {e}")


class DistributionCoordinator:
    """Runs the watcher alone (``watch``) or behind the HTTP responder (``serve``)."""

    def __init__(self, settings: Settings, store: FeatureStore) -> None:
        self._settings = settings
        self._store = store

    def watcher(self) -> Watcher:
        return Watcher(self._settings, self._store)

    def watch(self, stop: threading.Event | None = None, poll_seconds: float = 0.5) -> None:
        """Observe the namespace until ``stop`` is set or the watcher fails.

        Raises:
            WatcherStartError: the watcher could not start
            CollaboratorError: the watch loop ended with an error
        """
        stop = stop or threading.Event()
        watcher = self.watcher()
        watcher.start()
        logger.info(f"watching namespace: {self._settings.namespace}")
        try:
            while watcher.running and not stop.wait(poll_seconds):
                pass
        finally:
            watcher.stop()
        if watcher.error is not None:
            raise watcher.error

    def serve(self) -> None:
        """Start the watcher, then serve snapshots until terminated.

        Raises:
            WatcherStartError: the responder is not started
        """
        import uvicorn

        from flagplane.main import create_app

        watcher = self.watcher()
        watcher.start()

        app = create_app(self._settings, watcher=watcher)
        uvicorn.run(app, host=self._settings.server.host, port=self._settings.server.port)
