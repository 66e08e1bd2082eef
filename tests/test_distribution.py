"""Tests for snapshots, the broadcaster, the watcher and the response cache."""

import json
import threading
from unittest.mock import patch

import pytest

from flagplane.config import Settings
from flagplane.errors import StoreError, WatcherStartError
from flagplane.models import Feature, FeatureType, Snapshot
from flagplane.services.cache import VersionedResponseCache, document_renderer
from flagplane.services.distribution import (
    DistributionCoordinator,
    SnapshotBroadcaster,
    Watcher,
)


def _feature(key: str, value, feature_type=FeatureType.BOOLEAN, scope: str = "default") -> Feature:
    return Feature(key=key, namespace="test", scope=scope, value=value, feature_type=feature_type)


class TestSnapshot:
    def test_version_tracks_content(self):
        first = Snapshot.build("test", [_feature("a", True)])
        same = Snapshot.build("test", [_feature("a", True)])
        changed = Snapshot.build("test", [_feature("a", False)])
        new_sha = Snapshot.build("test", [_feature("a", True)], current_sha="abc123")

        assert first.version == same.version
        assert len({first.version, changed.version, new_sha.version}) == 3

    def test_document_groups_by_scope(self):
        snapshot = Snapshot.build(
            "test",
            [_feature("a", True), _feature("b", 0.25, FeatureType.PERCENTILE, scope="prod")],
            current_sha="abc123",
        )
        assert snapshot.to_document("flagplane") == {
            "flagplane": {
                "info": {"current_sha": "abc123"},
                "features": {"default": {"a": True}, "prod": {"b": 0.25}},
            }
        }

    def test_tombstones_excluded(self):
        tombstone = Feature(key="a", namespace="test", deleted=True)
        assert Snapshot.build("test", [tombstone]).features == ()


class TestBroadcaster:
    def test_publish_replaces_latest(self):
        broadcaster = SnapshotBroadcaster()
        assert broadcaster.latest is None

        v1 = Snapshot.build("test", [_feature("a", True)])
        v2 = Snapshot.build("test", [_feature("a", False)])
        assert broadcaster.publish(v1)
        assert broadcaster.publish(v2)
        assert broadcaster.latest is v2

    def test_same_version_not_republished(self):
        broadcaster = SnapshotBroadcaster()
        broadcaster.publish(Snapshot.build("test", [_feature("a", True)]))
        assert not broadcaster.publish(Snapshot.build("test", [_feature("a", True)]))

    def test_wait_for_change_times_out(self):
        broadcaster = SnapshotBroadcaster()
        v1 = Snapshot.build("test", [])
        broadcaster.publish(v1)
        assert broadcaster.wait_for_change(v1.version, timeout=0.05) is v1

    def test_wait_for_change_wakes_on_publish(self):
        broadcaster = SnapshotBroadcaster()
        v1 = Snapshot.build("test", [])
        v2 = Snapshot.build("test", [_feature("a", True)])
        broadcaster.publish(v1)

        timer = threading.Timer(0.05, broadcaster.publish, args=(v2,))
        timer.start()
        try:
            assert broadcaster.wait_for_change(v1.version, timeout=2) is v2
        finally:
            timer.cancel()


class TestResponseCache:
    def test_cached_until_version_changes(self):
        renders = []

        def render(snapshot):
            renders.append(snapshot.version)
            return snapshot.version.encode()

        cache = VersionedResponseCache(render)
        v1 = Snapshot.build("test", [_feature("a", True)])
        v2 = Snapshot.build("test", [_feature("a", False)])

        assert cache.get(v1).body == v1.version.encode()
        assert cache.get(v1).body == v1.version.encode()
        assert cache.get(v2).body == v2.version.encode()
        assert renders == [v1.version, v2.version]
        assert cache.stats["hits"] == 1
        assert cache.stats["misses"] == 2
        assert cache.version == v2.version

    def test_etag_quotes_version(self):
        cache = VersionedResponseCache(document_renderer("flagplane"))
        snapshot = Snapshot.build("test", [])
        assert cache.get(snapshot).etag == f'"{snapshot.version}"'


class TestWatcher:
    def test_start_publishes_initial_snapshot(self, settings, store):
        store.set(_feature("a", True))
        watcher = Watcher(settings, store)
        try:
            snapshot = watcher.start()
            assert watcher.running
            assert watcher.broadcaster.latest is snapshot
            assert snapshot.scopes() == {"default": {"a": True}}
        finally:
            watcher.stop()
        assert not watcher.running

    def test_publishes_store_changes(self, settings, store):
        watcher = Watcher(settings, store)
        try:
            initial = watcher.start()
            store.set(_feature("a", True))
            updated = watcher.broadcaster.wait_for_change(initial.version, timeout=2)
            assert updated.scopes() == {"default": {"a": True}}
        finally:
            watcher.stop()

    def test_start_failure(self, settings, store):
        store.failures["list"] = StoreError("store unreachable")
        watcher = Watcher(settings, store)

        with pytest.raises(WatcherStartError):
            watcher.start()
        assert not watcher.running
        assert watcher.broadcaster.latest is None

    def test_writes_output_file(self, store, tmp_path):
        output = tmp_path / "out" / "flags.json"
        settings = Settings(namespace="test", watcher={"output_path": str(output)})
        store.set(_feature("a", True))

        watcher = Watcher(settings, store)
        try:
            watcher.start()
        finally:
            watcher.stop()

        assert json.loads(output.read_text()) == {
            "flagplane": {"info": {"current_sha": ""}, "features": {"default": {"a": True}}}
        }


class TestCoordinator:
    def test_watch_returns_when_stopped(self, settings, store):
        stop = threading.Event()
        stop.set()
        DistributionCoordinator(settings, store).watch(stop=stop, poll_seconds=0.01)
        assert "list" in store.calls

    def test_watch_raises_loop_error(self, settings, store):
        store.failures["watch"] = StoreError("watch transport down")
        with pytest.raises(StoreError):
            DistributionCoordinator(settings, store).watch(poll_seconds=0.01)

    def test_serve_does_not_start_responder_without_watcher(self, settings, store):
        store.failures["list"] = StoreError("store unreachable")
        with patch("uvicorn.run") as run:
            with pytest.raises(WatcherStartError):
                DistributionCoordinator(settings, store).serve()
        run.assert_not_called()

    def test_serve_runs_app_on_configured_address(self, settings, store):
        with patch("uvicorn.run") as run:
            DistributionCoordinator(settings, store).serve()
        run.assert_called_once()
        assert run.call_args.kwargs == {"host": "0.0.0.0", "port": 8000}
