"""Request dependencies resolved from application state."""

from fastapi import Request

from flagplane.config import Settings
from flagplane.services.cache import VersionedResponseCache
from flagplane.services.distribution import SnapshotBroadcaster, Watcher


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_watcher(request: Request) -> Watcher:
    return request.app.state.watcher


def get_broadcaster(request: Request) -> SnapshotBroadcaster:
    return request.app.state.watcher.broadcaster


def get_response_cache(request: Request) -> VersionedResponseCache:
    return request.app.state.response_cache
