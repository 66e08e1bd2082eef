"""Tests for the reader client."""

import zlib
from unittest.mock import Mock

import pytest
import requests
from fastapi.testclient import TestClient

from flagplane.client import FlagClient
from flagplane.main import create_app
from flagplane.models import Feature, FeatureType
from flagplane.services.distribution import Watcher

DOCUMENT = {
    "flagplane": {
        "info": {"current_sha": "0123abcd"},
        "features": {
            "default": {"enabled": True, "rollout": 0.5, "color": "blue", "legacy": False},
            "prod": {"enabled": False, "rollout": 1.0},
        },
    }
}


def _response(status_code=200, payload=None, etag='"v1"'):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.headers = {"ETag": etag}
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def flag_client():
    client = FlagClient(scopes=["prod"])
    client.session = Mock()
    client.session.get.return_value = _response(payload=DOCUMENT)
    client.refresh()
    return client


class TestRefresh:
    def test_loads_document(self, flag_client):
        assert flag_client.current_sha == "0123abcd"
        assert flag_client.features["prod"] == {"enabled": False, "rollout": 1.0}
        flag_client.session.get.assert_called_once_with(
            "http://localhost:8000/flagplane.json", headers={}, timeout=5.0
        )

    def test_sends_etag_and_keeps_snapshot_on_304(self, flag_client):
        flag_client.session.get.return_value = _response(status_code=304)

        assert flag_client.refresh() is False
        assert flag_client.session.get.call_args.kwargs["headers"] == {"If-None-Match": '"v1"'}
        assert flag_client.current_sha == "0123abcd"

    def test_keeps_snapshot_on_error(self, flag_client):
        flag_client.session.get.side_effect = requests.ConnectionError("refused")

        assert flag_client.refresh() is False
        assert flag_client.lookup("color") == "blue"


class TestEvaluation:
    def test_scope_overrides_default(self, flag_client):
        assert flag_client.lookup("enabled") is False
        assert flag_client.lookup("color") == "blue"
        assert flag_client.lookup("missing") is None

    def test_is_available_only_for_true_booleans(self, flag_client):
        assert flag_client.is_available("enabled") is False
        assert flag_client.is_available("rollout") is False
        assert FlagClient().is_available("enabled") is False

    def test_is_available_for_id(self, flag_client):
        # prod rollout is 1.0: every id is in
        assert all(flag_client.is_available_for_id("rollout", i) for i in range(50))
        assert flag_client.is_available_for_id("legacy", 7) is False
        assert flag_client.is_available_for_id("color", 7) is False

    def test_percentile_buckets_by_crc32(self):
        client = FlagClient()
        client._features = {"default": {"rollout": 0.5}}
        for id_ in range(100):
            expected = zlib.crc32(str(id_).encode()) % 100 < 50
            assert client.is_available_for_id("rollout", id_) is expected

    def test_scale_value(self, flag_client):
        assert flag_client.scale_value("rollout", 10, 20) == 20.0
        assert flag_client.scale_value("color", 10, 20) == 10


def test_reads_from_responder(settings, store):
    store.set(
        Feature(key="enabled", namespace="test", value=True, feature_type=FeatureType.BOOLEAN)
    )
    app = create_app(settings, watcher=Watcher(settings, store))

    with TestClient(app) as test_client:
        client = FlagClient(base_url="http://testserver")
        client.session = test_client

        assert client.refresh() is True
        assert client.is_available("enabled") is True
        assert client.refresh() is False
