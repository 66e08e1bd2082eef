"""Tests for bulk import."""

import io

import pytest

from flagplane.errors import ImportFormatError, NameRequiredError, StoreError
from flagplane.models import DEFAULT_SCOPE
from flagplane.services.importer import BulkImporter
from flagplane.services.mutations import MutationService
from flagplane.store import InMemoryFeatureStore


class FailingKeyStore(InMemoryFeatureStore):
    """Store rejecting writes for one key and recording attempted keys."""

    def __init__(self, failing_key: str) -> None:
        super().__init__(namespace="test")
        self.failing_key = failing_key
        self.attempted: list[str] = []

    def set(self, feature):
        self.attempted.append(feature.key)
        if feature.key == self.failing_key:
            raise StoreError(f"cannot write {feature.key}")
        super().set(feature)


def _importer(settings, store):
    return BulkImporter(MutationService(settings, store))


class TestImport:
    def test_imports_in_source_order_with_native_values(self, settings, store):
        payload = b'{"c": "x", "a": 1, "b": true}'
        imported = _importer(settings, store).import_stream(io.BytesIO(payload))

        assert imported == ["c", "a", "b"]
        values = {f.key: f for f in store.list()}
        assert values["a"].value == 1
        assert values["b"].value is True
        assert values["c"].value == "x"
        for feature in values.values():
            assert feature.feature_type is None
            assert feature.comment == ""
            assert feature.scope == DEFAULT_SCOPE
            assert feature.updated_by == "tester"

    def test_shared_scope(self, settings, store):
        _importer(settings, store).import_stream(io.BytesIO(b'{"a": 0.5}'), scope="prod")
        assert [(f.scope, f.key) for f in store.list()] == [("prod", "a")]

    def test_aborts_on_first_error(self, settings):
        store = FailingKeyStore(failing_key="b")
        payload = b'{"a": 1, "b": true, "c": "bad-key-triggering-error"}'

        with pytest.raises(StoreError):
            _importer(settings, store).import_stream(io.BytesIO(payload))

        assert store.attempted == ["a", "b"]
        assert [f.key for f in store.list()] == ["a"]

    def test_each_key_runs_commit_pipeline(self, git_settings, store):
        _importer(git_settings, store).import_stream(io.BytesIO(b'{"a": 1, "b": 2}'))
        assert store.calls.count("commit") == 2

    @pytest.mark.parametrize("payload", [b"not json", b"[1, 2]", b'"flag"', b"\xff\xfe"])
    def test_rejects_non_object_payloads(self, settings, store, payload):
        with pytest.raises(ImportFormatError):
            _importer(settings, store).import_stream(io.BytesIO(payload))
        assert store.calls == []

    def test_blank_key_aborts_before_store_write(self, settings, store):
        payload = b'{"a": 1, "": 2, "c": 3}'

        with pytest.raises(NameRequiredError):
            _importer(settings, store).import_stream(io.BytesIO(payload))

        assert [f.key for f in store.list()] == ["a"]
        assert store.calls.count("set") == 1

    @pytest.mark.parametrize("value", [b'{"x": 1}', b"[1, 2]", b"null"])
    def test_rejects_non_scalar_values(self, settings, store, value):
        payload = b'{"a": true, "b": ' + value + b', "c": "x"}'

        with pytest.raises(ImportFormatError, match="'b'"):
            _importer(settings, store).import_stream(io.BytesIO(payload))

        assert [f.key for f in store.list()] == ["a"]
