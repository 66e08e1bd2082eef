"""Tests for the feature record builder."""

import dataclasses

import pytest

from flagplane.errors import InvalidFeatureTypeError, InvalidRangeError, NameRequiredError
from flagplane.models import DEFAULT_SCOPE, Feature, FeatureType
from flagplane.services.feature_builder import FeatureBuilder


@pytest.fixture
def builder(settings):
    return FeatureBuilder(settings)


class TestBuild:
    def test_stamps_namespace_and_actor(self, builder):
        feature = builder.build("rollout", 0.25, FeatureType.PERCENTILE, "ramp", "prod")
        assert feature.namespace == "test"
        assert feature.updated_by == "tester"
        assert feature.scope == "prod"
        assert feature.scoped_key == "test/prod/rollout"
        assert not feature.deleted

    def test_blank_scope_defaults(self, builder):
        assert builder.build("rollout", True, FeatureType.BOOLEAN).scope == DEFAULT_SCOPE

    def test_equal_inputs_equal_records(self, builder):
        first = builder.build("rollout", 0.25, FeatureType.PERCENTILE, "c", "prod")
        second = builder.build("rollout", 0.25, FeatureType.PERCENTILE, "c", "prod")
        assert first == second

    def test_records_are_immutable(self, builder):
        feature = builder.build("rollout", True, FeatureType.BOOLEAN)
        with pytest.raises(dataclasses.FrozenInstanceError):
            feature.value = False  # type: ignore[misc]

    def test_tombstone(self, builder):
        tombstone = builder.tombstone("rollout")
        assert tombstone == Feature(
            key="rollout",
            namespace="test",
            scope=DEFAULT_SCOPE,
            updated_by="tester",
            deleted=True,
        )
        assert tombstone.value is None
        assert tombstone.to_dict()["value"] is None


class TestParse:
    def test_parse_percentile(self, builder):
        feature = builder.parse("rollout", "0.25", scope="prod")
        assert feature.feature_type is FeatureType.PERCENTILE
        assert feature.value == 0.25

    def test_parse_requires_name(self, builder):
        with pytest.raises(NameRequiredError):
            builder.parse("", "true")

    def test_parse_rejects_empty_value(self, builder):
        with pytest.raises(InvalidFeatureTypeError):
            builder.parse("rollout", "")

    def test_parse_rejects_out_of_range(self, builder):
        with pytest.raises(InvalidRangeError):
            builder.parse("rollout", "1.5")


class TestSerialization:
    def test_round_trip_typed_feature(self, builder):
        feature = builder.build("enabled", True, FeatureType.BOOLEAN, "on", "prod")
        assert Feature.from_dict(feature.to_dict()) == feature

    def test_untyped_value_kept_as_decoded(self, builder):
        feature = builder.build("limits", {"max": 3})
        data = feature.to_dict()
        assert data["feature_type"] is None
        assert data["value"] == {"max": 3}

    def test_invalid_type_not_serializable(self, builder):
        feature = builder.build("broken", "x", FeatureType.INVALID)
        with pytest.raises(InvalidFeatureTypeError):
            feature.to_dict()
