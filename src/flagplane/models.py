"""Feature flag records and served snapshots."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from flagplane.errors import InvalidFeatureTypeError

DEFAULT_SCOPE = "default"


class FeatureType(str, Enum):
    """Closed set of flag value types."""

    BOOLEAN = "boolean"
    PERCENTILE = "percentile"
    STRING = "string"
    INVALID = "invalid"


def serialize_value(value: Any, feature_type: FeatureType | None) -> Any:
    """Coerce a flag value to the JSON form of its type.

    Records without a type (bulk imports) keep their decoded JSON value.
    """
    if feature_type is None:
        return value
    if feature_type is FeatureType.BOOLEAN:
        return bool(value)
    if feature_type is FeatureType.PERCENTILE:
        return float(value)
    if feature_type is FeatureType.STRING:
        return str(value)
    if feature_type is FeatureType.INVALID:
        raise InvalidFeatureTypeError()
    raise AssertionError(f"unhandled feature type: {feature_type!r}")


@dataclass(frozen=True)
class Feature:
    """A single flag change: identity, value and attribution.

    Deletions are modelled as tombstones carrying identity and actor only.
    """

    key: str
    namespace: str
    scope: str = DEFAULT_SCOPE
    value: Any = None
    feature_type: FeatureType | None = None
    comment: str = ""
    updated_by: str = ""
    deleted: bool = False

    @property
    def scoped_key(self) -> str:
        """Externally visible handle ``namespace/scope/key``."""
        return f"{self.namespace}/{self.scope}/{self.key}"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for storage."""
        return {
            "key": self.key,
            "namespace": self.namespace,
            "scope": self.scope,
            "value": None if self.deleted else serialize_value(self.value, self.feature_type),
            "feature_type": self.feature_type.value if self.feature_type else None,
            "comment": self.comment,
            "updated_by": self.updated_by,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Feature:
        """Create from a stored dictionary."""
        raw_type = data.get("feature_type")
        return cls(
            key=data["key"],
            namespace=data["namespace"],
            scope=data.get("scope") or DEFAULT_SCOPE,
            value=data.get("value"),
            feature_type=FeatureType(raw_type) if raw_type else None,
            comment=data.get("comment", ""),
            updated_by=data.get("updated_by", ""),
        )


def _digest(payload: dict[str, Any]) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:20]


@dataclass(frozen=True)
class Snapshot:
    """Immutable view of a namespace as served to readers.

    ``version`` is a digest over the features and the current sha, so any
    change to either yields a new version.
    """

    namespace: str
    features: tuple[Feature, ...] = ()
    current_sha: str = ""
    version: str = field(default="", compare=False)

    @classmethod
    def build(
        cls,
        namespace: str,
        features: list[Feature] | tuple[Feature, ...],
        current_sha: str = "",
    ) -> Snapshot:
        live = tuple(f for f in features if not f.deleted)
        snapshot = cls(namespace=namespace, features=live, current_sha=current_sha)
        version = _digest({"current_sha": current_sha, "features": snapshot.scopes()})
        return cls(namespace=namespace, features=live, current_sha=current_sha, version=version)

    def scopes(self) -> dict[str, dict[str, Any]]:
        """Feature values grouped by scope."""
        grouped: dict[str, dict[str, Any]] = {}
        for feature in self.features:
            grouped.setdefault(feature.scope, {})[feature.key] = serialize_value(
                feature.value, feature.feature_type
            )
        return grouped

    def to_document(self, json_root: str) -> dict[str, Any]:
        """Served JSON document."""
        return {
            json_root: {
                "info": {"current_sha": self.current_sha},
                "features": self.scopes(),
            }
        }
