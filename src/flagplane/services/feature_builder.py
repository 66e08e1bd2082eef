"""Feature record builder.

Stamps namespace, actor and scope defaults onto parsed input. Construction
is pure: equal inputs give equal records.
"""

from __future__ import annotations

import logging
from typing import Any

from flagplane.config import Settings
from flagplane.models import DEFAULT_SCOPE, Feature, FeatureType
from flagplane.validation import ValueValidator, require_name

logger = logging.getLogger(__name__)


class FeatureBuilder:
    """Builds immutable :class:`Feature` records for one namespace and actor."""

    def __init__(self, settings: Settings, validator: ValueValidator | None = None) -> None:
        """Initialize builder.

        Args:
            settings: Source of namespace and actor
            validator: Value validator (default: :class:`ValueValidator`)
        """
        self._namespace = settings.namespace
        self._actor = settings.username
        self._validator = validator or ValueValidator()

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def actor(self) -> str:
        return self._actor

    def build(
        self,
        name: str,
        value: Any,
        feature_type: FeatureType | None = None,
        comment: str = "",
        scope: str = "",
    ) -> Feature:
        """Build a feature record, defaulting a blank scope."""
        return Feature(
            key=name,
            namespace=self._namespace,
            scope=scope or DEFAULT_SCOPE,
            value=value,
            feature_type=feature_type,
            comment=comment,
            updated_by=self._actor,
        )

    def tombstone(self, name: str, scope: str = "") -> Feature:
        """Build the deletion record: identity and actor, no value."""
        return Feature(
            key=name,
            namespace=self._namespace,
            scope=scope or DEFAULT_SCOPE,
            updated_by=self._actor,
            deleted=True,
        )

    def parse(
        self,
        name: str | None,
        raw_value: str | None,
        comment: str = "",
        scope: str = "",
    ) -> Feature:
        """Validate command input and build the record.

        Raises:
            NameRequiredError: blank name
            InvalidFeatureTypeError: value could not be classified
            InvalidRangeError: percentile out of range
        """
        key = require_name(name)
        parsed = self._validator.parse(raw_value)
        return self.build(key, parsed.value, parsed.feature_type, comment or "", scope)
