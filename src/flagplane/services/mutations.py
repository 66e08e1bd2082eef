"""Mutation orchestration: list, set, delete and the commit pipeline.

Every call is synchronous. After a successful ``set`` or ``delete`` the
change runs through the commit pipeline when version control is enabled::

    commit -> update_current_sha -> push (if enabled)

The pipeline is forward-only. A failing stage stops the stages after it and
leaves earlier ones in place; nothing is rolled back or retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flagplane.config import Settings
from flagplane.errors import PipelineStageError
from flagplane.models import DEFAULT_SCOPE, Feature
from flagplane.services.feature_builder import FeatureBuilder
from flagplane.store.base import FeatureStore
from flagplane.validation import require_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    """Outcome of the commit pipeline for one change."""

    committed: bool = False
    current_sha: str = ""
    pushed: bool = False


class MutationService:
    """Executes flag mutations against a :class:`FeatureStore`."""

    def __init__(
        self,
        settings: Settings,
        store: FeatureStore,
        builder: FeatureBuilder | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._builder = builder or FeatureBuilder(settings)

    @property
    def store(self) -> FeatureStore:
        return self._store

    @property
    def builder(self) -> FeatureBuilder:
        return self._builder

    def list_features(self, prefix: str = "", scope: str = "") -> list[Feature]:
        """List features in store order.

        A prefix without a scope searches the default scope. An empty list
        means the namespace holds nothing matching.
        """
        if prefix and not scope:
            scope = DEFAULT_SCOPE
        return self._store.list(prefix, scope)

    def set_feature(self, feature: Feature) -> CommitResult:
        """Write a validated feature and commit it.

        Raises:
            NameRequiredError: blank key
        """
        require_name(feature.key)
        self._store.set(feature)
        logger.info(f"set flag '{feature.scoped_key}'")
        return self.commit_features(feature, deleted=False)

    def delete_feature(self, name: str | None, scope: str = "") -> CommitResult:
        """Delete a feature and commit its tombstone.

        Raises:
            NameRequiredError: blank name
            FeatureNotFoundError: no such feature in the store
        """
        key = require_name(name)
        scope = scope or DEFAULT_SCOPE
        self._store.delete(key, scope)
        tombstone = self._builder.tombstone(key, scope)
        logger.info(f"deleted flag {tombstone.scoped_key}")
        return self.commit_features(tombstone, deleted=True)

    def commit_features(self, feature: Feature, deleted: bool) -> CommitResult:
        """Run the commit pipeline for one change.

        Raises:
            PipelineStageError: with ``stage`` set to the failing step
        """
        if not self._settings.git_enabled:
            return CommitResult()

        logger.info("committing changes")
        try:
            self._store.commit(feature, deleted)
        except Exception as e:
            raise PipelineStageError("commit", e) from e

        try:
            sha = self._store.update_current_sha()
        except Exception as e:
            raise PipelineStageError("update_current_sha", e) from e
        logger.info(f"set info/current_sha: {sha}")

        if not self._settings.push_enabled:
            return CommitResult(committed=True, current_sha=sha)

        logger.info("pushing commit to origin")
        try:
            self._store.push()
        except Exception as e:
            raise PipelineStageError("push", e) from e

        return CommitResult(committed=True, current_sha=sha, pushed=True)
