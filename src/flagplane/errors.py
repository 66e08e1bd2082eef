"""Error taxonomy for flag mutations, storage and distribution.

Validation errors are raised before any store call is made. Collaborator
errors wrap failures from storage, version control or the watcher and are
re-raised unchanged by the core. Provisioning errors cover local filesystem
setup during ``init``.
"""

from __future__ import annotations


class FlagplaneError(Exception):
    """Base class for all flagplane errors."""


# ============================================================================
# Validation
# ============================================================================


class ValidationError(FlagplaneError):
    """Input rejected before any mutation was attempted."""


class NameRequiredError(ValidationError):
    def __init__(self, message: str = "-name is required") -> None:
        super().__init__(message)


class InvalidFeatureTypeError(ValidationError):
    def __init__(
        self,
        message: str = "invalid -value format. use -value=[0.0-1.0], [true|false] or a string",
    ) -> None:
        super().__init__(message)


class InvalidRangeError(ValidationError):
    def __init__(self, message: str = "invalid -value for percentile. use -value=[0.0-1.0]") -> None:
        super().__init__(message)


class ImportFormatError(ValidationError):
    """Import payload is not a flat JSON object."""


# ============================================================================
# Collaborators
# ============================================================================


class CollaboratorError(FlagplaneError):
    """Failure reported by storage, version control or the watcher."""


class StoreError(CollaboratorError):
    """Key-value storage failure."""


class FeatureNotFoundError(StoreError):
    def __init__(self, scoped_key: str) -> None:
        super().__init__(f"feature not found: {scoped_key}")
        self.scoped_key = scoped_key


class VersionControlError(CollaboratorError):
    """A version-control command failed."""


class PipelineStageError(CollaboratorError):
    """A commit pipeline stage failed; earlier stages are left in place."""

    def __init__(self, stage: str, cause: Exception) -> None:
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause


class WatcherStartError(CollaboratorError):
    """The watcher could not load an initial snapshot."""


# ============================================================================
# Provisioning
# ============================================================================


class ProvisioningError(FlagplaneError):
    """Local configuration scaffolding failed."""
