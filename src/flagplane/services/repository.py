"""Repository lifecycle: config scaffolding and history provisioning."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from flagplane.config import EXAMPLE_CONFIG, Settings, config_path
from flagplane.errors import ProvisioningError
from flagplane.store.base import FeatureStore

logger = logging.getLogger(__name__)

DIR_PERMS = 0o755
FILE_PERMS = 0o644


@dataclass(frozen=True)
class InitResult:
    """Outcome of ``init``."""

    config_created: bool
    provisioned: bool
    created: bool = False
    repo_path: str = ""
    repo_url: str = ""


class RepositoryManager:
    """Idempotent bootstrap of local configuration and backing history."""

    def __init__(
        self,
        settings: Settings,
        store: FeatureStore,
        path: Path | None = None,
    ) -> None:
        """Initialize manager.

        Args:
            settings: Resolved settings
            store: Store providing ``init_repo``
            path: Config file location (default: :func:`config_path`)
        """
        self._settings = settings
        self._store = store
        self._path = path or config_path()

    @property
    def path(self) -> Path:
        return self._path

    def scaffold_config(self) -> bool:
        """Write the example config if none exists.

        Returns:
            True if the file was written

        Raises:
            ProvisioningError: directory or file could not be created
        """
        if self._path.exists():
            return False

        directory = self._path.parent
        logger.info(f"creating {directory}")
        missing = [p for p in (directory, *directory.parents) if not p.exists()]
        try:
            directory.mkdir(parents=True, exist_ok=True)
            # mkdir's mode is masked by the umask and skips intermediate parents
            for created in missing:
                created.chmod(DIR_PERMS)
        except OSError as e:
            raise ProvisioningError(f"could not create config directory: {e}") from e

        logger.info(f"{self._path} not found. creating example config")
        try:
            self._path.write_text(EXAMPLE_CONFIG, encoding="utf-8")
            self._path.chmod(FILE_PERMS)
        except OSError as e:
            raise ProvisioningError(f"could not write {self._path.name}: {e}") from e
        return True

    def init(self, create: bool = False) -> InitResult:
        """Scaffold config, then create or clone the history repository.

        Disabled version control is a valid terminal state, not an error.
        Store errors propagate unchanged.
        """
        config_created = self.scaffold_config()

        if not self._settings.git_enabled:
            logger.info("no repository configured. skipping")
            return InitResult(config_created=config_created, provisioned=False)

        self._store.init_repo(create)

        repo_path = self._settings.git.repo_path
        repo_url = self._settings.git.repo_url
        if create:
            logger.info(f"initialized new repo in {repo_path} and pushed to {repo_url}")
        else:
            logger.info(f"cloned {repo_url} into {repo_path}")

        return InitResult(
            config_created=config_created,
            provisioned=True,
            created=create,
            repo_path=repo_path,
            repo_url=repo_url,
        )
