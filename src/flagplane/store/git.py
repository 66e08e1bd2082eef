"""Git-backed change history.

Each flag change rewrites an export of the namespace inside the local
repository and records it as one commit. Commands run through the ``git``
executable.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from flagplane.errors import VersionControlError

logger = logging.getLogger(__name__)

EXPORT_FILE_NAME = "features.json"
DIR_PERMS = 0o755


class GitRepository:
    """Local git repository with an optional ``origin`` remote."""

    def __init__(
        self,
        path: str | Path,
        url: str = "",
        author_name: str = "flagplane",
        author_email: str = "flagplane@localhost",
        export_file: str = EXPORT_FILE_NAME,
    ) -> None:
        self.path = Path(path)
        self.url = url
        self.author_name = author_name
        self.author_email = author_email
        self.export_file = export_file

    @property
    def export_path(self) -> Path:
        return self.path / self.export_file

    def exists(self) -> bool:
        """Check whether the local path already holds a repository."""
        return (self.path / ".git").is_dir()

    def _run(self, *args: str, cwd: Path | None = None, author: str | None = None) -> str:
        command = [
            "git",
            "-c",
            f"user.name={author or self.author_name}",
            "-c",
            f"user.email={self.author_email}",
            *args,
        ]
        try:
            result = subprocess.run(
                command,
                cwd=str(cwd or self.path),
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise VersionControlError(f"git executable not available: {e}") from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip()
            raise VersionControlError(f"git {args[0]} failed: {detail}") from e
        return result.stdout.strip()

    def create(self, content: bytes) -> None:
        """Initialize a repository holding ``content`` and push it to ``url``."""
        try:
            self.path.mkdir(mode=DIR_PERMS, parents=True, exist_ok=True)
        except OSError as e:
            raise VersionControlError(f"could not create {self.path}: {e}") from e

        if not self.exists():
            self._run("init")
        self.commit(content, "initial commit")

        if self.url:
            remotes = self._run("remote").split()
            if "origin" not in remotes:
                self._run("remote", "add", "origin", self.url)
            self._run("push", "-u", "origin", "HEAD")

    def clone(self) -> None:
        """Clone ``url`` into the local path."""
        if not self.url:
            raise VersionControlError("no repository url configured")
        if self.exists():
            logger.info(f"{self.path} already contains a repository, skipping clone")
            return
        parent = self.path.parent
        try:
            parent.mkdir(mode=DIR_PERMS, parents=True, exist_ok=True)
        except OSError as e:
            raise VersionControlError(f"could not create {parent}: {e}") from e
        self._run("clone", self.url, str(self.path), cwd=parent)

    def commit(self, content: bytes, message: str, author: str | None = None) -> None:
        """Write the export file and commit it.

        Empty commits are allowed so every change leaves a history entry.
        """
        if not self.exists():
            raise VersionControlError(f"{self.path} is not a git repository")
        try:
            self.export_path.write_bytes(content)
        except OSError as e:
            raise VersionControlError(f"could not write {self.export_path}: {e}") from e
        self._run("add", self.export_file)
        self._run("commit", "--allow-empty", "-m", message, author=author)

    def current_sha(self) -> str:
        """Sha of ``HEAD``."""
        return self._run("rev-parse", "HEAD")

    def push(self) -> None:
        self._run("push", "origin", "HEAD")
