"""Git synchronisation of the dotfiles source tree."""

from __future__ import annotations

import logging
import subprocess
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_BRANCHES = ("main", "master")


class SyncResult(str, Enum):
    """What happened when the source tree was synchronised."""

    UPDATED = "updated"
    NOT_A_REPOSITORY = "not_a_repository"
    PULL_FAILED = "pull_failed"


class GitRepository:
    """The Git work tree holding the dotfiles sources.

    Only the operations needed to bring the tree up to date before a
    deployment are provided: detecting a work tree, detecting local changes,
    stashing them and pulling from ``origin``.

    Attributes:
        path (Path): Path to the work tree.
    """

    def __init__(self, path: Path):
        """Initialize repository."""
        self.path = Path(path).expanduser().resolve()
        self.name = self.path.name

    def __str__(self) -> str:
        """Return string representation."""
        return f"GitRepository({self.path})"

    def __repr__(self) -> str:
        """Return string representation."""
        return self.__str__()

    def _run_git(self, *args: str) -> str:
        """Run a Git command and return its output."""
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                check=True,
            )
            return result.stdout.strip()
        except FileNotFoundError as e:
            raise RuntimeError(f"Git is not available: {e}")
        except subprocess.CalledProcessError as e:
            if e.stderr:
                raise RuntimeError(f"Git command failed: {e.stderr.strip()}")
            if e.stdout:
                raise RuntimeError(f"Git command failed: {e.stdout.strip()}")
            raise RuntimeError("Git command failed with no output")

    def exists(self) -> bool:
        """Check if the path exists and is a Git work tree."""
        if not self.path.exists() or not self.path.is_dir():
            return False
        try:
            self._run_git("rev-parse", "--git-dir")
            return True
        except RuntimeError:
            return False

    def get_current_branch(self) -> str:
        """Get the current branch name.

        Raises:
            RuntimeError: If Git branch lookup fails.
        """
        return self._run_git("rev-parse", "--abbrev-ref", "HEAD")

    def has_changes(self) -> bool:
        """Check if there are uncommitted changes to tracked files."""
        try:
            self._run_git("diff-index", "--quiet", "HEAD", "--")
            return False
        except RuntimeError:
            return True

    def stash(self, message: Optional[str] = None) -> None:
        """Stash local changes.

        Args:
            message: Stash message, defaults to an auto-stash note with the
                current time.
        """
        if message is None:
            message = f"Auto-stash before update {datetime.now():%Y-%m-%d %H:%M:%S}"
        self._run_git("stash", "push", "-m", message)
        logger.info("Changes stashed")

    def pull(self, remote: str = "origin", branches: Sequence[str] = DEFAULT_BRANCHES) -> str:
        """Pull from the first branch of ``branches`` that the remote accepts.

        Returns:
            str: The branch that was pulled.

        Raises:
            RuntimeError: If every branch failed.
        """
        errors = []
        for branch in branches:
            try:
                self._run_git("pull", remote, branch)
                return branch
            except RuntimeError as e:
                logger.debug("Pulling %s/%s failed: %s", remote, branch, e)
                errors.append(str(e))
        raise RuntimeError("; ".join(errors) or "no branches to pull")

    def sync(self, stash_changes: bool = False) -> SyncResult:
        """Bring the work tree up to date before a deployment.

        A tree that is not a Git repository, or a pull that fails, is not
        fatal: whatever is on disk can still be deployed.

        Args:
            stash_changes: Stash uncommitted changes before pulling. The
                caller decides this, typically by asking the user.
        """
        if not self.exists():
            logger.warning("%s is not a git repository, skipping git update", self.path)
            return SyncResult.NOT_A_REPOSITORY

        if self.has_changes():
            if stash_changes:
                self.stash()
            else:
                logger.info("Continuing without stashing changes")

        try:
            branch = self.pull()
        except RuntimeError as e:
            logger.warning("Failed to update repository: %s", e)
            return SyncResult.PULL_FAILED

        logger.info("Repository updated from origin/%s", branch)
        return SyncResult.UPDATED
