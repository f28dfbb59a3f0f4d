"""Backups of destination files before they are replaced.

Every run gets exactly one backup directory, named from the instant the run
started (``~/.config-backup-YYYYMMDD_HHMMSS``). The name is computed once when
the vault is created and the directory itself is only created the first time
something actually needs backing up, so a run that touches nothing leaves no
empty directory behind.
"""

from __future__ import annotations

import filecmp
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import BackupFailedError
from .models import BackupRecord

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = ".config-backup-"
DEFAULT_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def _is_dangling(path: Path) -> bool:
    return path.is_symlink() and not path.exists()


def _trees_match(left: Path, right: Path) -> bool:
    """Recursively compare two directory trees by content."""
    comparison = filecmp.dircmp(left, right, ignore=[])
    if comparison.left_only or comparison.right_only or comparison.funny_files:
        return False

    for name in comparison.common_funny:
        # Dangling links in both trees compare by target
        left_item, right_item = left / name, right / name
        if not (left_item.is_symlink() and right_item.is_symlink()):
            return False
        if os.readlink(left_item) != os.readlink(right_item):
            return False

    _, mismatch, errors = filecmp.cmpfiles(
        left, right, comparison.common_files, shallow=False
    )
    if mismatch or errors:
        return False

    return all(_trees_match(left / name, right / name) for name in comparison.common_dirs)


class BackupVault:
    """Preserves existing destinations in the run's backup directory.

    Attributes:
        backup_root (Path): Directory under which run directories are created.
        started_at (datetime): Start of the run, truncated to whole seconds.
        prefix (str): Name prefix of run directories.
        timestamp_format (str): strftime format appended to the prefix.
    """

    def __init__(
        self,
        backup_root: Path,
        started_at: Optional[datetime] = None,
        prefix: str = DEFAULT_PREFIX,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
    ) -> None:
        self.backup_root = Path(backup_root)
        self.started_at = (started_at or datetime.now()).replace(microsecond=0)
        self.prefix = prefix
        self.timestamp_format = timestamp_format
        self.name = f"{prefix}{self.started_at.strftime(timestamp_format)}"
        self._directory: Optional[Path] = None

    @property
    def planned_directory(self) -> Path:
        """Where this run's backups go if nothing else already claimed the name."""
        return self.backup_root / self.name

    @property
    def backup_directory(self) -> Optional[Path]:
        """The run's backup directory, or None while nothing has been backed up."""
        return self._directory

    def _ensure_directory(self) -> Path:
        """Create the run directory once.

        ``mkdir`` without ``exist_ok`` is the create-if-absent primitive: if a
        previous run in the same second already owns the name, a numeric
        suffix is appended instead of sharing its directory.
        """
        if self._directory is not None:
            return self._directory

        self.backup_root.mkdir(parents=True, exist_ok=True)
        candidate = self.planned_directory
        suffix = 0
        while True:
            try:
                candidate.mkdir()
                break
            except FileExistsError:
                suffix += 1
                candidate = self.backup_root / f"{self.name}-{suffix}"

        logger.debug("Created backup directory %s", candidate)
        self._directory = candidate
        return candidate

    @staticmethod
    def _target_for(directory: Path, name: str) -> Path:
        target = directory / name
        counter = 0
        while target.exists() or target.is_symlink():
            counter += 1
            target = directory / f"{name}.{counter}"
        return target

    @staticmethod
    def _copy(source: Path, target: Path) -> None:
        if _is_dangling(source):
            os.symlink(os.readlink(source), target)
        elif source.is_dir():
            shutil.copytree(source, target, symlinks=True)
        else:
            shutil.copy2(source, target)

    @staticmethod
    def _verify(source: Path, target: Path) -> bool:
        if _is_dangling(source):
            return target.is_symlink() and os.readlink(target) == os.readlink(source)
        if source.is_dir():
            return target.is_dir() and _trees_match(source, target)
        return target.is_file() and filecmp.cmp(source, target, shallow=False)

    def backup(self, destination: Path) -> BackupRecord:
        """Back up a destination before it is overwritten.

        Args:
            destination: File or directory about to be replaced.

        Returns:
            BackupRecord: ``created`` is False when there was nothing to back up.

        Raises:
            BackupFailedError: If the copy could not be written or does not
                match the original. The caller must then leave the
                destination alone.
        """
        destination = Path(destination)
        try:
            os.lstat(destination)
        except (FileNotFoundError, NotADirectoryError):
            logger.debug("Nothing to back up at %s", destination)
            return BackupRecord(
                original_path=destination,
                backup_directory=None,
                timestamp=self.started_at,
                created=False,
            )
        except OSError as e:
            # Unsearchable parent, over-long name and the like
            raise BackupFailedError(destination, str(e)) from e

        try:
            directory = self._ensure_directory()
            target = self._target_for(directory, destination.name)
            self._copy(destination, target)
            verified = self._verify(destination, target)
        except OSError as e:
            raise BackupFailedError(destination, str(e)) from e

        if not verified:
            raise BackupFailedError(destination, f"backup copy at {target} does not match")

        logger.info("Backed up %s to %s", destination, target)
        return BackupRecord(
            original_path=destination,
            backup_directory=directory,
            timestamp=self.started_at,
            created=True,
            backup_path=target,
        )

    def list_backups(self) -> List[Path]:
        """List existing run backup directories, newest first."""
        if not self.backup_root.is_dir():
            return []
        backups = [
            path
            for path in self.backup_root.glob(f"{self.prefix}*")
            if path.is_dir() and not path.is_symlink()
        ]
        backups.sort(key=self._sort_key, reverse=True)
        return backups

    def _sort_key(self, path: Path) -> Tuple[str, int, str]:
        """Order run directories by timestamp, then numerically by suffix."""
        stamp = path.name[len(self.prefix):]
        head, sep, tail = stamp.rpartition("-")
        if sep and tail.isdigit() and self._parses(head):
            return head, int(tail), path.name
        return stamp, 0, path.name

    def _parses(self, stamp: str) -> bool:
        try:
            datetime.strptime(stamp, self.timestamp_format)
        except ValueError:
            return False
        return True
