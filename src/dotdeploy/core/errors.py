"""Exceptions raised by the deployment engine."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class DotDeployError(Exception):
    """Base class for all dotdeploy errors."""


class ConfigError(DotDeployError):
    """Raised when a configuration file or structure is invalid."""


class SourceRootMissingError(DotDeployError):
    """Raised when the source tree root does not exist.

    No catalog entry can resolve without a source root, so this stops the
    whole run before any destination is touched.
    """

    def __init__(self, source_root: Path) -> None:
        self.source_root = source_root
        super().__init__(f"Source directory {source_root} does not exist")


class BackupFailedError(DotDeployError):
    """Raised when a destination could not be copied into the backup directory."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Backup of {path} failed: {reason}")


class WriteFailedError(DotDeployError):
    """Raised when a source could not be written over its destination."""

    def __init__(self, path: Path, reason: str, cause: Optional[BaseException] = None) -> None:
        self.path = path
        self.reason = reason
        self.cause = cause
        super().__init__(f"Writing {path} failed: {reason}")
