"""Installation of resolved configs over their destinations."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console

from .backup import BackupVault
from .errors import BackupFailedError, WriteFailedError
from .models import BackupRecord, DeploymentOutcome, DeploymentStatus, ResolvedConfig

logger = logging.getLogger(__name__)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def _same_path(source: Path, destination: Path) -> bool:
    try:
        return destination.exists() and os.path.samefile(source, destination)
    except OSError:
        return False


class DeploymentExecutor:
    """Deploys resolved configs, one independent entry at a time.

    Each entry is backed up, its destination parent created, and the source
    copied over the destination as a whole. A failing entry is recorded and
    the remaining entries still run.

    Attributes:
        vault (BackupVault): Backup vault shared by every entry of the run.
        console (Optional[Console]): Rich console for per-entry progress lines.
    """

    def __init__(self, vault: BackupVault, console: Optional[Console] = None) -> None:
        self.vault = vault
        self.console = console

    def _print(self, message: str) -> None:
        if self.console is not None:
            self.console.print(message)

    @staticmethod
    def _replace_file(source: Path, destination: Path) -> None:
        """Copy ``source`` next to ``destination`` and move it into place."""
        fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.", dir=destination.parent)
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            shutil.copy2(source, tmp_path)
            if destination.is_dir() and not destination.is_symlink():
                shutil.rmtree(destination)
            os.replace(tmp_path, destination)
        except BaseException:
            _remove(tmp_path)
            raise

    @staticmethod
    def _replace_directory(source: Path, destination: Path) -> None:
        """Copy ``source`` to a sibling tree, then swap it in for ``destination``."""
        staging = Path(tempfile.mkdtemp(prefix=f".{destination.name}.", dir=destination.parent))
        tree = staging / destination.name
        try:
            shutil.copytree(source, tree, symlinks=True)
            _remove(destination)
            os.replace(tree, destination)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    def install(self, config: ResolvedConfig) -> BackupRecord:
        """Back up and replace the destination of one found config.

        Raises:
            BackupFailedError: If the destination could not be backed up; the
                destination has not been modified.
            WriteFailedError: If the destination could not be written.
        """
        if config.source_path is None:
            raise ValueError(f"{config.logical_name} has no source to install")
        source = config.source_path
        destination = config.destination_path

        if _same_path(source, destination):
            raise WriteFailedError(destination, "source and destination are the same path")

        record = self.vault.backup(destination)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            if config.is_directory:
                self._replace_directory(source, destination)
            else:
                self._replace_file(source, destination)
        except OSError as e:
            raise WriteFailedError(destination, str(e), e) from e

        return record

    def deploy_one(self, config: ResolvedConfig) -> DeploymentOutcome:
        """Deploy a single resolved config and return its outcome."""
        if config.source_path is None:
            logger.warning("%s configuration not found", config.logical_name)
            self._print(f"[yellow]Not found: {config.logical_name}")
            return DeploymentOutcome(
                logical_name=config.logical_name,
                status=DeploymentStatus.SOURCE_MISSING,
                destination_path=config.destination_path,
            )

        try:
            record = self.install(config)
        except BackupFailedError as e:
            logger.error("%s not installed, backup failed: %s", config.logical_name, e.reason)
            self._print(f"[red]Backup failed, left untouched: {config.destination_path}")
            return DeploymentOutcome(
                logical_name=config.logical_name,
                status=DeploymentStatus.WRITE_FAILED,
                error_detail=str(e),
                source_path=config.source_path,
                destination_path=config.destination_path,
            )
        except WriteFailedError as e:
            logger.error("%s not installed: %s", config.logical_name, e.reason)
            self._print(f"[red]Error installing {config.destination_path}: {e.reason}")
            return DeploymentOutcome(
                logical_name=config.logical_name,
                status=DeploymentStatus.WRITE_FAILED,
                error_detail=str(e),
                source_path=config.source_path,
                destination_path=config.destination_path,
            )
        except OSError as e:
            logger.error("%s not installed: %s", config.logical_name, e)
            self._print(f"[red]Error installing {config.destination_path}: {e}")
            return DeploymentOutcome(
                logical_name=config.logical_name,
                status=DeploymentStatus.WRITE_FAILED,
                error_detail=str(WriteFailedError(config.destination_path, str(e), e)),
                source_path=config.source_path,
                destination_path=config.destination_path,
            )

        logger.info("%s configuration updated", config.logical_name)
        self._print(f"[green]Installed: {config.source_path} -> {config.destination_path}")
        return DeploymentOutcome(
            logical_name=config.logical_name,
            status=DeploymentStatus.INSTALLED,
            backup=record,
            source_path=config.source_path,
            destination_path=config.destination_path,
        )

    def deploy(self, resolved: Sequence[ResolvedConfig]) -> List[DeploymentOutcome]:
        """Deploy every resolved config, one outcome per entry in input order."""
        return [self.deploy_one(config) for config in resolved]
