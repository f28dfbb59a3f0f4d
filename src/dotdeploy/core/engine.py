"""One deployment cycle: locate, back up, write, report.

Example:
    ```python
    from dotdeploy.core.config import Config
    from dotdeploy.core.engine import DeploymentEngine
    from dotdeploy.core.environment import classify

    config = Config()
    engine = DeploymentEngine(config, classify())
    report = engine.run(config.source_root_path())
    print(report.installed, "installed")
    ```
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from .backup import BackupVault
from .config import Config
from .deploy import DeploymentExecutor
from .errors import SourceRootMissingError
from .locator import ConfigLocator
from .models import EnvironmentDescriptor, ResolvedConfig
from .report import Report, summarize

logger = logging.getLogger(__name__)


class DeploymentEngine:
    """Runs deployment cycles against a source tree.

    Attributes:
        config (Config): Settings and catalog.
        environment (EnvironmentDescriptor): Host description, used for log
            annotation and the report only.
        vault (BackupVault): The run's backup vault.
        locator (ConfigLocator): Resolves catalog entries to source paths.
        executor (DeploymentExecutor): Installs resolved entries.
    """

    def __init__(
        self,
        config: Config,
        environment: EnvironmentDescriptor,
        vault: Optional[BackupVault] = None,
        console: Optional[Console] = None,
        names: Optional[List[str]] = None,
    ) -> None:
        self.config = config
        self.environment = environment
        self.names = names
        self.vault = vault or BackupVault(
            config.backup_root_path(),
            prefix=config.backup_prefix,
            timestamp_format=config.timestamp_format,
        )
        self.locator = ConfigLocator()
        self.executor = DeploymentExecutor(self.vault, console)

    @staticmethod
    def check_source_root(source_root: Path) -> Path:
        """Return the source root, or raise if there is nothing to deploy from.

        Raises:
            SourceRootMissingError: If ``source_root`` is not an existing directory.
        """
        source_root = Path(source_root).expanduser()
        if not source_root.is_dir():
            logger.error("Dotfiles directory not found at: %s", source_root)
            raise SourceRootMissingError(source_root)
        logger.info("Dotfiles directory found at: %s", source_root)
        return source_root

    def plan(self, source_root: Path) -> List[ResolvedConfig]:
        """Resolve the catalog without writing anything.

        Raises:
            SourceRootMissingError: If the source root does not exist.
        """
        source_root = self.check_source_root(source_root)
        return self.locator.locate(source_root, self.config.catalog(self.names))

    def run(self, source_root: Path) -> Report:
        """Run one full deployment cycle.

        Args:
            source_root: Root of the dotfiles source tree.

        Returns:
            Report: Outcome of every catalog entry.

        Raises:
            SourceRootMissingError: If the source root does not exist. Nothing
                has been written in that case.
        """
        env = self.environment
        logger.info(
            "Deploying on %s/%s%s",
            env.os_family.value,
            env.package_manager.value,
            f" ({env.vendor_variant})" if env.vendor_variant else "",
        )

        resolved = self.plan(source_root)
        outcomes = self.executor.deploy(resolved)
        report = summarize(outcomes, env, self.vault.backup_directory)

        if report.backup_directory:
            logger.info("Backups saved in %s", report.backup_directory)
        if report.installed == 0:
            logger.warning("No configuration files were updated")
        else:
            logger.info("%d configuration file(s) updated", report.installed)
        return report
