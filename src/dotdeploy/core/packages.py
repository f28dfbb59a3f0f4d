"""Native package manager commands.

This is the thin adapter around the host's package manager. The deployment
engine never calls it; the CLI uses it to install missing tools and to upgrade
the system on request.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Callable, Dict, List, Optional, Sequence

from .models import EnvironmentDescriptor, PackageManagerId

logger = logging.getLogger(__name__)

INSTALL_COMMANDS: Dict[PackageManagerId, List[str]] = {
    PackageManagerId.BREW: ["brew", "install"],
    PackageManagerId.APT: ["apt", "install", "-y"],
    PackageManagerId.YUM: ["yum", "install", "-y"],
    PackageManagerId.DNF: ["dnf", "install", "-y"],
    PackageManagerId.PACMAN: ["pacman", "-S", "--noconfirm"],
    PackageManagerId.APK: ["apk", "add"],
    PackageManagerId.ZYPPER: ["zypper", "install", "-y"],
}

REFRESH_COMMANDS: Dict[PackageManagerId, List[str]] = {
    PackageManagerId.BREW: ["brew", "update"],
    PackageManagerId.APT: ["apt", "update"],
    PackageManagerId.YUM: ["yum", "makecache"],
    PackageManagerId.DNF: ["dnf", "makecache"],
    PackageManagerId.PACMAN: ["pacman", "-Sy"],
    PackageManagerId.APK: ["apk", "update"],
    PackageManagerId.ZYPPER: ["zypper", "refresh"],
}

UPGRADE_COMMANDS: Dict[PackageManagerId, List[str]] = {
    PackageManagerId.BREW: ["brew", "upgrade"],
    PackageManagerId.APT: ["apt", "upgrade", "-y"],
    PackageManagerId.YUM: ["yum", "update", "-y"],
    PackageManagerId.DNF: ["dnf", "update", "-y"],
    PackageManagerId.PACMAN: ["pacman", "-Su", "--noconfirm"],
    PackageManagerId.APK: ["apk", "upgrade"],
    PackageManagerId.ZYPPER: ["zypper", "update", "-y"],
}

# Refreshed before anything else on CachyOS so signatures of its repos verify
CACHYOS_KEYRING = ["pacman", "-Sy", "cachyos-keyring", "--noconfirm"]

Runner = Callable[[List[str]], None]


def _run(command: List[str]) -> None:
    try:
        subprocess.run(command, check=True)
    except FileNotFoundError as e:
        raise RuntimeError(f"Command not available: {command[0]}") from e
    except subprocess.CalledProcessError as e:
        raise RuntimeError(f"Command failed ({e.returncode}): {' '.join(command)}") from e


class PackageManager:
    """Installs and upgrades tools with the host's package manager.

    Attributes:
        environment (EnvironmentDescriptor): Host the commands are built for.
        runner (Runner): Executes a command line; raises RuntimeError on failure.
        which (Callable): Looks a tool up on ``PATH``.
    """

    def __init__(
        self,
        environment: EnvironmentDescriptor,
        runner: Runner = _run,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.environment = environment
        self.runner = runner
        self.which = which

    @property
    def supported(self) -> bool:
        return self.environment.package_manager in INSTALL_COMMANDS

    def _privileged(self, command: List[str]) -> List[str]:
        # Homebrew refuses to run as root; root needs no sudo
        if self.environment.package_manager is PackageManagerId.BREW:
            return list(command)
        if self.environment.is_elevated_user:
            return list(command)
        return ["sudo", *command]

    def is_installed(self, tool: str) -> bool:
        return self.which(tool) is not None

    def missing(self, tools: Sequence[str]) -> List[str]:
        return [tool for tool in tools if not self.is_installed(tool)]

    def install_commands(self, tools: Sequence[str]) -> List[List[str]]:
        """Command lines that install ``tools``; empty when nothing is needed."""
        if not tools or not self.supported:
            return []
        manager = self.environment.package_manager
        return [
            self._privileged(REFRESH_COMMANDS[manager]),
            self._privileged(INSTALL_COMMANDS[manager] + list(tools)),
        ]

    def upgrade_commands(self) -> List[List[str]]:
        """Command lines that upgrade every installed package."""
        if not self.supported:
            return []
        manager = self.environment.package_manager
        commands = []
        if self.environment.vendor_variant == "cachyos":
            commands.append(self._privileged(CACHYOS_KEYRING))
        commands.append(self._privileged(REFRESH_COMMANDS[manager]))
        commands.append(self._privileged(UPGRADE_COMMANDS[manager]))
        return commands

    def _execute(self, commands: List[List[str]], dry_run: bool) -> List[List[str]]:
        for command in commands:
            if dry_run:
                logger.info("Would run: %s", " ".join(command))
                continue
            logger.info("Running: %s", " ".join(command))
            self.runner(command)
        return commands

    def install(self, tools: Sequence[str], dry_run: bool = False) -> List[str]:
        """Install whichever of ``tools`` are not already on ``PATH``.

        Returns:
            List[str]: The tools that were (or, in a dry run, would be) installed.

        Raises:
            RuntimeError: If the package manager is unknown or a command fails.
        """
        missing = self.missing(tools)
        if not missing:
            logger.info("All tools already installed")
            return []
        if not self.supported:
            raise RuntimeError(
                "Unknown package manager, install manually: " + ", ".join(missing)
            )
        self._execute(self.install_commands(missing), dry_run)
        return missing

    def upgrade(self, dry_run: bool = False) -> List[List[str]]:
        """Upgrade the system packages.

        Raises:
            RuntimeError: If the package manager is unknown or a command fails.
        """
        if not self.supported:
            raise RuntimeError("Unknown OS, skipping system package updates")
        return self._execute(self.upgrade_commands(), dry_run)
