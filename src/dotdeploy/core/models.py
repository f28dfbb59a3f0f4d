"""Data model shared by the deployment engine components.

All of these values are created and discarded within a single deployment run.
Nothing here is persisted; the only durable state a run leaves behind is the
backup directory and the deployed destinations themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Optional, Tuple


class OSFamily(str, Enum):
    """Operating system families the classifier can recognise."""

    MACOS = "macos"
    DEBIAN = "debian"
    RHEL = "rhel"
    FEDORA = "fedora"
    ARCH = "arch"
    ARCH_VARIANT = "arch_variant"
    ALPINE = "alpine"
    OPENSUSE = "opensuse"
    UNKNOWN = "unknown"


class PackageManagerId(str, Enum):
    """Native package managers, one per supported OS family."""

    BREW = "brew"
    APT = "apt"
    YUM = "yum"
    DNF = "dnf"
    PACMAN = "pacman"
    APK = "apk"
    ZYPPER = "zypper"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class EnvironmentDescriptor:
    """Immutable description of the host, computed once per run.

    Attributes:
        os_family: Detected operating system family.
        package_manager: Native package manager for that family.
        is_elevated_user: True when running with an effective uid of 0.
        vendor_variant: Vendor-specific flavour of the family (e.g. ``cachyos``).
    """

    os_family: OSFamily = OSFamily.UNKNOWN
    package_manager: PackageManagerId = PackageManagerId.UNKNOWN
    is_elevated_user: bool = False
    vendor_variant: Optional[str] = None

    @property
    def is_known(self) -> bool:
        return (
            self.os_family is not OSFamily.UNKNOWN
            and self.package_manager is not PackageManagerId.UNKNOWN
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "os_family": self.os_family.value,
            "package_manager": self.package_manager.value,
            "is_elevated_user": self.is_elevated_user,
            "vendor_variant": self.vendor_variant,
        }


@dataclass(frozen=True)
class ConfigCatalogEntry:
    """Search policy for one logical config.

    ``candidate_relative_paths`` is tried in order against the source root, so
    it must list the most specific layout first (``configs/zsh/zshrc`` before
    a bare ``zshrc``).
    """

    logical_name: str
    candidate_relative_paths: Tuple[str, ...]
    destination_path: Path
    is_directory: bool = False
    display_name: str = ""

    def __post_init__(self) -> None:
        if not self.logical_name:
            raise ValueError("Catalog entry must have a logical name")
        candidates = tuple(self.candidate_relative_paths)
        if not candidates:
            raise ValueError(f"Catalog entry {self.logical_name} must have candidate paths")
        for candidate in candidates:
            pure = PurePosixPath(candidate)
            if not candidate or pure.is_absolute() or ".." in pure.parts:
                raise ValueError(
                    f"Candidate path {candidate!r} for {self.logical_name} "
                    "must be relative to the source root"
                )
        destination = Path(self.destination_path)
        if not destination.is_absolute():
            raise ValueError(
                f"Destination {destination} for {self.logical_name} must be an absolute path"
            )
        # Frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "candidate_relative_paths", candidates)
        object.__setattr__(self, "destination_path", destination)
        if not self.display_name:
            object.__setattr__(self, "display_name", self.logical_name)


@dataclass(frozen=True)
class ResolvedConfig:
    """A catalog entry paired with the source the locator picked for it."""

    logical_name: str
    source_path: Optional[Path]
    destination_path: Path
    is_directory: bool = False

    @property
    def found(self) -> bool:
        return self.source_path is not None


@dataclass(frozen=True)
class BackupRecord:
    """What the backup vault did for one destination.

    ``created`` is False when the destination did not exist, which is the
    normal case for a first-time install and not an error.
    """

    original_path: Path
    backup_directory: Optional[Path]
    timestamp: datetime
    created: bool
    backup_path: Optional[Path] = None


class DeploymentStatus(str, Enum):
    """Terminal state of one catalog entry for a run."""

    INSTALLED = "installed"
    SOURCE_MISSING = "source_missing"
    WRITE_FAILED = "write_failed"


@dataclass(frozen=True)
class DeploymentOutcome:
    """Per-entry result produced by the deployment executor."""

    logical_name: str
    status: DeploymentStatus
    backup: Optional[BackupRecord] = None
    error_detail: Optional[str] = None
    source_path: Optional[Path] = field(default=None, compare=False)
    destination_path: Optional[Path] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        backup_path = None
        if self.backup is not None and self.backup.created:
            backup_path = str(self.backup.backup_path)
        return {
            "logical_name": self.logical_name,
            "status": self.status.value,
            "error_detail": self.error_detail,
            "source_path": str(self.source_path) if self.source_path else None,
            "destination_path": str(self.destination_path) if self.destination_path else None,
            "backup_path": backup_path,
        }
