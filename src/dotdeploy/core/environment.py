"""Host environment classification.

The classifier reads a handful of host identification signals (the Python
platform string, ``/etc/os-release`` and the effective uid) and reduces them to
a single immutable :class:`EnvironmentDescriptor`. It never raises: anything it
cannot make sense of degrades to ``unknown`` so a best-effort deployment can
still go ahead.

Example:
    ```python
    from dotdeploy.core.environment import classify

    env = classify()
    print(env.os_family, env.package_manager)
    ```
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .models import EnvironmentDescriptor, OSFamily, PackageManagerId

logger = logging.getLogger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")

# os-release ID -> (family, package manager, vendor variant)
DISTRO_TABLE: Dict[str, Tuple[OSFamily, PackageManagerId, Optional[str]]] = {
    "debian": (OSFamily.DEBIAN, PackageManagerId.APT, None),
    "ubuntu": (OSFamily.DEBIAN, PackageManagerId.APT, None),
    "centos": (OSFamily.RHEL, PackageManagerId.YUM, None),
    "rhel": (OSFamily.RHEL, PackageManagerId.YUM, None),
    "rocky": (OSFamily.RHEL, PackageManagerId.YUM, None),
    "almalinux": (OSFamily.RHEL, PackageManagerId.YUM, None),
    "fedora": (OSFamily.FEDORA, PackageManagerId.DNF, None),
    "sles": (OSFamily.OPENSUSE, PackageManagerId.ZYPPER, None),
    "arch": (OSFamily.ARCH, PackageManagerId.PACMAN, None),
    "manjaro": (OSFamily.ARCH, PackageManagerId.PACMAN, None),
    "cachyos": (OSFamily.ARCH_VARIANT, PackageManagerId.PACMAN, "cachyos"),
    "alpine": (OSFamily.ALPINE, PackageManagerId.APK, None),
}


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse the KEY=value lines of an os-release file.

    Keys are upper-cased, surrounding quotes are stripped, comments and
    malformed lines are ignored.
    """
    data: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        data[key.strip().upper()] = value.strip().strip("\"'")
    return data


def _lookup_distro(distro_id: str) -> Optional[Tuple[OSFamily, PackageManagerId, Optional[str]]]:
    distro_id = distro_id.lower()
    if distro_id in DISTRO_TABLE:
        return DISTRO_TABLE[distro_id]
    if distro_id.startswith("opensuse"):
        return (OSFamily.OPENSUSE, PackageManagerId.ZYPPER, None)
    return None


def _default_euid() -> Optional[int]:
    geteuid = getattr(os, "geteuid", None)
    return geteuid() if geteuid is not None else None


class EnvironmentClassifier:
    """Classifies the host into an :class:`EnvironmentDescriptor`.

    Attributes:
        platform (str): Python platform string, ``sys.platform`` by default.
        os_release_path (Path): Location of the os-release file.
        euid_provider (Callable): Returns the effective uid, or None where the
            host has no notion of one.
    """

    def __init__(
        self,
        platform: Optional[str] = None,
        os_release_path: Path = OS_RELEASE_PATH,
        euid_provider: Callable[[], Optional[int]] = _default_euid,
    ) -> None:
        self.platform = platform if platform is not None else sys.platform
        self.os_release_path = Path(os_release_path)
        self.euid_provider = euid_provider

    def _read_os_release(self) -> Dict[str, str]:
        try:
            return parse_os_release(self.os_release_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cannot read %s: %s", self.os_release_path, e)
            return {}

    def _is_elevated(self) -> bool:
        try:
            return self.euid_provider() == 0
        except OSError:
            return False

    def _classify_linux(self) -> Tuple[OSFamily, PackageManagerId, Optional[str]]:
        release = self._read_os_release()
        distro_id = release.get("ID", "")
        if distro_id:
            match = _lookup_distro(distro_id)
            if match:
                return match

        # Derivatives without their own entry fall back to what they are built on
        for parent in release.get("ID_LIKE", "").split():
            match = _lookup_distro(parent)
            if match:
                family, manager, _ = match
                logger.debug("Classified %s through ID_LIKE=%s", distro_id or "?", parent)
                return family, manager, None

        return OSFamily.UNKNOWN, PackageManagerId.UNKNOWN, None

    def classify(self) -> EnvironmentDescriptor:
        """Classify the host.

        Returns:
            EnvironmentDescriptor: The host description. Unresolvable signals
            yield ``OSFamily.UNKNOWN``/``PackageManagerId.UNKNOWN``.
        """
        if self.platform.startswith("darwin"):
            family, manager, variant = OSFamily.MACOS, PackageManagerId.BREW, None
        else:
            family, manager, variant = self._classify_linux()

        env = EnvironmentDescriptor(
            os_family=family,
            package_manager=manager,
            is_elevated_user=self._is_elevated(),
            vendor_variant=variant,
        )
        if env.is_known:
            logger.info(
                "Detected OS: %s with package manager: %s",
                env.os_family.value,
                env.package_manager.value,
            )
        else:
            logger.warning("Could not determine the operating system; continuing as unknown")
        if env.vendor_variant:
            logger.info("Vendor variant detected: %s", env.vendor_variant)
        if env.is_elevated_user:
            logger.warning("Running as root. Configurations will be deployed for the root user.")
        return env


def classify() -> EnvironmentDescriptor:
    """Classify the current host with the default signal sources."""
    return EnvironmentClassifier().classify()


def describe(env: EnvironmentDescriptor) -> List[Tuple[str, str]]:
    """Label/value pairs for displaying a descriptor."""
    return [
        ("OS family", env.os_family.value),
        ("Package manager", env.package_manager.value),
        ("Elevated user", "yes" if env.is_elevated_user else "no"),
        ("Vendor variant", env.vendor_variant or "-"),
    ]
