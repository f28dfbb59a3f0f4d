"""Test configuration."""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

import pytest

from dotdeploy.core.backup import BackupVault
from dotdeploy.core.config import Config
from dotdeploy.core.models import (
    ConfigCatalogEntry,
    EnvironmentDescriptor,
    OSFamily,
    PackageManagerId,
)

RUN_STARTED = datetime(2025, 1, 1, 12, 0, 0)


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a fake home directory and point HOME at it."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    """Create an empty dotfiles source tree."""
    root = tmp_path / "dotfiles"
    root.mkdir()
    return root


@pytest.fixture
def env() -> EnvironmentDescriptor:
    """A Debian host descriptor."""
    return EnvironmentDescriptor(
        os_family=OSFamily.DEBIAN, package_manager=PackageManagerId.APT
    )


@pytest.fixture
def vault(home: Path) -> BackupVault:
    """Backup vault rooted in the fake home with a fixed start time."""
    return BackupVault(home, started_at=RUN_STARTED)


@pytest.fixture
def zshrc_entry(home: Path) -> ConfigCatalogEntry:
    """Catalog entry for the shell profile with flat-to-nested candidates."""
    return ConfigCatalogEntry(
        logical_name="zshrc",
        candidate_relative_paths=("zshrc", "configs/zshrc", "configs/zsh/zshrc"),
        destination_path=home / ".zshrc",
    )


@pytest.fixture
def tmux_entry(home: Path) -> ConfigCatalogEntry:
    """Catalog entry for the multiplexer config."""
    return ConfigCatalogEntry(
        logical_name="tmux.conf",
        candidate_relative_paths=("configs/tmux/tmux.conf", "tmux.conf"),
        destination_path=home / ".tmux.conf",
    )


@pytest.fixture
def nvim_entry(home: Path) -> ConfigCatalogEntry:
    """Catalog entry for a directory config."""
    return ConfigCatalogEntry(
        logical_name="nvim",
        candidate_relative_paths=("configs/nvim", "nvim"),
        destination_path=home / ".config" / "nvim",
        is_directory=True,
    )


@pytest.fixture
def test_config(home: Path) -> Config:
    """Configuration with a small three-entry catalog rooted in the fake home."""
    config = Config()
    config.entries.clear()
    config.load_from_dict(
        {
            "backup_root": str(home),
            "catalog": {
                "zshrc": {
                    "candidates": ["zshrc", "configs/zshrc", "configs/zsh/zshrc"],
                    "destination": "~/.zshrc",
                },
                "tmux.conf": {
                    "candidates": ["configs/tmux/tmux.conf", "tmux.conf"],
                    "destination": "~/.tmux.conf",
                },
                "nvim": {
                    "candidates": ["configs/nvim", "nvim"],
                    "destination": "~/.config/nvim",
                    "directory": True,
                },
            },
        }
    )
    return config


def write(path: Path, content: str) -> Path:
    """Write ``content`` to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


# Root bypasses permission bits, so chmod-based failures cannot be simulated
requires_non_root = pytest.mark.skipif(
    hasattr(os, "geteuid") and os.geteuid() == 0,
    reason="permission bits are not enforced for root",
)
