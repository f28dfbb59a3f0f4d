"""Tests for full deployment runs."""

from datetime import timedelta
from pathlib import Path

import pytest
from conftest import RUN_STARTED, write

from dotdeploy.core.backup import BackupVault
from dotdeploy.core.config import Config
from dotdeploy.core.engine import DeploymentEngine
from dotdeploy.core.errors import SourceRootMissingError
from dotdeploy.core.models import DeploymentStatus, EnvironmentDescriptor


def make_engine(config: Config, env: EnvironmentDescriptor, home: Path, offset: int = 0):
    vault = BackupVault(home, started_at=RUN_STARTED + timedelta(seconds=offset))
    return DeploymentEngine(config, env, vault=vault)


def snapshot(root: Path) -> dict:
    return {
        str(path.relative_to(root)): path.read_text() if path.is_file() else None
        for path in sorted(root.rglob("*"))
    }


def test_run_missing_source_root_writes_nothing(
    test_config: Config, env: EnvironmentDescriptor, home: Path, tmp_path: Path
) -> None:
    """Test that a missing source tree aborts before any write."""
    write(home / ".zshrc", "old")
    before = snapshot(home)

    with pytest.raises(SourceRootMissingError, match="does not exist"):
        make_engine(test_config, env, home).run(tmp_path / "nowhere")

    assert snapshot(home) == before


def test_run_reports_every_entry(
    test_config: Config, env: EnvironmentDescriptor, home: Path, source_root: Path
) -> None:
    """Test a mixed run with installed and missing entries."""
    write(source_root / "configs" / "zsh" / "zshrc", "new")
    write(source_root / "nvim" / "init.lua", "init")
    write(home / ".zshrc", "old")

    report = make_engine(test_config, env, home).run(source_root)

    assert [o.logical_name for o in report.outcomes] == ["zshrc", "tmux.conf", "nvim"]
    assert report.installed == 2
    assert report.missing == 1
    assert report.failed == 0
    assert report.exit_code == 0
    assert report.environment is env
    assert report.backup_directory == home / ".config-backup-20250101_120000"
    assert (report.backup_directory / ".zshrc").read_text() == "old"


def test_run_only_selected_entries(
    test_config: Config, env: EnvironmentDescriptor, home: Path, source_root: Path
) -> None:
    """Test restricting a run to a subset of the catalog."""
    write(source_root / "zshrc", "new")
    write(source_root / "tmux.conf", "set -g mouse on")

    engine = make_engine(test_config, env, home)
    engine.names = ["tmux.conf"]
    report = engine.run(source_root)

    assert [o.logical_name for o in report.outcomes] == ["tmux.conf"]
    assert not (home / ".zshrc").exists()


def test_run_without_changes_creates_no_backup_directory(
    test_config: Config, env: EnvironmentDescriptor, home: Path, source_root: Path
) -> None:
    """Test that nothing to back up means no backup directory."""
    write(source_root / "zshrc", "new")

    report = make_engine(test_config, env, home).run(source_root)

    assert report.installed == 1
    assert report.backup_directory is None
    assert BackupVault(home).list_backups() == []


def test_run_twice_is_idempotent(
    test_config: Config, env: EnvironmentDescriptor, home: Path, source_root: Path
) -> None:
    """Test that a second run leaves the same state and backs up the first run's result."""
    write(source_root / "zshrc", "new")
    write(source_root / "configs" / "nvim" / "init.lua", "init")
    write(home / ".zshrc", "old")

    first = make_engine(test_config, env, home).run(source_root)
    after_first = {
        ".zshrc": (home / ".zshrc").read_text(),
        "init.lua": (home / ".config" / "nvim" / "init.lua").read_text(),
    }
    second = make_engine(test_config, env, home, offset=1).run(source_root)

    assert [o.status for o in first.outcomes] == [o.status for o in second.outcomes]
    assert (home / ".zshrc").read_text() == after_first[".zshrc"] == "new"
    assert (home / ".config" / "nvim" / "init.lua").read_text() == after_first["init.lua"]
    assert second.backup_directory != first.backup_directory
    assert (second.backup_directory / ".zshrc").read_text() == "new"
    assert (second.backup_directory / "nvim" / "init.lua").read_text() == "init"


def test_run_all_failed_exit_code(
    env: EnvironmentDescriptor, home: Path, source_root: Path
) -> None:
    """Test that a run where every entry failed reports exit code 1."""
    write(source_root / "zshrc", "new")
    write(home / "blocked", "file in the way")
    config = Config()
    config.entries.clear()
    config.load_from_dict(
        {
            "catalog": {
                "zshrc": {
                    "candidates": ["zshrc"],
                    "destination": str(home / "blocked" / ".zshrc"),
                }
            }
        }
    )

    report = make_engine(config, env, home).run(source_root)

    assert report.failed == 1
    assert report.failures[0].status is DeploymentStatus.WRITE_FAILED
    assert report.exit_code == 1


def test_plan_writes_nothing(
    test_config: Config, env: EnvironmentDescriptor, home: Path, source_root: Path
) -> None:
    """Test that planning only resolves sources."""
    write(source_root / "zshrc", "new")
    write(home / ".zshrc", "old")
    before = snapshot(home)

    resolved = make_engine(test_config, env, home).plan(source_root)

    assert [r.found for r in resolved] == [True, False, False]
    assert snapshot(home) == before


def test_engine_default_vault_follows_config(
    test_config: Config, env: EnvironmentDescriptor, home: Path
) -> None:
    """Test that the vault is built from the configured backup settings."""
    test_config.load_from_dict({"backup_prefix": ".dotdeploy-"})
    engine = DeploymentEngine(test_config, env)
    assert engine.vault.backup_root == home
    assert engine.vault.name.startswith(".dotdeploy-")
