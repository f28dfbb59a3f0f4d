"""Tests for synchronising the source tree with git."""

import shutil
import subprocess
from pathlib import Path

import pytest

from dotdeploy.core.repository import GitRepository, SyncResult

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(path: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=path, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give commits and stashes an author without touching global config."""
    for prefix in ("GIT_AUTHOR", "GIT_COMMITTER"):
        monkeypatch.setenv(f"{prefix}_NAME", "Test User")
        monkeypatch.setenv(f"{prefix}_EMAIL", "test@example.com")


@pytest.fixture
def upstream(tmp_path: Path) -> Path:
    """Create an upstream dotfiles repository on branch main."""
    repo_path = tmp_path / "upstream"
    repo_path.mkdir()
    git(repo_path, "init")
    git(repo_path, "symbolic-ref", "HEAD", "refs/heads/main")
    (repo_path / "zshrc").write_text("export EDITOR=vim\n")
    git(repo_path, "add", "zshrc")
    git(repo_path, "commit", "-m", "Initial commit")
    return repo_path


@pytest.fixture
def clone(upstream: Path, tmp_path: Path) -> Path:
    """Clone the upstream repository as the local dotfiles checkout."""
    clone_path = tmp_path / "dotfiles"
    subprocess.run(
        ["git", "clone", str(upstream), str(clone_path)], check=True, capture_output=True
    )
    return clone_path


def commit_upstream(upstream: Path, name: str, content: str) -> None:
    (upstream / name).write_text(content)
    git(upstream, "add", name)
    git(upstream, "commit", "-m", f"Add {name}")


def test_git_repository(clone: Path) -> None:
    """Test GitRepository basics."""
    repo = GitRepository(clone)

    assert repo.exists()
    assert repo.name == "dotfiles"
    assert repo.get_current_branch() == "main"
    assert not repo.has_changes()

    (clone / "zshrc").write_text("export EDITOR=nvim\n")
    assert repo.has_changes()


def test_not_a_repository(tmp_path: Path) -> None:
    """Test that a plain directory is left alone."""
    plain = tmp_path / "plain"
    plain.mkdir()
    repo = GitRepository(plain)

    assert not repo.exists()
    assert repo.sync() is SyncResult.NOT_A_REPOSITORY
    assert not GitRepository(tmp_path / "missing").exists()


def test_sync_pulls_new_files(upstream: Path, clone: Path) -> None:
    """Test that sync brings in upstream commits."""
    commit_upstream(upstream, "tmux.conf", "set -g mouse on\n")

    assert GitRepository(clone).sync() is SyncResult.UPDATED
    assert (clone / "tmux.conf").read_text() == "set -g mouse on\n"


def test_sync_stashes_local_changes(upstream: Path, clone: Path) -> None:
    """Test that local changes are stashed when requested."""
    commit_upstream(upstream, "vimrc", "set number\n")
    (clone / "zshrc").write_text("local edit\n")
    repo = GitRepository(clone)

    assert repo.sync(stash_changes=True) is SyncResult.UPDATED
    assert (clone / "zshrc").read_text() == "export EDITOR=vim\n"
    assert (clone / "vimrc").exists()
    assert "Auto-stash before update" in git(clone, "stash", "list")


def test_sync_without_remote_fails_softly(upstream: Path) -> None:
    """Test that a failed pull is reported, not raised."""
    assert GitRepository(upstream).sync() is SyncResult.PULL_FAILED


def test_pull_falls_back_to_master(tmp_path: Path, upstream: Path) -> None:
    """Test the fallback from main to master."""
    git(upstream, "branch", "-m", "main", "master")
    clone_path = tmp_path / "legacy"
    subprocess.run(
        ["git", "clone", str(upstream), str(clone_path)], check=True, capture_output=True
    )
    commit_upstream(upstream, "gitconfig", "[core]\n")

    assert GitRepository(clone_path).pull() == "master"
    assert (clone_path / "gitconfig").exists()
