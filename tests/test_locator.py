"""Tests for config location in the source tree."""

from pathlib import Path

from conftest import write

from dotdeploy.core.locator import ConfigLocator, locate
from dotdeploy.core.models import ConfigCatalogEntry


def test_locate_nested_layout(source_root: Path, zshrc_entry: ConfigCatalogEntry) -> None:
    """Test that a config is found at its only existing candidate."""
    write(source_root / "configs" / "zsh" / "zshrc", "new")
    [resolved] = locate(source_root, [zshrc_entry])
    assert resolved.source_path == source_root / "configs" / "zsh" / "zshrc"
    assert resolved.destination_path == zshrc_entry.destination_path
    assert resolved.found


def test_locate_prefers_earlier_candidate(
    source_root: Path, zshrc_entry: ConfigCatalogEntry
) -> None:
    """Test that the first listed candidate wins when several exist."""
    write(source_root / "configs" / "zsh" / "zshrc", "nested")
    write(source_root / "configs" / "zshrc", "plural")
    write(source_root / "zshrc", "flat")

    locator = ConfigLocator()
    for _ in range(3):
        [resolved] = locator.locate(source_root, [zshrc_entry])
        assert resolved.source_path == source_root / "zshrc"


def test_locate_priority_independent_of_creation_order(
    source_root: Path, home: Path
) -> None:
    """Test that priority follows the catalog, not the directory listing."""
    entry = ConfigCatalogEntry(
        "gitconfig", ("configs/git/gitconfig", "gitconfig"), home / ".gitconfig"
    )
    write(source_root / "gitconfig", "flat")
    write(source_root / "configs" / "git" / "gitconfig", "nested")

    [resolved] = locate(source_root, [entry])
    assert resolved.source_path == source_root / "configs" / "git" / "gitconfig"


def test_locate_missing(source_root: Path, tmux_entry: ConfigCatalogEntry) -> None:
    """Test that a config without any candidate on disk resolves to None."""
    write(source_root / "configs" / "zshrc", "unrelated")
    [resolved] = locate(source_root, [tmux_entry])
    assert resolved.source_path is None
    assert not resolved.found


def test_locate_kind_mismatch_is_not_a_match(
    source_root: Path, zshrc_entry: ConfigCatalogEntry, nvim_entry: ConfigCatalogEntry
) -> None:
    """Test that a directory never satisfies a file entry and vice versa."""
    (source_root / "zshrc").mkdir()
    write(source_root / "configs" / "zshrc", "file")
    write(source_root / "configs" / "nvim", "not a directory")
    (source_root / "nvim").mkdir()

    zshrc, nvim = locate(source_root, [zshrc_entry, nvim_entry])
    assert zshrc.source_path == source_root / "configs" / "zshrc"
    assert nvim.source_path == source_root / "nvim"
    assert nvim.is_directory


def test_locate_preserves_catalog_order(
    source_root: Path,
    zshrc_entry: ConfigCatalogEntry,
    tmux_entry: ConfigCatalogEntry,
    nvim_entry: ConfigCatalogEntry,
) -> None:
    """Test one result per entry in catalog order."""
    resolved = locate(source_root, [tmux_entry, nvim_entry, zshrc_entry])
    assert [r.logical_name for r in resolved] == ["tmux.conf", "nvim", "zshrc"]


def test_survey_lists_config_like_files(source_root: Path) -> None:
    """Test the hint listing of config-looking files."""
    write(source_root / "starship.toml", "")
    write(source_root / "shell" / "zshrc", "")
    write(source_root / "a" / "b" / "gitconfig", "")
    write(source_root / "a" / "b" / "c" / "deep.toml", "")
    write(source_root / "README.md", "")
    write(source_root / ".git" / "config", "")

    found = ConfigLocator().survey(source_root)
    assert found == [
        source_root / "a" / "b" / "gitconfig",
        source_root / "shell" / "zshrc",
        source_root / "starship.toml",
    ]


def test_survey_limit_and_missing_root(source_root: Path, tmp_path: Path) -> None:
    """Test the survey limit and a missing root."""
    for i in range(5):
        write(source_root / f"{i}.toml", "")
    assert len(ConfigLocator().survey(source_root, limit=2)) == 2
    assert ConfigLocator().survey(tmp_path / "missing") == []
