"""Resolution of logical configs to concrete paths in the source tree.

The source tree's layout has drifted over time (``config/`` vs ``configs/``,
flat vs per-tool subdirectories), so each catalog entry carries an ordered list
of candidate locations and the first one that exists with the right kind wins.
Only direct existence tests are used, never a directory listing, so the result
for an unchanged tree is always the same.
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .models import ConfigCatalogEntry, ResolvedConfig

logger = logging.getLogger(__name__)

# Names the survey reports as "looks like a config file"
SURVEY_PATTERNS = ["*.toml", "*rc", "*config*"]
SURVEY_SKIP_DIRS = {".git", "node_modules", "__pycache__"}


class ConfigLocator:
    """Finds the source path of each catalog entry under a source root."""

    @staticmethod
    def _matches(path: Path, is_directory: bool) -> bool:
        # A directory where a file is expected (or the reverse) is a non-match
        if is_directory:
            return path.is_dir()
        return path.is_file()

    def resolve(self, source_root: Path, entry: ConfigCatalogEntry) -> ResolvedConfig:
        """Resolve a single catalog entry.

        Args:
            source_root: Root of the source tree.
            entry: Catalog entry whose candidates are tried in order.

        Returns:
            ResolvedConfig: ``source_path`` is the first matching candidate, or
            None when no candidate exists with the expected kind.
        """
        source_path: Optional[Path] = None
        for candidate in entry.candidate_relative_paths:
            path = source_root / candidate
            if self._matches(path, entry.is_directory):
                source_path = path
                break

        if source_path is not None:
            logger.info("Found %s at: %s", entry.logical_name, source_path)
        else:
            logger.warning("%s not found in %s", entry.logical_name, source_root)

        return ResolvedConfig(
            logical_name=entry.logical_name,
            source_path=source_path,
            destination_path=entry.destination_path,
            is_directory=entry.is_directory,
        )

    def locate(
        self, source_root: Path, catalog: Sequence[ConfigCatalogEntry]
    ) -> List[ResolvedConfig]:
        """Resolve every catalog entry, preserving catalog order."""
        source_root = Path(source_root)
        logger.debug("Scanning %s for %d configuration(s)", source_root, len(catalog))
        return [self.resolve(source_root, entry) for entry in catalog]

    def survey(
        self,
        source_root: Path,
        max_depth: int = 3,
        patterns: Iterable[str] = SURVEY_PATTERNS,
        limit: Optional[int] = 10,
    ) -> List[Path]:
        """List files in the source tree that look like configuration files.

        Used as a hint when nothing could be resolved, so the user can see
        where their configs actually live.

        Args:
            source_root: Root of the source tree.
            max_depth: How many directory levels below the root to descend.
            patterns: fnmatch patterns a file name must match.
            limit: Maximum number of paths returned, None for all.

        Returns:
            List[Path]: Matching files, sorted.
        """
        source_root = Path(source_root)
        patterns = list(patterns)
        found: List[Path] = []
        if not source_root.is_dir():
            return found

        pending = [(source_root, 1)]
        while pending:
            directory, depth = pending.pop()
            try:
                children = sorted(directory.iterdir())
            except OSError as e:
                logger.debug("Cannot list %s: %s", directory, e)
                continue
            for child in children:
                if child.is_dir() and not child.is_symlink():
                    if depth < max_depth and child.name not in SURVEY_SKIP_DIRS:
                        pending.append((child, depth + 1))
                elif child.is_file() and any(fnmatch.fnmatch(child.name, p) for p in patterns):
                    found.append(child)

        found.sort()
        return found[:limit] if limit is not None else found


def locate(source_root: Path, catalog: Sequence[ConfigCatalogEntry]) -> List[ResolvedConfig]:
    """Resolve ``catalog`` against ``source_root`` with a default locator."""
    return ConfigLocator().locate(source_root, catalog)
