"""
Source file discovery.

Walks a project tree with an extension allow-list and a directory deny-list
(build output, vendored packages, caches). Results are always sorted so the
rest of the pipeline sees a deterministic file order.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import re
from pathlib import Path

from ..config import EXCLUDE_DIRS, SOURCE_EXTENSIONS

logger = logging.getLogger(__name__)

TEST_DIR_NAMES = {"tests", "test", "__tests__", "spec"}
_TEST_FILE_RE = re.compile(
    r"(^test_.*\.py$)|(_test\.py$)|(\.(test|spec)\.[cm]?[jt]sx?$)|(^conftest\.py$)"
)


def is_test_file(path: Path | str) -> bool:
    """Whether a path looks like a test module by name or location."""
    path = Path(path)
    if _TEST_FILE_RE.search(path.name):
        return True
    return any(part in TEST_DIR_NAMES for part in path.parts[:-1])


class FileSearcher:
    """
    Finds source files under a project root.

    Example:
        searcher = FileSearcher(Path("."), include_tests=False)
        for path in searcher.find_source_files():
            ...
    """

    def __init__(
        self,
        root: Path,
        extensions: list[str] | None = None,
        exclude_dirs: list[str] | None = None,
        include_tests: bool = False,
    ):
        self.root = Path(root)
        self.extensions = {e.lower() for e in (extensions or SOURCE_EXTENSIONS)}
        self.exclude_dirs = set(exclude_dirs if exclude_dirs is not None else EXCLUDE_DIRS)
        self.include_tests = include_tests

    def _walk(self) -> list[Path]:
        found: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            # Prune in place so excluded trees are never descended into
            dirnames[:] = sorted(
                d for d in dirnames if d not in self.exclude_dirs and not d.startswith(".")
            )
            for filename in filenames:
                path = Path(dirpath) / filename
                if path.suffix.lower() in self.extensions:
                    found.append(path)
        return sorted(found)

    def relative(self, path: Path) -> str:
        """Project-relative POSIX path used as the canonical file identifier."""
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    def find_source_files(self) -> list[Path]:
        """All matching source files, excluding tests unless include_tests is set."""
        files = self._walk()
        if not self.include_tests:
            files = [f for f in files if not is_test_file(self.relative(f))]
        logger.debug("Found %d source files under %s", len(files), self.root)
        return files

    def find_test_files(self) -> list[Path]:
        """All matching test files."""
        return [f for f in self._walk() if is_test_file(self.relative(f))]

    def search_by_name(self, pattern: str) -> list[Path]:
        """
        Files whose name matches a glob pattern or contains a substring.

        Args:
            pattern: Glob (``*auth*.py``) or plain case-insensitive substring

        Returns:
            Matching paths, sorted
        """
        has_glob = any(ch in pattern for ch in "*?[")
        needle = pattern.lower()
        matches = []
        for path in self._walk():
            name = path.name.lower()
            if has_glob and fnmatch.fnmatch(name, needle):
                matches.append(path)
            elif not has_glob and needle in name:
                matches.append(path)
        return matches
