"""Discover check scripts, test scripts and data files under a set of roots.

Every file is assigned exactly one role from its name alone:

* ``*_test.lua``                         -- :attr:`FileRole.TEST`
* ``*.lua`` (any other)                  -- :attr:`FileRole.CHECK`
* ``*.json``, ``*.yaml``, ``*.yml``, ``*.toml`` -- :attr:`FileRole.DATA`

Anything else is ignored.  Matching is case-insensitive.

Typical usage::

    searcher = FileSearcher(include_test_files=False)
    found = searcher.search([Path("rules"), Path("config.yaml")])
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Role classification
# ---------------------------------------------------------------------------

SCRIPT_EXTENSION = ".lua"
TEST_SUFFIX = "_test" + SCRIPT_EXTENSION
DATA_EXTENSIONS: frozenset[str] = frozenset({".json", ".yaml", ".yml", ".toml"})


class FileRole(str, Enum):
    """The part a file plays in a run."""

    CHECK = "CHECK"
    TEST = "TEST"
    DATA = "DATA"


def classify(name: str) -> FileRole | None:
    """Return the role of a file called *name*, or ``None`` if it is ignored.

    The test suffix is tested before the plain script extension, so
    ``pod_test.lua`` is always a test and never a check.
    """
    lowered = name.lower()
    if lowered.endswith(TEST_SUFFIX):
        return FileRole.TEST
    if lowered.endswith(SCRIPT_EXTENSION):
        return FileRole.CHECK
    if os.path.splitext(lowered)[1] in DATA_EXTENSIONS:
        return FileRole.DATA
    return None


class SourceFile(BaseModel):
    """A discovered file and its role."""

    model_config = ConfigDict(frozen=True)

    path: Path
    role: FileRole

    @classmethod
    def from_path(cls, path: Path) -> SourceFile | None:
        """Classify *path* by its file name; ``None`` when it has no role."""
        role = classify(path.name)
        if role is None:
            return None
        return cls(path=path, role=role)


# ---------------------------------------------------------------------------
# Search results and errors
# ---------------------------------------------------------------------------


class FileSearchResult(BaseModel):
    """Files found by :meth:`FileSearcher.search`, grouped by role.

    The lists are in discovery order, which is not deterministic.
    """

    check_files: list[Path] = Field(default_factory=list)
    test_files: list[Path] = Field(default_factory=list)
    data_files: list[Path] = Field(default_factory=list)

    def add(self, source: SourceFile) -> None:
        if source.role is FileRole.CHECK:
            self.check_files.append(source.path)
        elif source.role is FileRole.TEST:
            self.test_files.append(source.path)
        else:
            self.data_files.append(source.path)

    def merge(self, other: FileSearchResult) -> FileSearchResult:
        """Return a new result holding the files of both."""
        return FileSearchResult(
            check_files=[*self.check_files, *other.check_files],
            test_files=[*self.test_files, *other.test_files],
            data_files=[*self.data_files, *other.data_files],
        )


class FileSearchError(Exception):
    """Raised when a search root or a directory below it cannot be read."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to walk directory '{path}': {reason}")


class _DirectoryScan(NamedTuple):
    files: list[SourceFile]
    directories: list[tuple[Path, tuple[int, int]]]


# ---------------------------------------------------------------------------
# Searcher
# ---------------------------------------------------------------------------


class FileSearcher:
    """Concurrent, role-aware file discovery.

    Parameters
    ----------
    include_dotfiles:
        Include files whose name starts with ``.``.
    include_dotdirs:
        Descend into directories whose name starts with ``.``.
    follow_symlinks:
        Follow symbolic links to files and directories.  When off, links
        are skipped entirely.
    include_check_files, include_test_files, include_data_files:
        Which roles to report.
    max_workers:
        Thread pool size used for directory listings.
    """

    def __init__(
        self,
        *,
        include_dotfiles: bool = False,
        include_dotdirs: bool = False,
        follow_symlinks: bool = False,
        include_check_files: bool = True,
        include_test_files: bool = True,
        include_data_files: bool = True,
        max_workers: int | None = None,
    ) -> None:
        self.include_dotfiles = include_dotfiles
        self.include_dotdirs = include_dotdirs
        self.follow_symlinks = follow_symlinks
        self.include_check_files = include_check_files
        self.include_test_files = include_test_files
        self.include_data_files = include_data_files
        self.max_workers = max_workers

    def wants(self, role: FileRole | None) -> bool:
        """Return True if files of *role* should be reported."""
        if role is FileRole.CHECK:
            return self.include_check_files
        if role is FileRole.TEST:
            return self.include_test_files
        if role is FileRole.DATA:
            return self.include_data_files
        return False

    def search(self, roots: Iterable[Path | str]) -> FileSearchResult:
        """Find every wanted file under *roots*.

        A root that is a file is classified directly and is reported even
        if its name starts with ``.``.  Directory roots are walked
        recursively; every directory listing runs as its own task.

        Raises
        ------
        FileSearchError
            If a root does not exist or any directory cannot be listed.
            The first failure aborts the search; nothing is returned.
        """
        result = FileSearchResult()
        directory_roots: list[tuple[Path, tuple[int, int]]] = []

        for root in (Path(r) for r in roots):
            try:
                st = root.stat()
            except OSError as exc:
                raise FileSearchError(root, exc.strerror or str(exc)) from exc
            if root.is_dir():
                directory_roots.append((root, (st.st_dev, st.st_ino)))
            else:
                source = SourceFile.from_path(root)
                if source is not None and self.wants(source.role):
                    result.add(source)

        if directory_roots:
            self._walk(directory_roots, result)

        logger.debug(
            "Search found %d check, %d test and %d data file(s).",
            len(result.check_files),
            len(result.test_files),
            len(result.data_files),
        )
        return result

    def _walk(self, roots: list[tuple[Path, tuple[int, int]]], result: FileSearchResult) -> None:
        # Only this thread touches ``visited`` and ``result``; workers just list.
        visited: set[tuple[int, int]] = set()
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="rulecheck-search")
        pending: set[Future[_DirectoryScan]] = set()
        try:
            for path, key in roots:
                if key not in visited:
                    visited.add(key)
                    pending.add(executor.submit(self._scan_directory, path))

            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    scan = future.result()
                    for source in scan.files:
                        result.add(source)
                    for path, key in scan.directories:
                        if key in visited:
                            logger.debug("Skipping already visited directory '%s'.", path)
                            continue
                        visited.add(key)
                        pending.add(executor.submit(self._scan_directory, path))
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

    def _scan_directory(self, path: Path) -> _DirectoryScan:
        files: list[SourceFile] = []
        directories: list[tuple[Path, tuple[int, int]]] = []
        try:
            with os.scandir(path) as entries:
                for entry in entries:
                    hidden = entry.name.startswith(".")
                    if entry.is_dir(follow_symlinks=self.follow_symlinks):
                        if hidden and not self.include_dotdirs:
                            continue
                        st = entry.stat(follow_symlinks=True)
                        directories.append((Path(entry.path), (st.st_dev, st.st_ino)))
                    elif entry.is_file(follow_symlinks=self.follow_symlinks):
                        if hidden and not self.include_dotfiles:
                            continue
                        role = classify(entry.name)
                        if self.wants(role):
                            files.append(SourceFile(path=Path(entry.path), role=role))
        except OSError as exc:
            raise FileSearchError(path, exc.strerror or str(exc)) from exc
        return _DirectoryScan(files, directories)
