"""Check Engine -- orchestrates a ``check`` run.

The :class:`CheckEngine` finds check scripts and data files, probes the
scripts for a ``Check`` function, evaluates every data file in parallel
and aggregates the findings into a :class:`CheckSummary`.

Within one data file, checks run one after another against that file's
documents.  Each (document, check) pair runs in its own Lua runtime, so
no interpreter is ever shared between threads.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from pathlib import Path

from rule_engine.checks.invoker import CheckExecutionError, has_check_function, invoke_check
from rule_engine.checks.models import CheckReport, CheckSummary, DataFileReport, Timer
from rule_engine.files import FileSearcher
from rule_engine.loader import DocumentLoadError, UnsupportedFormatError, load_documents
from rule_engine.parallel import parallel_map
from rule_engine.sandbox import ScriptError, ScriptSource

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigurationError(Exception):
    """Raised when a run cannot start because its inputs are unusable."""


class NoChecksFoundError(ConfigurationError):
    """Raised when no check scripts were found."""


class NoDataFilesError(ConfigurationError):
    """Raised when no data files were found."""


class CheckRunError(Exception):
    """Raised when evaluating a data file fails; wraps the underlying cause."""

    def __init__(self, data_file: Path, message: str) -> None:
        self.data_file = data_file
        super().__init__(f"{message}: {data_file}")


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class CheckEngine:
    """Runs discovered Lua checks against discovered data files.

    Parameters
    ----------
    searcher:
        File searcher to use.  Searches run on a copy that reports only
        check scripts and data files, so *searcher* itself is not changed.
        When ``None``, a searcher with default settings is created.
    max_workers:
        Thread pool size for per-file evaluation.
    """

    def __init__(self, searcher: FileSearcher | None = None, *, max_workers: int | None = None) -> None:
        self._searcher = searcher or FileSearcher(max_workers=max_workers)
        self._max_workers = max_workers

    def discover(self, paths: Iterable[Path | str]) -> tuple[list[ScriptSource], list[Path]]:
        """Return the check scripts and data files found under *paths*.

        Scripts without a ``Check`` function are left out.  Both lists are
        sorted by path.

        Raises
        ------
        FileSearchError
            If a path cannot be walked.
        CheckRunError
            If a candidate script cannot be read or loaded.
        """
        searcher = copy.copy(self._searcher)
        searcher.include_check_files = True
        searcher.include_data_files = True
        searcher.include_test_files = False
        found = searcher.search(paths)

        candidates = sorted(found.check_files, key=str)
        probes = parallel_map(self._probe, candidates, max_workers=self._max_workers)
        checks = [source for source in probes if source is not None]

        skipped = len(candidates) - len(checks)
        if skipped:
            logger.info("Ignored %d Lua file(s) without a Check function.", skipped)

        return checks, sorted(found.data_files, key=str)

    def run(self, paths: Iterable[Path | str]) -> CheckSummary:
        """Check every data file under *paths* with every check under *paths*.

        Raises
        ------
        NoChecksFoundError
            If no check scripts were found.
        NoDataFilesError
            If no data files were found.
        FileSearchError, CheckRunError
            On the first fatal error; remaining work is abandoned.
        """
        timer = Timer()
        timer.start()

        checks, data_files = self.discover(paths)
        if not checks:
            raise NoChecksFoundError("no check files found to run")
        if not data_files:
            raise NoDataFilesError("no data files found to check")

        logger.info("Running %d check(s) against %d data file(s).", len(checks), len(data_files))

        reports = parallel_map(
            lambda data_file: self.check_file(data_file, checks),
            data_files,
            max_workers=self._max_workers,
        )

        summary = CheckSummary.from_reports(
            reports,
            check_files=[c.path for c in checks],
            data_file_count=len(data_files),
            duration_ms=timer.elapsed_ms(),
        )
        self._log_summary(summary)
        return summary

    def check_file(self, data_file: Path, checks: list[ScriptSource]) -> DataFileReport:
        """Apply *checks* in order to every document of *data_file*.

        Documents are parsed once and reused for every check.
        """
        try:
            documents = load_documents(data_file)
        except (DocumentLoadError, UnsupportedFormatError) as exc:
            raise CheckRunError(data_file, "checking data file") from exc

        report = DataFileReport(data_file=data_file, document_count=len(documents))
        for check in checks:
            try:
                findings = invoke_check(check, documents, data_file)
            except CheckExecutionError as exc:
                raise CheckRunError(data_file, "checking data file") from exc
            if findings:
                report.checks.append(CheckReport(check_file=check.path, findings=findings))
        return report

    @staticmethod
    def _probe(path: Path) -> ScriptSource | None:
        try:
            source = ScriptSource.read(path)
            return source if has_check_function(source) else None
        except ScriptError as exc:
            raise CheckRunError(path, "checking Lua file for Check function") from exc

    @staticmethod
    def _log_summary(summary: CheckSummary) -> None:
        for report in summary.reports:
            for check in report.checks:
                extra = {"data_file": str(report.data_file), "check_file": str(check.check_file)}
                if check.errors:
                    logger.error(
                        "%d error(s) found by check",
                        len(check.errors),
                        extra={**extra, "count": len(check.errors), "severity": "error"},
                    )
                if check.warnings:
                    logger.warning(
                        "%d warning(s) found by check",
                        len(check.warnings),
                        extra={**extra, "count": len(check.warnings), "severity": "warning"},
                    )
        if summary.passed:
            logger.info("No errors found.")
        else:
            logger.info("One or more errors were found during checks.")
