"""Data models for check results.

A ``Check`` function returns a loosely shaped Lua value that is decoded
into the recursive :data:`CheckResult` variant:

* :class:`EmptyResult` -- nothing to report;
* :class:`LeafResult`  -- one message with an optional severity;
* :class:`GroupResult` -- an ordered list of nested results with an
  optional severity that unset descendants inherit.

:func:`flatten` resolves severities top-down and produces the flat list
of :class:`CheckFinding` objects that reports are built from.
"""

from __future__ import annotations

import time
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class CheckSeverity(str, Enum):
    """How serious a finding is.  Only errors fail a run."""

    ERROR = "error"
    WARNING = "warning"


# ---------------------------------------------------------------------------
# Result variants
# ---------------------------------------------------------------------------


class EmptyResult(BaseModel):
    """A result with nothing to report."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["empty"] = "empty"


class LeafResult(BaseModel):
    """A single reported message."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["leaf"] = "leaf"
    severity: CheckSeverity | None = Field(default=None, description="Unset means inherit from the enclosing group.")
    message: str


class GroupResult(BaseModel):
    """An ordered collection of nested results."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["group"] = "group"
    severity: CheckSeverity | None = Field(default=None, description="Unset means inherit from the enclosing group.")
    children: list[CheckResult] = Field(default_factory=list)


CheckResult = Annotated[Union[EmptyResult, LeafResult, GroupResult], Field(discriminator="kind")]

GroupResult.model_rebuild()


class CheckFinding(BaseModel):
    """One flattened problem reported by a check."""

    model_config = ConfigDict(frozen=True)

    severity: CheckSeverity
    message: str

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.message}"


def flatten(
    result: EmptyResult | LeafResult | GroupResult,
    inherited: CheckSeverity = CheckSeverity.ERROR,
) -> list[CheckFinding]:
    """Resolve every leaf of *result* to a concrete severity.

    An unset severity takes the nearest enclosing group's resolved
    severity; the root inherits *inherited* (``ERROR`` by default).
    Messages and their order are preserved.
    """
    findings: list[CheckFinding] = []
    _flatten_into(result, inherited, findings)
    return findings


def _flatten_into(
    result: EmptyResult | LeafResult | GroupResult,
    inherited: CheckSeverity,
    acc: list[CheckFinding],
) -> None:
    if isinstance(result, LeafResult):
        acc.append(CheckFinding(severity=result.severity or inherited, message=result.message))
    elif isinstance(result, GroupResult):
        effective = result.severity or inherited
        for child in result.children:
            _flatten_into(child, effective, acc)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class CheckReport(BaseModel):
    """Findings of one check script against every document of one data file."""

    check_file: Path = Field(..., description="Check script that produced the findings.")
    findings: list[CheckFinding] = Field(default_factory=list, description="Findings in document order.")

    @property
    def errors(self) -> list[CheckFinding]:
        return [f for f in self.findings if f.severity is CheckSeverity.ERROR]

    @property
    def warnings(self) -> list[CheckFinding]:
        return [f for f in self.findings if f.severity is CheckSeverity.WARNING]


class DataFileReport(BaseModel):
    """All non-empty check reports for one data file."""

    data_file: Path = Field(..., description="The data file that was checked.")
    document_count: int = Field(default=0, description="Number of documents parsed from the file.")
    checks: list[CheckReport] = Field(
        default_factory=list,
        description="Reports of checks with at least one finding, in check order.",
    )


class CheckSummary(BaseModel):
    """Aggregated outcome of a ``check`` run."""

    check_files: list[Path] = Field(default_factory=list, description="Check scripts that were applied.")
    data_file_count: int = Field(default=0, description="Number of data files evaluated.")
    reports: list[DataFileReport] = Field(
        default_factory=list,
        description="Per data file reports with findings, sorted by data file path.",
    )
    total_errors: int = Field(default=0, description="Number of error findings across all files.")
    total_warnings: int = Field(default=0, description="Number of warning findings across all files.")
    passed: bool = Field(default=True, description="True when no error finding exists.")
    duration_ms: int = Field(default=0, description="Total execution time in milliseconds.")

    @staticmethod
    def from_reports(
        reports: list[DataFileReport],
        *,
        check_files: list[Path],
        data_file_count: int,
        duration_ms: int = 0,
    ) -> CheckSummary:
        """Build a summary from per-file reports.

        Reports without findings are dropped and the rest are sorted by
        data file path, so the summary does not depend on the order in
        which parallel work completed.
        """
        kept = sorted((r for r in reports if r.checks), key=lambda r: str(r.data_file))

        errors = sum(len(c.errors) for r in kept for c in r.checks)
        warnings = sum(len(c.warnings) for r in kept for c in r.checks)

        return CheckSummary(
            check_files=sorted(check_files, key=str),
            data_file_count=data_file_count,
            reports=kept,
            total_errors=errors,
            total_warnings=warnings,
            passed=errors == 0,
            duration_ms=duration_ms,
        )


class Timer:
    """Simple monotonic timer for measuring run duration."""

    def __init__(self) -> None:
        self._start: float = 0.0

    def start(self) -> None:
        self._start = time.monotonic()

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._start) * 1000)
