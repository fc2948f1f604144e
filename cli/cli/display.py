"""Rich output formatting for the rulecheck CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from rule_engine.checks.models import CheckSeverity, CheckSummary
from rule_engine.testing.test_runner import TestSummary

# ---------------------------------------------------------------------------
# Severity styling
# ---------------------------------------------------------------------------

_SEVERITY_ICONS: dict[CheckSeverity, str] = {
    CheckSeverity.ERROR: "\u2717",
    CheckSeverity.WARNING: "\u26a0",
}

_SEVERITY_COLOURS: dict[CheckSeverity, str] = {
    CheckSeverity.ERROR: "red",
    CheckSeverity.WARNING: "yellow",
}


def _status(passed: bool) -> str:
    return "[green]PASSED[/green]" if passed else "[red]FAILED[/red]"


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


def display_check_summary(console: Console, summary: CheckSummary) -> None:
    """Render the findings of a ``check`` run, grouped by data file and check.

    Parameters
    ----------
    console:
        Rich console to write to (typically stderr).
    summary:
        The aggregated run summary.
    """
    console.print(f"\nrulecheck check \u2014 {_status(summary.passed)}  ({summary.duration_ms}ms)")
    console.print(f"  Checks: {len(summary.check_files)}  Data files: {summary.data_file_count}")

    if not summary.reports:
        console.print("\n  [green]\u2713 No issues found.[/green]\n")
        return

    for report in summary.reports:
        console.print(f"\n  [bold]{escape(str(report.data_file))}[/bold]")
        for check in report.checks:
            console.print(f"    [dim]{escape(str(check.check_file))}[/dim]")
            for finding in check.findings:
                icon = _SEVERITY_ICONS[finding.severity]
                colour = _SEVERITY_COLOURS[finding.severity]
                console.print(
                    f"      [{colour}]{icon} {finding.severity.value}[/{colour}]  {escape(finding.message)}"
                )

    console.print(
        f"\n\u2500\u2500 {summary.total_errors} error(s), "
        f"{summary.total_warnings} warning(s)  ({summary.duration_ms}ms)\n"
    )


# ---------------------------------------------------------------------------
# test
# ---------------------------------------------------------------------------


def display_test_summary(console: Console, summary: TestSummary) -> None:
    """Render the recorded outcomes of a ``test`` run."""
    console.print(f"\nrulecheck test \u2014 {_status(summary.passed)}  ({summary.duration_ms}ms)")
    console.print(f"  Test files: {summary.test_file_count}  Functions: {summary.functions_run}")

    if summary.passed:
        console.print("\n  [green]\u2713 All tests passed.[/green]\n")
        return

    for report in summary.reports:
        console.print(f"\n  [bold]{escape(str(report.test_file))}[/bold]")
        for outcome in report.outcomes:
            console.print(f"    [red]\u2717[/red] {escape(outcome.render())}")

    console.print(f"\n\u2500\u2500 {summary.total_failures} failure(s)  ({summary.duration_ms}ms)\n")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def format_cause_chain(exc: BaseException) -> list[str]:
    """Return the messages of *exc* and each of its causes, outermost first."""
    lines: list[str] = []
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        lines.append(str(current) or type(current).__name__)
        current = current.__cause__ or current.__context__
    return lines


def display_error(console: Console, exc: BaseException) -> None:
    """Render a fatal error and its cause chain in a red panel."""
    lines = format_cause_chain(exc)
    body = [f"[bold]{escape(lines[0])}[/bold]"]
    if len(lines) > 1:
        body.append("")
        body.append("Caused by:")
        body.extend(f"  {index}: {escape(line)}" for index, line in enumerate(lines[1:]))
    console.print(Panel("\n".join(body), title="Error", border_style="red"))
