"""``rulecheck check`` -- run Lua check scripts against data files.

Every path argument is searched for check scripts (``*.lua``) and data
files (``*.json``, ``*.yaml``, ``*.yml``, ``*.toml``); every document of
every data file is then passed to every check.  Human-readable output
goes to stderr via Rich; the JSON summary goes to stdout in ``--json``
mode.

Exit codes: 0 = no error findings, 1 = error findings, 3 = the run could
not be completed.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console

from rule_engine.config import Settings
from rule_engine.files import FileSearcher, FileSearchError

logger = logging.getLogger(__name__)

console = Console(stderr=True)

# ---------------------------------------------------------------------------
# Shared search options
# ---------------------------------------------------------------------------

PATHS_ARGUMENT = typer.Argument(
    None,
    help="Files or directories to search (defaults to the current directory).",
)
DOTFILES_OPTION = typer.Option(False, "--dotfiles", help="Include files whose names start with '.'.")
DOTDIRS_OPTION = typer.Option(False, "--dotdirs", help="Descend into directories whose names start with '.'.")
FOLLOW_SYMLINKS_OPTION = typer.Option(False, "--follow-symlinks", help="Follow symbolic links while searching.")
JOBS_OPTION = typer.Option(None, "--jobs", "-j", min=1, help="Number of worker threads.")


def resolve_paths(paths: list[Path] | None) -> list[Path]:
    """Return *paths*, or the current directory when none were given."""
    return list(paths) if paths else [Path(".")]


def build_searcher(
    settings: Settings,
    *,
    dotfiles: bool,
    dotdirs: bool,
    follow_symlinks: bool,
    jobs: int | None,
) -> FileSearcher:
    """Build a :class:`FileSearcher` from CLI flags layered over *settings*.

    A flag given on the command line always enables the behaviour; when it
    is absent the corresponding setting decides.
    """
    return FileSearcher(
        include_dotfiles=dotfiles or settings.include_dotfiles,
        include_dotdirs=dotdirs or settings.include_dotdirs,
        follow_symlinks=follow_symlinks or settings.follow_symlinks,
        max_workers=jobs or settings.max_workers,
    )


# ---------------------------------------------------------------------------
# Check command
# ---------------------------------------------------------------------------


def check_command(
    paths: list[Path] | None = PATHS_ARGUMENT,
    dotfiles: bool = DOTFILES_OPTION,
    dotdirs: bool = DOTDIRS_OPTION,
    follow_symlinks: bool = FOLLOW_SYMLINKS_OPTION,
    jobs: int | None = JOBS_OPTION,
) -> None:
    """Validate data files with the Lua checks found under PATHS.

    Examples::

        rulecheck check
        rulecheck check rules/ deploy/
        rulecheck --json check rules/ config.yaml
        rulecheck check . --dotdirs --jobs 4
    """
    # Import app-level globals from the parent module.
    from cli.app import _json_output, get_settings
    from cli.display import display_check_summary, display_error
    from rule_engine.checks import CheckEngine, CheckRunError, ConfigurationError

    settings = get_settings()
    searcher = build_searcher(
        settings,
        dotfiles=dotfiles,
        dotdirs=dotdirs,
        follow_symlinks=follow_symlinks,
        jobs=jobs,
    )
    engine = CheckEngine(searcher, max_workers=jobs or settings.max_workers)

    try:
        summary = engine.run(resolve_paths(paths))
    except (ConfigurationError, FileSearchError, CheckRunError) as exc:
        logger.debug("check run aborted", exc_info=True)
        display_error(console, exc)
        raise typer.Exit(code=3) from exc

    if _json_output:
        sys.stdout.write(summary.model_dump_json(indent=2) + "\n")
    else:
        display_check_summary(console, summary)

    # Exit code: 0 = passed, 1 = error findings.
    if not summary.passed:
        raise typer.Exit(code=1)
