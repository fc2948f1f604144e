"""``rulecheck test`` -- run the self-tests of Lua check scripts.

Every ``*_test.lua`` file under the path arguments is loaded and each of
its global ``Test*`` functions is called.  A function passes by
returning nothing; a returned value or a failed ``assert`` is reported.

Exit codes: 0 = all tests passed, 1 = failures recorded, 3 = a test
script could not be run.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console

from cli.commands.check import (
    DOTDIRS_OPTION,
    DOTFILES_OPTION,
    FOLLOW_SYMLINKS_OPTION,
    JOBS_OPTION,
    PATHS_ARGUMENT,
    build_searcher,
    resolve_paths,
)
from rule_engine.files import FileSearchError

logger = logging.getLogger(__name__)

console = Console(stderr=True)


def test_command(
    paths: list[Path] | None = PATHS_ARGUMENT,
    dotfiles: bool = DOTFILES_OPTION,
    dotdirs: bool = DOTDIRS_OPTION,
    follow_symlinks: bool = FOLLOW_SYMLINKS_OPTION,
    jobs: int | None = JOBS_OPTION,
) -> None:
    """Run the Test functions of every *_test.lua file under PATHS.

    Examples::

        rulecheck test
        rulecheck test rules/
        rulecheck --json test rules/
    """
    from cli.app import _json_output, get_settings
    from cli.display import display_error, display_test_summary
    from rule_engine.testing import ScriptTestRunner, TestRunError

    settings = get_settings()
    searcher = build_searcher(
        settings,
        dotfiles=dotfiles,
        dotdirs=dotdirs,
        follow_symlinks=follow_symlinks,
        jobs=jobs,
    )
    runner = ScriptTestRunner(searcher, max_workers=jobs or settings.max_workers)

    try:
        summary = runner.run(resolve_paths(paths))
    except (FileSearchError, TestRunError) as exc:
        logger.debug("test run aborted", exc_info=True)
        display_error(console, exc)
        raise typer.Exit(code=3) from exc

    if _json_output:
        sys.stdout.write(summary.model_dump_json(indent=2) + "\n")
    else:
        display_test_summary(console, summary)

    if not summary.passed:
        raise typer.Exit(code=1)


# Collected by pytest otherwise when imported into a test module.
test_command.__test__ = False  # type: ignore[attr-defined]
