"""Discover and call ``Check`` entry functions in Lua scripts.

A ``.lua`` file is a *check* only if loading it defines a global function
named ``Check``; other scripts are helper modules and are skipped.

For every document of a data file the check script is loaded into a fresh
:class:`~rule_engine.sandbox.ScriptRuntime` and called as::

    Check(document, context)

where ``context`` is a table with ``check_file``, ``document_file``
(absolute paths), ``document_index`` (1-based) and ``document_count``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from rule_engine.checks.decoding import ResultDecodeError, decode_check_result
from rule_engine.checks.models import CheckFinding, flatten
from rule_engine.sandbox import (
    ScriptError,
    ScriptRuntime,
    ScriptRuntimeError,
    ScriptSource,
    ScriptValueError,
)

logger = logging.getLogger(__name__)

CHECK_FUNCTION = "Check"


class CheckExecutionError(Exception):
    """Raised when a check script cannot be loaded, fails at runtime, or
    returns a value that cannot be decoded.

    These are script bugs and are never turned into findings.
    """

    def __init__(self, check_file: Path, message: str) -> None:
        self.check_file = check_file
        super().__init__(f"failed to run check '{check_file}': {message}")


def has_check_function(source: ScriptSource) -> bool:
    """Load *source* in an isolated runtime and look for a ``Check`` function.

    Raises
    ------
    ScriptLoadError
        If the script does not compile or its top level raises.
    """
    runtime = ScriptRuntime.load_script(source)
    found = runtime.get_function(CHECK_FUNCTION) is not None
    logger.debug("Probed '%s' for %s(): %s", source.path, CHECK_FUNCTION, found)
    return found


def build_context(check_file: Path, document_file: Path, index: int, count: int) -> dict[str, Any]:
    """Return the context mapping passed as the second ``Check`` argument."""
    return {
        "check_file": str(check_file.resolve()),
        "document_file": str(document_file.resolve()),
        "document_index": index + 1,
        "document_count": count,
    }


def invoke_check(source: ScriptSource, documents: list[Any], document_file: Path) -> list[CheckFinding]:
    """Run the check in *source* against each of *documents*.

    Parameters
    ----------
    source:
        The check script.
    documents:
        Canonical documents of one data file, in source order.
    document_file:
        The data file the documents came from.

    Returns
    -------
    list[CheckFinding]
        Flattened findings for all documents, in document order.

    Raises
    ------
    CheckExecutionError
        On a load failure, a runtime error inside ``Check``, a missing
        ``Check`` function or an undecodable return value.
    """
    findings: list[CheckFinding] = []
    count = len(documents)

    for index, document in enumerate(documents):
        location = f"document {index + 1} of '{document_file}'"
        try:
            runtime = ScriptRuntime.load_script(source)
        except ScriptError as exc:
            raise CheckExecutionError(source.path, str(exc)) from exc

        check_fn = runtime.get_function(CHECK_FUNCTION)
        if check_fn is None:
            raise CheckExecutionError(source.path, f"no '{CHECK_FUNCTION}' function defined")

        context = build_context(source.path, document_file, index, count)
        try:
            value = runtime.call(check_fn, runtime.to_lua(document), runtime.to_lua(context))
        except ScriptRuntimeError as exc:
            raise CheckExecutionError(
                source.path,
                f"runtime error in '{CHECK_FUNCTION}' function for {location}: {exc.detail}",
            ) from exc
        except ScriptValueError as exc:
            raise CheckExecutionError(
                source.path,
                f"invalid value returned by '{CHECK_FUNCTION}' for {location}: {exc}",
            ) from exc

        try:
            result = decode_check_result(value)
        except ResultDecodeError as exc:
            raise CheckExecutionError(
                source.path,
                f"invalid value returned by '{CHECK_FUNCTION}' for {location}: {exc}",
            ) from exc

        findings.extend(flatten(result))

    return findings
