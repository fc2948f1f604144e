"""Run the ``Test*`` functions of one Lua test script.

A test script usually ``require``\\s its companion check script and then
defines any number of global functions whose names start with ``Test``.
After the script has been loaded, those functions are found by reflecting
over the runtime's global table and called with no arguments, in name
order.

Outcomes per function:

* returns nothing            -- pass, no record;
* returns a value            -- recorded with the value rendered as JSON;
* fails a Lua ``assert``     -- recorded with the assertion message;
* raises any other error     -- :class:`TestFunctionError`; the remaining
  functions of the file are not run.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from rule_engine.sandbox import (
    ScriptAssertionError,
    ScriptRuntime,
    ScriptRuntimeError,
    ScriptSource,
    ScriptValueError,
)

logger = logging.getLogger(__name__)

TEST_FUNCTION_PREFIX = "Test"


class OutcomeKind(str, Enum):
    """Why a test function produced a record."""

    RETURNED_VALUE = "RETURNED_VALUE"
    ASSERTION_FAILED = "ASSERTION_FAILED"


class TestOutcome(BaseModel):
    """A recorded (non-silent) result of one test function."""

    __test__ = False

    model_config = ConfigDict(frozen=True)

    file_name: str
    function_name: str
    kind: OutcomeKind
    detail: str = Field(..., description="Rendered return value or assertion message.")

    def render(self) -> str:
        return f"{self.file_name}/{self.function_name}: {self.detail}"

    def __str__(self) -> str:
        return self.render()


class TestFileReport(BaseModel):
    """All recorded outcomes of one test script."""

    __test__ = False

    test_file: Path
    functions_run: int = 0
    outcomes: list[TestOutcome] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.outcomes


class TestFunctionError(Exception):
    """Raised when a test function fails with something other than an assertion."""

    __test__ = False

    def __init__(self, test_file: Path, function_name: str, detail: str) -> None:
        self.test_file = test_file
        self.function_name = function_name
        super().__init__(f"test function '{function_name}' in '{test_file}' failed: {detail}")


def run_test_source(source: ScriptSource) -> TestFileReport:
    """Load *source* in a fresh runtime and call each of its test functions.

    Raises
    ------
    ScriptLoadError
        If the test script (or a module it requires) fails to load.
    ScriptValueError
        If a global name of the loaded script is not valid UTF-8.
    TestFunctionError
        If a test function raises a non-assertion error, or returns a
        value that cannot be rendered.
    """
    runtime = ScriptRuntime.load_script(source)
    names = runtime.function_names(TEST_FUNCTION_PREFIX)
    report = TestFileReport(test_file=source.path)

    for name in names:
        function = runtime.get_function(name)
        report.functions_run += 1
        try:
            value = runtime.call(function)
        except ScriptAssertionError as exc:
            report.outcomes.append(
                TestOutcome(
                    file_name=source.file_name,
                    function_name=name,
                    kind=OutcomeKind.ASSERTION_FAILED,
                    detail=exc.detail,
                )
            )
            continue
        except ScriptRuntimeError as exc:
            raise TestFunctionError(source.path, name, exc.detail) from exc
        except ScriptValueError as exc:
            raise TestFunctionError(source.path, name, f"cannot render return value: {exc}") from exc

        if value is None:
            continue

        try:
            rendered = json.dumps(runtime.from_lua(value), separators=(",", ":"), ensure_ascii=False)
        except ScriptValueError as exc:
            raise TestFunctionError(source.path, name, f"cannot render return value: {exc}") from exc
        report.outcomes.append(
            TestOutcome(
                file_name=source.file_name,
                function_name=name,
                kind=OutcomeKind.RETURNED_VALUE,
                detail=rendered,
            )
        )

    logger.debug("Ran %d test function(s) from '%s'.", report.functions_run, source.path)
    return report


def run_test_file(path: Path) -> TestFileReport:
    """Read *path* and run its test functions.  See :func:`run_test_source`."""
    return run_test_source(ScriptSource.read(path))
