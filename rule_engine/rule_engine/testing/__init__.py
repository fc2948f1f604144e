"""Self-tests for Lua check scripts.

Runs the ``Test*`` functions of ``*_test.lua`` scripts and reports
failed assertions and unexpected return values.
"""

from rule_engine.testing.harness import (
    TEST_FUNCTION_PREFIX,
    OutcomeKind,
    TestFileReport,
    TestFunctionError,
    TestOutcome,
    run_test_file,
    run_test_source,
)
from rule_engine.testing.test_runner import ScriptTestRunner, TestRunError, TestSummary

__all__ = [
    "TEST_FUNCTION_PREFIX",
    "OutcomeKind",
    "ScriptTestRunner",
    "TestFileReport",
    "TestFunctionError",
    "TestOutcome",
    "TestRunError",
    "TestSummary",
    "run_test_file",
    "run_test_source",
]
