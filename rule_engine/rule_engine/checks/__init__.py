"""Check evaluation: result model, return-value decoding, invocation and
aggregation.

Quick start::

    from rule_engine.checks import CheckEngine

    engine = CheckEngine()
    summary = engine.run([Path("rules"), Path("config")])
    print(summary.passed, summary.total_errors, summary.total_warnings)
"""

from rule_engine.checks.decoding import InvalidSeverityError, ResultDecodeError, decode_check_result
from rule_engine.checks.engine import (
    CheckEngine,
    CheckRunError,
    ConfigurationError,
    NoChecksFoundError,
    NoDataFilesError,
)
from rule_engine.checks.invoker import (
    CHECK_FUNCTION,
    CheckExecutionError,
    build_context,
    has_check_function,
    invoke_check,
)
from rule_engine.checks.models import (
    CheckFinding,
    CheckReport,
    CheckResult,
    CheckSeverity,
    CheckSummary,
    DataFileReport,
    EmptyResult,
    GroupResult,
    LeafResult,
    flatten,
)

__all__ = [
    "CHECK_FUNCTION",
    "CheckEngine",
    "CheckExecutionError",
    "CheckFinding",
    "CheckReport",
    "CheckResult",
    "CheckRunError",
    "CheckSeverity",
    "CheckSummary",
    "ConfigurationError",
    "DataFileReport",
    "EmptyResult",
    "GroupResult",
    "InvalidSeverityError",
    "LeafResult",
    "NoChecksFoundError",
    "NoDataFilesError",
    "ResultDecodeError",
    "build_context",
    "decode_check_result",
    "flatten",
    "has_check_function",
    "invoke_check",
]
