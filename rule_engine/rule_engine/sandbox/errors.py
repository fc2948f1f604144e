"""Exception hierarchy for script loading and execution."""

from __future__ import annotations

from pathlib import Path


class ScriptError(Exception):
    """Base class for all script related errors."""


class ScriptReadError(ScriptError):
    """Raised when a script file cannot be read from disk."""


class ScriptLoadError(ScriptError):
    """Raised when a script fails to compile or its top level raises."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"failed to load Lua source from '{path}': {detail}")


class ScriptRuntimeError(ScriptError):
    """Raised when a called script function raises a Lua error."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class ScriptAssertionError(ScriptRuntimeError):
    """Raised when a called script function fails a Lua ``assert``."""


class ScriptValueError(ScriptError):
    """Raised when a script value cannot be converted to a host value."""
