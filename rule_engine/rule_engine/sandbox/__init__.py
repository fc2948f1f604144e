"""Per-evaluation Lua runtimes and the capability module exposed to scripts.

Quick start::

    from rule_engine.sandbox import ScriptRuntime, ScriptSource

    source = ScriptSource.read(Path("rules/pod.lua"))
    runtime = ScriptRuntime.load_script(source)
    check = runtime.get_function("Check")
    result = runtime.call(check, runtime.to_lua(document), runtime.to_lua(context))
"""

from rule_engine.sandbox.capabilities import MODULE_NAME, CapabilityModule
from rule_engine.sandbox.errors import (
    ScriptAssertionError,
    ScriptError,
    ScriptLoadError,
    ScriptReadError,
    ScriptRuntimeError,
    ScriptValueError,
)
from rule_engine.sandbox.runtime import ScriptRuntime
from rule_engine.sandbox.source import ScriptSource

__all__ = [
    "MODULE_NAME",
    "CapabilityModule",
    "ScriptAssertionError",
    "ScriptError",
    "ScriptLoadError",
    "ScriptReadError",
    "ScriptRuntime",
    "ScriptRuntimeError",
    "ScriptSource",
    "ScriptValueError",
]
