"""Isolated Lua runtimes for check and test scripts.

Every evaluation unit (one document against one check script, or one test
script) gets its own :class:`ScriptRuntime`, which wraps a brand new
``lupa.LuaRuntime``.  Nothing is shared between runtimes: globals, loaded
modules, ``package.path`` and the capability module all live inside the
one Lua state and die with it.

At construction the runtime:

1. appends ``<script_dir>/?.lua;<script_dir>/?/init.lua`` to *its own*
   ``package.path``;
2. removes host access (``io``, most of ``os``, ``debug``, ``dofile``,
   ``loadfile``, native module loading and the ``python`` bridge) and
   restricts ``load`` to text chunks;
3. registers the capability module under ``require("@rulecheck")``;
4. replaces ``assert`` with a version that behaves identically but lets
   the host tell an assertion failure apart from any other Lua error.
"""

from __future__ import annotations

import logging
import math
import weakref
from pathlib import Path
from typing import Any

import lupa

from rule_engine.sandbox.capabilities import MODULE_NAME, CapabilityModule, ValueConverter
from rule_engine.sandbox.errors import (
    ScriptAssertionError,
    ScriptLoadError,
    ScriptRuntimeError,
    ScriptValueError,
)
from rule_engine.sandbox.source import ScriptSource

logger = logging.getLogger(__name__)

# Lua integers are 64-bit; wider values are passed as floats.
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _int_to_float(value: int) -> float:
    try:
        return float(value)
    except OverflowError:
        return math.copysign(math.inf, value)


# Evaluated once per runtime.  Returns the host helper table used by
# :meth:`ScriptRuntime.load` and :meth:`ScriptRuntime.call`.
_BOOTSTRAP = """
function(read_json, matches, search_path, module_name)
  local load, pcall, error, tostring, rawequal, type = load, pcall, error, tostring, rawequal, type
  local utf8, gsub, format, byte = utf8, string.gsub, string.format, string.byte

  -- Messages that are not valid UTF-8 get their high bytes escaped.
  local function printable(value)
    local text = tostring(value)
    if utf8 == nil or utf8.len(text) then
      return text
    end
    return (gsub(text, "[\\128-\\255]", function(c) return format("\\\\x%02X", byte(c)) end))
  end

  package.path = package.path .. ";" .. search_path
  package.cpath = ""
  package.loadlib = nil
  local searchers = package.searchers or package.loaders
  for index = #searchers, 3, -1 do
    searchers[index] = nil
  end

  local safe_os = { clock = os.clock, date = os.date, difftime = os.difftime, time = os.time }
  os = safe_os
  io, debug, dofile, loadfile, python = nil, nil, nil, nil, nil
  package.loaded.os = safe_os
  package.loaded.io, package.loaded.debug, package.loaded.python = nil, nil, nil

  _G.load = function(chunk, chunkname, _, ...)
    return load(chunk, chunkname, "t", ...)
  end

  local failed_assertion = nil
  _G.assert = function(value, message, ...)
    if value then
      return value, message, ...
    end
    if message == nil then
      message = "assertion failed!"
    end
    failed_assertion = message
    error(message, 0)
  end

  package.loaded[module_name] = {
    ReadJSON = function(path)
      local value, err = read_json(path)
      if err ~= nil then
        error(err, 2)
      end
      return value
    end,
    Matches = function(subject, pattern)
      if type(subject) == "number" then subject = tostring(subject) end
      if type(pattern) == "number" then pattern = tostring(pattern) end
      local matched, err = matches(subject, pattern)
      if err ~= nil then
        error(err, 2)
      end
      return matched
    end,
  }

  local host = {}

  function host.run_chunk(source, chunkname)
    local chunk, err = load(source, chunkname, "t")
    if chunk == nil then
      return "syntax", printable(err)
    end
    local ok, result = pcall(chunk)
    if not ok then
      return "error", printable(result)
    end
    return "ok", nil
  end

  -- Results are boxed so the host converts them apart from the status.
  function host.protected_call(fn, ...)
    failed_assertion = nil
    local ok, result = pcall(fn, ...)
    if ok then
      return "ok", { result }
    end
    if failed_assertion ~= nil and rawequal(result, failed_assertion) then
      return "assertion", printable(result)
    end
    return "error", printable(result)
  end

  return host
end
"""


class ScriptRuntime:
    """One isolated Lua interpreter.

    Instances must not be shared between threads or reused across
    evaluation units.

    Parameters
    ----------
    script_dir:
        Directory added to this runtime's module search path and used as
        the base for ``ReadJSON`` paths.
    """

    def __init__(self, script_dir: Path) -> None:
        self.script_dir = Path(script_dir)
        self._lua = lupa.LuaRuntime(
            unpack_returned_tuples=True,
            register_eval=False,
            register_builtins=False,
        )

        # The Lua state keeps the capability callbacks alive, so they may
        # only refer back to this object weakly.
        self_ref = weakref.ref(self)

        def converter() -> ValueConverter | None:
            runtime = self_ref()
            return runtime.to_lua if runtime is not None else None

        self.capabilities = CapabilityModule(self.script_dir, converter)
        search_path = f"{self.script_dir}/?.lua;{self.script_dir}/?/init.lua"
        install = self._lua.eval(_BOOTSTRAP)
        self._host = install(
            self.capabilities.read_json,
            self.capabilities.matches,
            search_path,
            MODULE_NAME,
        )
        logger.debug("Created script runtime for '%s'.", self.script_dir)

    @classmethod
    def for_source(cls, source: ScriptSource) -> ScriptRuntime:
        """Create a runtime scoped to the directory of *source*."""
        return cls(source.directory)

    @classmethod
    def load_script(cls, source: ScriptSource) -> ScriptRuntime:
        """Create a runtime for *source* and execute it."""
        runtime = cls.for_source(source)
        runtime.load(source)
        return runtime

    # -- execution ---------------------------------------------------------

    def load(self, source: ScriptSource) -> None:
        """Compile and execute the top level of *source* in this runtime.

        Raises
        ------
        ScriptLoadError
            On a syntax error or an error raised by the top-level chunk.
        """
        try:
            status, detail = self._host["run_chunk"](source.text, source.chunk_name)
        except lupa.LuaError as exc:
            raise ScriptLoadError(source.path, str(exc)) from exc
        except UnicodeDecodeError as exc:
            raise ScriptLoadError(source.path, f"error message is not valid UTF-8: {exc}") from exc

        if status == "syntax":
            raise ScriptLoadError(source.path, f"syntax error: {detail}")
        if status != "ok":
            raise ScriptLoadError(source.path, detail)
        logger.debug("Loaded script '%s'.", source.path)

    def call(self, function: Any, *args: Any) -> Any:
        """Call a Lua *function* in protected mode and return its first result.

        Raises
        ------
        ScriptAssertionError
            If the function failed a Lua ``assert``.
        ScriptRuntimeError
            On any other Lua error.
        ScriptValueError
            If the function returned a string that is not valid UTF-8.
        """
        try:
            status, value = self._host["protected_call"](function, *args)
        except lupa.LuaError as exc:
            raise ScriptRuntimeError(str(exc)) from exc
        except UnicodeDecodeError as exc:
            raise ScriptRuntimeError(f"error message is not valid UTF-8: {exc}") from exc

        if status == "ok":
            try:
                return value[1]
            except UnicodeDecodeError as exc:
                raise ScriptValueError(f"returned string is not valid UTF-8: {exc}") from exc
        if status == "assertion":
            raise ScriptAssertionError(value)
        raise ScriptRuntimeError(value)

    # -- reflection --------------------------------------------------------

    def get_function(self, name: str) -> Any | None:
        """Return the global Lua function *name*, or ``None`` if it is not one."""
        value = self._lua.globals()[name]
        if lupa.lua_type(value) == "function":
            return value
        return None

    def function_names(self, prefix: str) -> list[str]:
        """Return the sorted names of global functions starting with *prefix*.

        Raises
        ------
        ScriptValueError
            If a global name is not valid UTF-8.
        """
        try:
            items = list(self._lua.globals().items())
        except UnicodeDecodeError as exc:
            raise ScriptValueError(f"global name is not valid UTF-8: {exc}") from exc
        names = [
            key
            for key, value in items
            if isinstance(key, str) and key.startswith(prefix) and lupa.lua_type(value) == "function"
        ]
        return sorted(names)

    # -- value conversion --------------------------------------------------

    def to_lua(self, value: Any) -> Any:
        """Convert a canonical Python value into a value owned by this runtime.

        Objects become tables with string keys and lists become sequences.
        ``None`` becomes ``nil``, so null list items leave holes.  Integers
        outside the 64-bit range become floats.
        """
        if isinstance(value, dict):
            return self._lua.table_from({key: self.to_lua(item) for key, item in value.items()})
        if isinstance(value, (list, tuple)):
            return self._lua.table_from([self.to_lua(item) for item in value])
        if isinstance(value, int) and not isinstance(value, bool) and not _INT64_MIN <= value <= _INT64_MAX:
            return _int_to_float(value)
        return value

    def from_lua(self, value: Any) -> Any:
        """Convert a Lua value into a JSON-shaped Python value.

        A table whose keys are exactly ``1..n`` becomes a list; any other
        non-empty or empty table becomes a dict with string keys.

        Raises
        ------
        ScriptValueError
            For functions, userdata, threads, strings that are not valid
            UTF-8 and other unconvertible values.
        """
        kind = lupa.lua_type(value)
        if kind is None:
            if value is None or isinstance(value, (bool, int, float, str)):
                return value
            if isinstance(value, bytes):
                return value.decode("utf-8", errors="replace")
            raise ScriptValueError(f"cannot convert host value of type {type(value).__name__}")
        if kind != "table":
            raise ScriptValueError(f"cannot convert Lua {kind} to JSON")

        try:
            items = list(value.items())
        except UnicodeDecodeError as exc:
            raise ScriptValueError(f"table holds a string that is not valid UTF-8: {exc}") from exc
        keys = [key for key, _ in items]
        if keys and all(isinstance(k, int) and not isinstance(k, bool) for k in keys):
            if sorted(keys) == list(range(1, len(keys) + 1)):
                return [self.from_lua(item) for _, item in sorted(items, key=lambda kv: kv[0])]
        return {self._key_text(key): self.from_lua(item) for key, item in items}

    @staticmethod
    def _key_text(key: Any) -> str:
        if isinstance(key, str):
            return key
        if isinstance(key, bool):
            return "true" if key else "false"
        if isinstance(key, (int, float)):
            return str(key)
        raise ScriptValueError(f"cannot use Lua {lupa.lua_type(key) or type(key).__name__} as an object key")
