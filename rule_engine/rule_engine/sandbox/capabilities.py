"""Host functions exposed to scripts through ``require("@rulecheck")``.

The capability surface is fixed and deliberately small:

* ``ReadJSON(path)``  -- read and parse a JSON file relative to the script.
* ``Matches(subject, pattern)`` -- regular expression search.  Number
  arguments are converted with Lua's ``tostring`` first.

Both host functions return a ``(value, error)`` pair instead of raising.
The Lua side of the module turns a non-nil ``error`` into a Lua error at
the caller's position, so scripts see ordinary Lua errors they can
``pcall`` and inspect as strings.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

MODULE_NAME = "@rulecheck"

# Converts a canonical Python value into a value owned by the calling
# runtime.  Returns ``None`` once the runtime has been discarded.
ValueConverter = Callable[[Any], Any]


class CapabilityModule:
    """The host half of the capability module for one script runtime.

    Parameters
    ----------
    base_dir:
        Directory that relative ``ReadJSON`` paths resolve against.
    to_script_value:
        Returns a converter for the owning runtime, or ``None`` when the
        runtime is gone.  Held weakly by the runtime to avoid a reference
        cycle through the Lua state.
    """

    def __init__(self, base_dir: Path, to_script_value: Callable[[], ValueConverter | None]) -> None:
        self.base_dir = base_dir
        self._to_script_value = to_script_value

    def read_json(self, path: Any) -> tuple[Any, str | None]:
        if not isinstance(path, str):
            return None, f"ReadJSON expects a string path, got {type(path).__name__}"

        full_path = self.base_dir / path
        try:
            contents = full_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return None, f"failed to read '{full_path}': {exc}"

        try:
            value = json.loads(contents)
        except json.JSONDecodeError as exc:
            return None, f"failed to parse JSON in '{full_path}': {exc}"

        convert = self._to_script_value()
        if convert is None:
            return None, "script runtime is no longer available"
        logger.debug("ReadJSON loaded '%s'.", full_path)
        return convert(value), None

    def matches(self, subject: Any, pattern: Any) -> tuple[bool | None, str | None]:
        if not isinstance(subject, str) or not isinstance(pattern, str):
            return None, "Matches expects (string, string) arguments"
        try:
            regexp = re.compile(pattern)
        except re.error as exc:
            return None, f"invalid regex pattern '{pattern}': {exc}"
        return regexp.search(subject) is not None, None
