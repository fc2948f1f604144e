"""Script source files."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from rule_engine.sandbox.errors import ScriptReadError


class ScriptSource(BaseModel):
    """The text of one Lua script, read once and never mutated.

    ``chunk_name`` follows the Lua convention of an ``@`` prefix so that
    error messages and tracebacks point at the file path.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    chunk_name: str
    text: str

    @classmethod
    def read(cls, path: Path) -> ScriptSource:
        """Read *path* as UTF-8.

        Raises
        ------
        ScriptReadError
            If the file cannot be read or is not valid UTF-8.
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ScriptReadError(f"failed to read source file '{path}': {exc}") from exc
        return cls(path=path, chunk_name=f"@{path}", text=text)

    @property
    def directory(self) -> Path:
        """Directory holding the script; the root of its module search path."""
        return self.path.resolve().parent

    @property
    def file_name(self) -> str:
        return self.path.name
