"""Parse data files into canonical documents.

A *document* is a plain JSON-shaped Python value: ``None``, ``bool``,
``int``, ``float``, ``str``, ``list`` or ``dict`` with string keys.  All
supported formats converge on that shape before any script sees them.

* JSON -- exactly one document per file.
* TOML -- exactly one document per file; tables become objects and
  date/time values become ISO-8601 strings.
* YAML -- one document per ``---`` separated entry, in source order.  A
  broken entry fails the whole file.
"""

from __future__ import annotations

import base64
import json
import logging
import tomllib
from datetime import date, datetime, time
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


class DocumentFormat(str, Enum):
    """Supported data file formats."""

    JSON = "JSON"
    YAML = "YAML"
    TOML = "TOML"


_FORMAT_BY_EXTENSION: dict[str, DocumentFormat] = {
    "json": DocumentFormat.JSON,
    "yaml": DocumentFormat.YAML,
    "yml": DocumentFormat.YAML,
    "toml": DocumentFormat.TOML,
}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class UnsupportedFormatError(ValueError):
    """Raised when a file extension does not map to a known data format."""


class DocumentParseError(Exception):
    """Raised when the bytes of a data file are not valid for its format."""


class DocumentLoadError(Exception):
    """Raised when a data file cannot be read or parsed."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"failed to load data file '{path}': {message}")


# ---------------------------------------------------------------------------
# Canonical form
# ---------------------------------------------------------------------------


def _canonical_key(key: Any, active: set[int]) -> str:
    if isinstance(key, str):
        return key
    if key is None or isinstance(key, (bool, int, float)):
        return json.dumps(key)
    canonical = _canonicalize(key, active)
    return canonical if isinstance(canonical, str) else json.dumps(canonical, sort_keys=True)


def _canonicalize(value: Any, active: set[int] | None = None) -> Any:
    """Convert parser output into the JSON-shaped canonical value.

    *active* holds the ids of the containers currently being converted; a
    container that contains itself (a recursive YAML alias) is rejected.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if not isinstance(value, (dict, list, tuple, set, frozenset)):
        raise DocumentParseError(f"unsupported value of type {type(value).__name__}")

    if active is None:
        active = set()
    if id(value) in active:
        raise DocumentParseError("recursive YAML alias")
    active.add(id(value))
    try:
        if isinstance(value, dict):
            return {_canonical_key(k, active): _canonicalize(v, active) for k, v in value.items()}
        if isinstance(value, (set, frozenset)):
            return sorted((_canonicalize(v, active) for v in value), key=repr)
        return [_canonicalize(v, active) for v in value]
    finally:
        active.discard(id(value))


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def format_for_extension(extension: str) -> DocumentFormat:
    """Map a file extension (with or without the leading dot) to its format.

    Raises
    ------
    UnsupportedFormatError
        If the extension is not one of json, yaml, yml or toml.
    """
    key = extension.lower().lstrip(".")
    try:
        return _FORMAT_BY_EXTENSION[key]
    except KeyError:
        valid = ", ".join(sorted(_FORMAT_BY_EXTENSION))
        raise UnsupportedFormatError(
            f"unrecognised data file extension '{extension}'. Valid extensions: {valid}."
        ) from None


def _parse_json(data: bytes) -> list[Any]:
    try:
        return [_canonicalize(json.loads(data))]
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DocumentParseError(f"failed to parse JSON: {exc}") from exc


def _parse_toml(data: bytes) -> list[Any]:
    try:
        return [_canonicalize(tomllib.loads(data.decode("utf-8")))]
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise DocumentParseError(f"failed to parse TOML: {exc}") from exc


def _parse_yaml(data: bytes) -> list[Any]:
    # Materialise the whole stream first so a late error leaves no partial list.
    try:
        raw_documents = list(yaml.safe_load_all(data))
    except yaml.YAMLError as exc:
        raise DocumentParseError(f"failed to parse YAML document: {exc}") from exc
    return [_canonicalize(doc) for doc in raw_documents]


_PARSERS = {
    DocumentFormat.JSON: _parse_json,
    DocumentFormat.TOML: _parse_toml,
    DocumentFormat.YAML: _parse_yaml,
}


def parse_documents(data: bytes, extension: str) -> list[Any]:
    """Parse *data* as the format named by *extension*.

    Parameters
    ----------
    data:
        Raw file contents.
    extension:
        File extension such as ``"json"`` or ``".YML"``.

    Returns
    -------
    list
        Canonical documents in source order.  JSON and TOML always yield
        exactly one; YAML yields one per stream entry.

    Raises
    ------
    UnsupportedFormatError
        If *extension* is not a data format.
    DocumentParseError
        If *data* is malformed.
    """
    fmt = format_for_extension(extension)
    return _PARSERS[fmt](data)


def load_documents(path: Path) -> list[Any]:
    """Read *path* from disk and parse it according to its suffix.

    Raises
    ------
    DocumentLoadError
        If the file cannot be read or its contents cannot be parsed.
    UnsupportedFormatError
        If the suffix is not a data format.
    """
    fmt = format_for_extension(path.suffix)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise DocumentLoadError(path, exc.strerror or str(exc)) from exc

    try:
        documents = _PARSERS[fmt](data)
    except DocumentParseError as exc:
        raise DocumentLoadError(path, str(exc)) from exc

    logger.debug("Loaded %d document(s) from '%s'.", len(documents), path)
    return documents
