"""Decode the value returned by a Lua ``Check`` function.

This is the single place where script return shapes are interpreted:

============================================  ====================================
Lua value                                     Result
============================================  ====================================
``nil``                                       :class:`EmptyResult`
``"text"``                                    ``LeafResult(None, "text")``
``{message = ..., severity = ...}``           :class:`LeafResult` (severity optional)
``{...}`` without ``message``                 :class:`GroupResult` of the sequence
============================================  ====================================

Only the sequence part (``t[1] .. t[n]``, stopping at the first ``nil``)
of a group table is decoded.  A group table may also carry a
``severity`` field that its children inherit.
"""

from __future__ import annotations

from typing import Any

import lupa

from rule_engine.checks.models import CheckSeverity, EmptyResult, GroupResult, LeafResult

_SEVERITY_TOKENS: dict[str, CheckSeverity] = {
    "error": CheckSeverity.ERROR,
    "warning": CheckSeverity.WARNING,
}


class ResultDecodeError(ValueError):
    """Raised when a Check return value does not fit the result grammar."""


class InvalidSeverityError(ResultDecodeError):
    """Raised when a ``severity`` field is not ``"error"`` or ``"warning"``."""


def _type_name(value: Any) -> str:
    kind = lupa.lua_type(value)
    if kind is not None:
        return kind
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return type(value).__name__


def _field(table: Any, key: str | int) -> Any:
    try:
        return table[key]
    except UnicodeDecodeError as exc:
        raise ResultDecodeError(f"string is not valid UTF-8: {exc}") from exc


def _decode_severity(value: Any) -> CheckSeverity | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidSeverityError(f"invalid severity level: expected a string, got {_type_name(value)}")
    try:
        return _SEVERITY_TOKENS[value]
    except KeyError:
        raise InvalidSeverityError(f"invalid severity level: {value}") from None


def _decode_sequence(table: Any) -> list[EmptyResult | LeafResult | GroupResult]:
    children: list[EmptyResult | LeafResult | GroupResult] = []
    index = 1
    while (item := _field(table, index)) is not None:
        children.append(decode_check_result(item))
        index += 1
    return children


def decode_check_result(value: Any) -> EmptyResult | LeafResult | GroupResult:
    """Decode a Lua *value* into a :data:`CheckResult`.

    Raises
    ------
    InvalidSeverityError
        If a ``severity`` field holds anything other than ``"error"`` or
        ``"warning"``.
    ResultDecodeError
        If the value (or a nested value) is not nil, a string or a table,
        or a ``message`` field has an unusable type, or a string in it
        is not valid UTF-8.
    """
    if value is None:
        return EmptyResult()
    if isinstance(value, str):
        return LeafResult(message=value)
    if lupa.lua_type(value) != "table":
        raise ResultDecodeError(f"expected nil, string or table from Check, got {_type_name(value)}")

    severity = _decode_severity(_field(value, "severity"))
    message = _field(value, "message")

    if message is None:
        return GroupResult(severity=severity, children=_decode_sequence(value))
    if isinstance(message, str):
        return LeafResult(severity=severity, message=message)
    if isinstance(message, (int, float)) and not isinstance(message, bool):
        return LeafResult(severity=severity, message=str(message))
    if lupa.lua_type(message) == "table":
        # A list of messages sharing one severity.
        return GroupResult(severity=severity, children=_decode_sequence(message))
    raise ResultDecodeError(f"expected string or table for 'message', got {_type_name(message)}")
