"""Data file loading into canonical documents."""

from rule_engine.loader.documents import (
    DocumentFormat,
    DocumentLoadError,
    DocumentParseError,
    UnsupportedFormatError,
    format_for_extension,
    load_documents,
    parse_documents,
)

__all__ = [
    "DocumentFormat",
    "DocumentLoadError",
    "DocumentParseError",
    "UnsupportedFormatError",
    "format_for_extension",
    "load_documents",
    "parse_documents",
]
