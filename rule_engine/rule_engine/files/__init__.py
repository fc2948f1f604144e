"""File discovery and role classification."""

from rule_engine.files.searcher import (
    DATA_EXTENSIONS,
    SCRIPT_EXTENSION,
    TEST_SUFFIX,
    FileRole,
    FileSearcher,
    FileSearchError,
    FileSearchResult,
    SourceFile,
    classify,
)

__all__ = [
    "DATA_EXTENSIONS",
    "SCRIPT_EXTENSION",
    "TEST_SUFFIX",
    "FileRole",
    "FileSearchError",
    "FileSearchResult",
    "FileSearcher",
    "SourceFile",
    "classify",
]
