"""Domain model of the session layer: results, values and errors."""

from .entities import MatchRecord, Rule, ScanResults
from .errors import (
    CompilationError,
    LibraryNotFoundError,
    NotCompiledError,
    ScanError,
    SessionClosedError,
    UnsupportedTypeError,
    YaraError,
)
from .value_objects import (
    DEFAULT_NAMESPACE,
    Diagnostic,
    GlobalKind,
    MetadataType,
    Ownership,
    PatternMatch,
    TaggedValue,
)

__all__ = [
    "MatchRecord",
    "Rule",
    "ScanResults",
    "CompilationError",
    "LibraryNotFoundError",
    "NotCompiledError",
    "ScanError",
    "SessionClosedError",
    "UnsupportedTypeError",
    "YaraError",
    "DEFAULT_NAMESPACE",
    "Diagnostic",
    "GlobalKind",
    "MetadataType",
    "Ownership",
    "PatternMatch",
    "TaggedValue",
]
