"""
Session layer over the YARA-X C API.

Compile rules, scan buffers and read back matches, metadata and tags:

    from yara_session import Scanner

    with Scanner.open(sources=['rule hello { strings: $a = "hello" condition: $a }']) as scanner:
        results = scanner.scan(b"hello world")
"""

from .config import Settings, get_config, reset_config, set_config
from .domain import (
    DEFAULT_NAMESPACE,
    CompilationError,
    Diagnostic,
    LibraryNotFoundError,
    MatchRecord,
    MetadataType,
    NotCompiledError,
    Ownership,
    PatternMatch,
    Rule,
    ScanError,
    ScanResults,
    SessionClosedError,
    TaggedValue,
    UnsupportedTypeError,
    YaraError,
)
from .engine import (
    CompiledRuleSet,
    RuleCompiler,
    Scanner,
    SessionState,
    compile_source,
    scan_once,
)
from .infrastructure.native import CompilerFlags, native_library_available
from .shared.logging import configure_logging

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_config",
    "reset_config",
    "set_config",
    "DEFAULT_NAMESPACE",
    "CompilationError",
    "Diagnostic",
    "LibraryNotFoundError",
    "MatchRecord",
    "MetadataType",
    "NotCompiledError",
    "Ownership",
    "PatternMatch",
    "Rule",
    "ScanError",
    "ScanResults",
    "SessionClosedError",
    "TaggedValue",
    "UnsupportedTypeError",
    "YaraError",
    "CompiledRuleSet",
    "RuleCompiler",
    "Scanner",
    "SessionState",
    "compile_source",
    "scan_once",
    "CompilerFlags",
    "native_library_available",
    "configure_logging",
]
