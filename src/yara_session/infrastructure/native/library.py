"""
Loading and binding of the yara_x_capi shared library.

The function table below is the complete native surface used by the session
layer. Every entry declares its argument and return types so ctypes converts
values at the boundary instead of guessing.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import threading
from typing import Any

from yara_session.config import get_config
from yara_session.domain.errors import LibraryNotFoundError
from yara_session.shared.logging import get_logger

from .types import (
    MATCH_CALLBACK,
    METADATA_CALLBACK,
    PATTERN_CALLBACK,
    RULE_CALLBACK,
    TAG_CALLBACK,
    YRX_BUFFER,
)

logger = get_logger("infrastructure.native.library")

LIBRARY_NAME = "yara_x_capi"

# Install locations used by the upstream bindings' CI and Docker images.
WELL_KNOWN_PATHS = (
    "/usr/local/lib/x86_64-linux-gnu/libyara_x_capi.so",
    "/usr/local/lib/aarch64-linux-gnu/libyara_x_capi.so",
    "/usr/local/lib/libyara_x_capi.so",
    "/usr/local/lib/libyara_x_capi.dylib",
    "libyara_x_capi.so",
)

_c_void_pp = ctypes.POINTER(ctypes.c_void_p)
_c_size_p = ctypes.POINTER(ctypes.c_size_t)
_buffer_pp = ctypes.POINTER(ctypes.POINTER(YRX_BUFFER))

_int = ctypes.c_int
_void = None

# name -> (restype, argtypes)
FUNCTION_TABLE: dict[str, tuple[Any, list[Any]]] = {
    "yrx_last_error": (ctypes.c_char_p, []),
    "yrx_buffer_destroy": (_void, [ctypes.POINTER(YRX_BUFFER)]),
    # Rules
    "yrx_compile": (_int, [ctypes.c_char_p, _c_void_pp]),
    "yrx_rules_destroy": (_void, [ctypes.c_void_p]),
    "yrx_rules_iter": (_int, [ctypes.c_void_p, RULE_CALLBACK, ctypes.c_void_p]),
    "yrx_rules_serialize": (_int, [ctypes.c_void_p, _buffer_pp]),
    "yrx_rules_deserialize": (_int, [ctypes.c_char_p, ctypes.c_size_t, _c_void_pp]),
    # Compiler
    "yrx_compiler_create": (_int, [ctypes.c_uint32, _c_void_pp]),
    "yrx_compiler_destroy": (_void, [ctypes.c_void_p]),
    "yrx_compiler_add_source": (_int, [ctypes.c_void_p, ctypes.c_char_p]),
    "yrx_compiler_add_source_with_origin": (
        _int,
        [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_char_p],
    ),
    "yrx_compiler_new_namespace": (_int, [ctypes.c_void_p, ctypes.c_char_p]),
    "yrx_compiler_define_global_str": (
        _int,
        [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_char_p],
    ),
    "yrx_compiler_define_global_bool": (
        _int,
        [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_bool],
    ),
    "yrx_compiler_define_global_int": (
        _int,
        [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_int64],
    ),
    "yrx_compiler_define_global_float": (
        _int,
        [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_double],
    ),
    "yrx_compiler_build": (ctypes.c_void_p, [ctypes.c_void_p]),
    "yrx_compiler_errors_json": (_int, [ctypes.c_void_p, _buffer_pp]),
    "yrx_compiler_warnings_json": (_int, [ctypes.c_void_p, _buffer_pp]),
    # Scanner
    "yrx_scanner_create": (_int, [ctypes.c_void_p, _c_void_pp]),
    "yrx_scanner_destroy": (_void, [ctypes.c_void_p]),
    "yrx_scanner_on_matching_rule": (
        _int,
        [ctypes.c_void_p, RULE_CALLBACK, ctypes.c_void_p],
    ),
    "yrx_scanner_scan": (_int, [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_size_t]),
    "yrx_scanner_set_timeout": (_int, [ctypes.c_void_p, ctypes.c_uint64]),
    "yrx_scanner_set_global_str": (
        _int,
        [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_char_p],
    ),
    "yrx_scanner_set_global_bool": (
        _int,
        [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_bool],
    ),
    "yrx_scanner_set_global_int": (
        _int,
        [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_int64],
    ),
    "yrx_scanner_set_global_float": (
        _int,
        [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_double],
    ),
    # Rule, pattern and match accessors
    "yrx_rule_identifier": (_int, [ctypes.c_void_p, _c_void_pp, _c_size_p]),
    "yrx_rule_namespace": (_int, [ctypes.c_void_p, _c_void_pp, _c_size_p]),
    "yrx_rule_iter_metadata": (
        _int,
        [ctypes.c_void_p, METADATA_CALLBACK, ctypes.c_void_p],
    ),
    "yrx_rule_iter_patterns": (
        _int,
        [ctypes.c_void_p, PATTERN_CALLBACK, ctypes.c_void_p],
    ),
    "yrx_rule_iter_tags": (_int, [ctypes.c_void_p, TAG_CALLBACK, ctypes.c_void_p]),
    "yrx_pattern_identifier": (_int, [ctypes.c_void_p, _c_void_pp, _c_size_p]),
    "yrx_pattern_iter_matches": (
        _int,
        [ctypes.c_void_p, MATCH_CALLBACK, ctypes.c_void_p],
    ),
}


class NativeLibrary:
    """
    Typed view over a loaded yara_x_capi.

    Each entry of FUNCTION_TABLE becomes an attribute with the same name, so
    callers write ``library.yrx_scanner_scan(handle, data, len(data))``.
    Test doubles only need to provide the same attribute names.
    """

    def __init__(self, cdll: ctypes.CDLL, path: str | None = None):
        """
        Bind the function table against a loaded library.

        Args:
            cdll: Library loaded with ctypes
            path: Path it was loaded from, kept for diagnostics

        Raises:
            LibraryNotFoundError: The library lacks one of the required symbols
        """
        self.path = path
        self._cdll = cdll
        missing = []
        for name, (restype, argtypes) in FUNCTION_TABLE.items():
            try:
                function = getattr(cdll, name)
            except AttributeError:
                missing.append(name)
                continue
            function.restype = restype
            function.argtypes = argtypes
            setattr(self, name, function)

        if missing:
            raise LibraryNotFoundError(
                f"Library at {path or cdll} is missing symbols: {', '.join(missing)}",
                candidates=[path] if path else [],
            )

    def __repr__(self) -> str:
        return f"NativeLibrary(path={self.path!r})"


def last_error(library: Any) -> str:
    """Return the message of the last native failure on this thread."""
    message = library.yrx_last_error()
    if not message:
        return "unknown error"
    if isinstance(message, bytes):
        return message.decode("utf-8", errors="replace")
    return str(message)


def candidate_paths(explicit_path: str | None = None) -> list[str]:
    """
    Ordered list of locations to try when loading the library.

    Args:
        explicit_path: Path configured by the caller, tried first

    Returns:
        Candidate paths without duplicates
    """
    candidates: list[str] = []
    if explicit_path:
        candidates.append(explicit_path)

    found = ctypes.util.find_library(LIBRARY_NAME)
    if found:
        candidates.append(found)

    candidates.extend(WELL_KNOWN_PATHS)

    unique: list[str] = []
    for candidate in candidates:
        if candidate not in unique:
            unique.append(candidate)
    return unique


def load_library(explicit_path: str | None = None) -> NativeLibrary:
    """
    Load yara_x_capi from the first candidate location that works.

    Raises:
        LibraryNotFoundError: No candidate could be loaded
    """
    tried = candidate_paths(explicit_path)
    for path in tried:
        try:
            cdll = ctypes.CDLL(path)
        except OSError:
            logger.debug("native_library_candidate_failed", path=path)
            continue

        library = NativeLibrary(cdll, path=path)
        logger.info("native_library_loaded", path=path)
        return library

    raise LibraryNotFoundError(
        f"Could not load {LIBRARY_NAME} from any of: {', '.join(tried)}",
        candidates=tried,
    )


_library: Any = None
_library_lock = threading.Lock()


def get_library() -> Any:
    """Return the process-wide library, loading it on first use."""
    global _library
    with _library_lock:
        if _library is None:
            _library = load_library(get_config().library_path)
        return _library


def set_library(library: Any) -> None:
    """Replace the process-wide library (used by tests and embedders)."""
    global _library
    with _library_lock:
        _library = library


def reset_library() -> None:
    """Forget the process-wide library so the next use reloads it."""
    set_library(None)


def native_library_available(explicit_path: str | None = None) -> bool:
    """Check whether the real library can be loaded in this environment."""
    try:
        load_library(explicit_path)
    except LibraryNotFoundError:
        return False
    return True
