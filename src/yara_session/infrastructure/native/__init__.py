"""ctypes bindings to the yara_x_capi shared library."""

from .decoder import decode_metadata, decode_sized_text, decode_text
from .library import (
    FUNCTION_TABLE,
    NativeLibrary,
    get_library,
    last_error,
    load_library,
    native_library_available,
    reset_library,
    set_library,
)
from .results import check_compile, check_scan
from .types import CompilerFlags, MetadataTypeCode, ResultCode

__all__ = [
    "decode_metadata",
    "decode_sized_text",
    "decode_text",
    "FUNCTION_TABLE",
    "NativeLibrary",
    "get_library",
    "last_error",
    "load_library",
    "native_library_available",
    "reset_library",
    "set_library",
    "check_compile",
    "check_scan",
    "CompilerFlags",
    "MetadataTypeCode",
    "ResultCode",
]
