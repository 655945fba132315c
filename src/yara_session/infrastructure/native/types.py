"""
ctypes declarations mirroring the yara_x_capi header.

Only the structures and callback signatures the session layer consumes are
declared here; the remaining YARA-X types are handled as opaque pointers.
"""

import ctypes
from enum import IntEnum, IntFlag


class ResultCode(IntEnum):
    """YRX_RESULT values returned by every fallible native call."""

    SUCCESS = 0
    SYNTAX_ERROR = 1
    VARIABLE_ERROR = 2
    SCAN_ERROR = 3
    SCAN_TIMEOUT = 4
    INVALID_ARGUMENT = 5
    INVALID_UTF8 = 6
    SERIALIZATION_ERROR = 7
    NO_METADATA = 8

    @classmethod
    def describe(cls, code: int) -> str:
        """Return the symbolic name of a result code, tolerating unknown values."""
        try:
            return cls(code).name
        except ValueError:
            return f"UNKNOWN({code})"


class MetadataTypeCode(IntEnum):
    """YRX_METADATA_TYPE discriminants."""

    I64 = 0
    F64 = 1
    BOOLEAN = 2
    STRING = 3
    BYTES = 4


class CompilerFlags(IntFlag):
    """Flags accepted by yrx_compiler_create."""

    NONE = 0
    COLORIZE_ERRORS = 1
    RELAXED_RE_SYNTAX = 2
    ERROR_ON_SLOW_PATTERN = 4
    ERROR_ON_SLOW_LOOP = 8
    ENABLE_CONDITION_OPTIMIZATION = 16
    DISABLE_INCLUDES = 32


class YRX_BUFFER(ctypes.Structure):
    """Heap buffer owned by the native library; released with yrx_buffer_destroy."""

    _fields_ = [
        ("data", ctypes.POINTER(ctypes.c_uint8)),
        ("length", ctypes.c_size_t),
    ]


class YRX_MATCH(ctypes.Structure):
    """One occurrence of a pattern inside the scanned data."""

    _fields_ = [
        ("offset", ctypes.c_size_t),
        ("length", ctypes.c_size_t),
    ]


class YRX_METADATA_BYTES(ctypes.Structure):
    _fields_ = [
        ("length", ctypes.c_size_t),
        ("data", ctypes.POINTER(ctypes.c_uint8)),
    ]


class YRX_METADATA_VALUE(ctypes.Union):
    _fields_ = [
        ("i64", ctypes.c_int64),
        ("f64", ctypes.c_double),
        ("boolean", ctypes.c_bool),
        ("string", ctypes.c_void_p),
        ("bytes", YRX_METADATA_BYTES),
    ]


class YRX_METADATA(ctypes.Structure):
    """
    Metadata entry handed to the metadata callback.

    Layout on 64-bit targets: identifier pointer at offset 0, discriminant at
    offset 8, value union at offset 16.
    """

    _fields_ = [
        ("identifier", ctypes.c_void_p),
        ("value_type", ctypes.c_int),
        ("value", YRX_METADATA_VALUE),
    ]


# Opaque handles are passed around as plain addresses.
RulesHandle = ctypes.c_void_p
ScannerHandle = ctypes.c_void_p
CompilerHandle = ctypes.c_void_p

# void (*)(const YRX_RULE *rule, void *user_data)
RULE_CALLBACK = ctypes.CFUNCTYPE(None, ctypes.c_void_p, ctypes.c_void_p)

# void (*)(const YRX_METADATA *metadata, void *user_data)
METADATA_CALLBACK = ctypes.CFUNCTYPE(None, ctypes.c_void_p, ctypes.c_void_p)

# void (*)(const YRX_PATTERN *pattern, void *user_data)
PATTERN_CALLBACK = ctypes.CFUNCTYPE(None, ctypes.c_void_p, ctypes.c_void_p)

# void (*)(const YRX_MATCH *match, void *user_data)
MATCH_CALLBACK = ctypes.CFUNCTYPE(None, ctypes.POINTER(YRX_MATCH), ctypes.c_void_p)

# void (*)(const char *tag, void *user_data)
TAG_CALLBACK = ctypes.CFUNCTYPE(None, ctypes.c_char_p, ctypes.c_void_p)
