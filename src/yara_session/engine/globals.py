"""
Dispatch of Python values to the typed native global setters.

Compiler definitions (yrx_compiler_define_global_*) and scanner overrides
(yrx_scanner_set_global_*) share the same four native types. A value is
classified into a GlobalKind first; only then is the matching setter called
with the value converted to its C type.
"""

from typing import Any, Callable

from yara_session.domain.errors import UnsupportedTypeError
from yara_session.domain.value_objects import GlobalKind

_EXPECTED_TYPES = {
    GlobalKind.TEXT: "str",
    GlobalKind.BOOL: "bool",
    GlobalKind.INT: "int",
    GlobalKind.FLOAT: "float or int",
}

_CONVERTERS: dict[GlobalKind, Callable[[Any], Any]] = {
    GlobalKind.TEXT: lambda value: str(value).encode("utf-8"),
    GlobalKind.BOOL: bool,
    GlobalKind.INT: int,
    GlobalKind.FLOAT: float,
}

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def native_setter_name(prefix: str, kind: GlobalKind) -> str:
    """Name of the native setter, e.g. ``yrx_scanner_set_global_int``."""
    return f"{prefix}_{kind.value}"


def require_kind(name: str, value: Any, kind: GlobalKind) -> None:
    """
    Check that ``value`` belongs to ``kind`` before it reaches a typed setter.

    Only ints are widened (to FLOAT); bools never pass as numbers and text is
    never parsed.

    Raises:
        UnsupportedTypeError: The value does not belong to ``kind``
    """
    actual = GlobalKind.of(name, value) if isinstance(value, (str, bool, int, float)) else None
    if actual is kind or (kind is GlobalKind.FLOAT and actual is GlobalKind.INT):
        return
    raise UnsupportedTypeError(name, value, expected=_EXPECTED_TYPES[kind])


def to_native(kind: GlobalKind, value: Any) -> Any:
    """
    Convert a classified value to what the native setter expects.

    Raises:
        OverflowError: An integer does not fit in 64 bits
    """
    if kind is GlobalKind.INT and not INT64_MIN <= value <= INT64_MAX:
        raise OverflowError(f"Integer global {value} does not fit in 64 bits")
    return _CONVERTERS[kind](value)


def call_setter(library: Any, prefix: str, handle: int, name: str, value: Any, kind: GlobalKind) -> int:
    """
    Call the native setter for ``kind`` and return its result code.

    Args:
        library: Native function table
        prefix: ``yrx_compiler_define_global`` or ``yrx_scanner_set_global``
        handle: Compiler or scanner handle
        name: Global identifier
        value: Python value; must belong to ``kind``
        kind: Native type to use

    Raises:
        UnsupportedTypeError: The value does not belong to ``kind``
        OverflowError: An integer does not fit in 64 bits
    """
    require_kind(name, value, kind)
    setter = getattr(library, native_setter_name(prefix, kind))
    return setter(handle, name.encode("utf-8"), to_native(kind, value))


def classify(name: str, value: Any) -> GlobalKind:
    """Classify a value; raises UnsupportedTypeError for unsupported types."""
    return GlobalKind.of(name, value)
