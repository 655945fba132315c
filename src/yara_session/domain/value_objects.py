"""Value objects for scan results and compiler output.

This module contains immutable value objects with validation and invariants.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict

from .errors import UnsupportedTypeError

DEFAULT_NAMESPACE = "default"


class Ownership(Enum):
    """Who releases a shared native handle."""

    OWNING = "owning"  # This holder destroys the handle
    BORROWED = "borrowed"  # Another holder destroys it


class MetadataType(Enum):
    """Types a rule metadata value can have."""

    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TEXT = "text"
    BYTES = "bytes"


MetadataPayload = Union[int, float, bool, str, bytes]


@dataclass(frozen=True)
class TaggedValue:
    """Decoded metadata value together with its type discriminant."""

    type: MetadataType
    value: MetadataPayload

    _python_types: ClassVar[dict[MetadataType, type]] = {
        MetadataType.INTEGER: int,
        MetadataType.FLOAT: float,
        MetadataType.BOOLEAN: bool,
        MetadataType.TEXT: str,
        MetadataType.BYTES: bytes,
    }

    def __post_init__(self) -> None:
        expected = self._python_types[self.type]
        # bool is an int subclass; keep INTEGER and BOOLEAN strictly apart.
        if type(self.value) is not expected:
            raise ValueError(
                f"{self.type.value} metadata requires {expected.__name__}, "
                f"got {type(self.value).__name__}"
            )

    @classmethod
    def integer(cls, value: int) -> "TaggedValue":
        return cls(MetadataType.INTEGER, value)

    @classmethod
    def float_(cls, value: float) -> "TaggedValue":
        return cls(MetadataType.FLOAT, value)

    @classmethod
    def boolean(cls, value: bool) -> "TaggedValue":
        return cls(MetadataType.BOOLEAN, value)

    @classmethod
    def text(cls, value: str) -> "TaggedValue":
        return cls(MetadataType.TEXT, value)

    @classmethod
    def bytes_(cls, value: bytes) -> "TaggedValue":
        return cls(MetadataType.BYTES, value)


@dataclass(frozen=True)
class PatternMatch:
    """One occurrence of a named pattern within scanned data."""

    offset: int
    length: int

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError("Pattern match offset must be non-negative")
        if self.length <= 0:
            raise ValueError("Pattern match length must be positive")

    @property
    def end_offset(self) -> int:
        """Offset of the first byte after the match (exclusive)."""
        return self.offset + self.length

    def matched_data(self, data: bytes | bytearray | memoryview | str | None) -> bytes:
        """
        Return the bytes covered by this match.

        Args:
            data: The buffer that was scanned; text is encoded as UTF-8

        Returns:
            The matched bytes, or b"" when the match lies outside ``data``
        """
        if data is None:
            return b""
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self.offset >= len(data) or self.end_offset > len(data):
            return b""
        return bytes(data[self.offset:self.end_offset])

    def overlaps(self, other: "PatternMatch") -> bool:
        """Check whether both matches cover at least one common byte."""
        return self.offset < other.end_offset and self.end_offset > other.offset

    def __str__(self) -> str:
        return f"PatternMatch(offset: {self.offset}, length: {self.length})"


class GlobalKind(Enum):
    """Native global variable types, one native setter each."""

    TEXT = "str"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"

    @classmethod
    def of(cls, name: str, value: Any) -> "GlobalKind":
        """
        Classify a Python value as a global variable type.

        Raises:
            UnsupportedTypeError: The value has no native setter
        """
        # bool before int: True is an int too.
        if isinstance(value, bool):
            return cls.BOOL
        if isinstance(value, int):
            return cls.INT
        if isinstance(value, float):
            return cls.FLOAT
        if isinstance(value, str):
            return cls.TEXT
        raise UnsupportedTypeError(name, value)


class Diagnostic(BaseModel):
    """Compiler error or warning, as reported by the native JSON output."""

    model_config = ConfigDict(frozen=True)

    message: str
    kind: str = "error"
    code: str | None = None
    category: str | None = None
    line: int | None = None
    column: int | None = None
    origin: str | None = None
    text: str | None = None

    @classmethod
    def from_native(cls, entry: dict[str, Any], kind: str = "error") -> "Diagnostic":
        """
        Build a diagnostic from one entry of the compiler's JSON report.

        The location comes from the first label when the entry has labels and
        from top-level keys otherwise.
        """
        labels = entry.get("labels") or []
        location = labels[0] if labels and isinstance(labels[0], dict) else entry

        message = entry.get("title") or entry.get("message") or entry.get("text") or ""
        return cls(
            message=message,
            kind=kind,
            code=entry.get("code"),
            category=entry.get("type"),
            line=location.get("line"),
            column=location.get("column"),
            origin=location.get("code_origin") or location.get("origin"),
            text=entry.get("text"),
        )

    def __str__(self) -> str:
        where = ""
        if self.line is not None:
            where = f"line {self.line}"
            if self.column is not None:
                where += f", column {self.column}"
            if self.origin:
                where = f"{self.origin}: {where}"
            where = f" ({where})"
        code = f"[{self.code}] " if self.code else ""
        return f"{self.kind}: {code}{self.message}{where}"
