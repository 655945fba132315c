"""Errors raised by the YARA-X session layer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from .value_objects import Diagnostic


class YaraError(Exception):
    """Base exception for all session layer errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize error.

        Args:
            message: Human readable message, including native error text when available
        """
        super().__init__(message)
        self.message = message


class LibraryNotFoundError(YaraError):
    """Raised when the yara_x_capi shared library cannot be loaded."""

    def __init__(self, message: str, candidates: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.candidates = list(candidates)


class CompilationError(YaraError):
    """Raised for rejected sources, bad global definitions and failed builds."""

    def __init__(
        self,
        message: str,
        result_code: int | None = None,
        diagnostics: Sequence["Diagnostic"] | None = None,
    ) -> None:
        """
        Initialize compilation error.

        Args:
            message: Error message carrying the native error text
            result_code: Native result code, when the failure came from a native call
            diagnostics: Structured compiler errors collected at failure time
        """
        super().__init__(message)
        self.result_code = result_code
        self.diagnostics = list(diagnostics or [])


class ScanError(YaraError):
    """Raised for failed scans and rejected scanner configuration."""

    def __init__(
        self,
        message: str,
        result_code: int | None = None,
        timeout: bool = False,
    ) -> None:
        super().__init__(message)
        self.result_code = result_code
        self.timeout = timeout


class NotCompiledError(YaraError):
    """Raised when a scanner is used before it holds compiled rules."""


class SessionClosedError(NotCompiledError):
    """Raised when a scanner or rule set is used after it was released."""


class UnsupportedTypeError(YaraError):
    """Raised when a global value has no matching native setter."""

    def __init__(self, name: str, value: Any, expected: str = "str, bool, int or float") -> None:
        # The value itself is left out of the message; globals may hold secrets.
        message = f"Unsupported type {type(value).__name__} for global {name!r}; expected {expected}"
        super().__init__(message)
        self.name = name
        self.value_type = type(value)
