"""Conversion of native result codes into the package's exceptions."""

from typing import Any

from yara_session.domain.errors import CompilationError, ScanError

from .library import last_error
from .types import ResultCode


def native_message(library: Any, context: str) -> str:
    """Build '<context>: <last error>' for a failed native call."""
    return f"{context}: {last_error(library)}"


def check_compile(library: Any, code: int, context: str, diagnostics=None) -> None:
    """
    Raise CompilationError unless ``code`` is SUCCESS.

    Args:
        library: Native function table the call was made on
        code: Result code returned by the call
        context: Short description of the failed operation
        diagnostics: Diagnostics to attach to the error, if already known
    """
    if code == ResultCode.SUCCESS:
        return
    raise CompilationError(
        native_message(library, context),
        result_code=code,
        diagnostics=diagnostics,
    )


def check_scan(library: Any, code: int, context: str) -> None:
    """
    Raise ScanError unless ``code`` is SUCCESS.

    SCAN_TIMEOUT produces an error flagged with ``timeout=True`` whose message
    always mentions the timeout, whatever the native text says.
    """
    if code == ResultCode.SUCCESS:
        return

    message = native_message(library, context)
    timeout = code == ResultCode.SCAN_TIMEOUT
    if timeout and "timeout" not in message.lower():
        message = f"{message} (timeout)"
    raise ScanError(message, result_code=code, timeout=timeout)
