"""
Rule compiler built on the YRX_COMPILER API.

A compiler accumulates sources and global definitions, then produces a
CompiledRuleSet (or its serialized bytes). Diagnostics are read back from the
native JSON reports.
"""

from __future__ import annotations

import ctypes
import json
from typing import Any, Optional

from yara_session.domain.errors import CompilationError
from yara_session.domain.value_objects import Diagnostic, GlobalKind, Ownership
from yara_session.infrastructure.native import check_compile, get_library, last_error
from yara_session.infrastructure.native.types import YRX_BUFFER, CompilerFlags, ResultCode
from yara_session.shared.logging import get_logger

from .globals import call_setter, classify
from .ruleset import CompiledRuleSet, read_buffer

logger = get_logger("engine.compiler")

_DEFINE_PREFIX = "yrx_compiler_define_global"


class RuleCompiler:
    """
    Wrapper around a native YRX_COMPILER.

    Responsibilities:
    - Accumulating sources, optionally per namespace
    - Defining globals before the build
    - Building rules, serialized or not
    - Exposing compiler errors and warnings as Diagnostic records
    """

    def __init__(self, flags: CompilerFlags = CompilerFlags.NONE, library: Any = None):
        """
        Create the native compiler.

        Args:
            flags: Native compiler flags
            library: Native function table; defaults to the process-wide library

        Raises:
            CompilationError: The library could not create a compiler
        """
        self._library = library if library is not None else get_library()
        self._flags = CompilerFlags(flags)
        self._sources = 0

        handle = ctypes.c_void_p()
        result = self._library.yrx_compiler_create(int(self._flags), ctypes.pointer(handle))
        check_compile(self._library, result, "Failed to create compiler")
        self._handle: Optional[int] = handle.value

    @property
    def handle(self) -> int:
        if self._handle is None:
            raise CompilationError("Compiler has been destroyed")
        return self._handle

    @property
    def destroyed(self) -> bool:
        return self._handle is None

    def add_source(self, source: str, origin: Optional[str] = None) -> None:
        """
        Add rule source to the compiler.

        Args:
            source: Rule source text
            origin: Name reported in diagnostics, typically a file path

        Raises:
            CompilationError: The source has syntax or semantic errors
        """
        encoded = source.encode("utf-8")
        if origin:
            result = self._library.yrx_compiler_add_source_with_origin(
                self.handle, encoded, origin.encode("utf-8")
            )
        else:
            result = self._library.yrx_compiler_add_source(self.handle, encoded)

        if result != ResultCode.SUCCESS:
            message = f"Failed to add source: {last_error(self._library)}"
            diagnostics = self._errors_after_failure()
            logger.warning(
                "compiler_source_rejected",
                origin=origin,
                result_code=result,
                errors=len(diagnostics),
            )
            raise CompilationError(message, result_code=result, diagnostics=diagnostics)

        self._sources += 1
        logger.debug("compiler_source_added", origin=origin, source=source)

    def new_namespace(self, namespace: str) -> None:
        """Place the sources added from now on in ``namespace``."""
        result = self._library.yrx_compiler_new_namespace(self.handle, namespace.encode("utf-8"))
        check_compile(self._library, result, f"Failed to create namespace {namespace}")

    def define_global_str(self, name: str, value: str) -> None:
        self._define(name, value, GlobalKind.TEXT)

    def define_global_bool(self, name: str, value: bool) -> None:
        self._define(name, value, GlobalKind.BOOL)

    def define_global_int(self, name: str, value: int) -> None:
        self._define(name, value, GlobalKind.INT)

    def define_global_float(self, name: str, value: float) -> None:
        self._define(name, value, GlobalKind.FLOAT)

    def define_global(self, name: str, value: Any) -> None:
        """
        Define a global, choosing the native type from the value.

        Raises:
            UnsupportedTypeError: The value is not str, bool, int or float
            CompilationError: The library rejected the definition
        """
        self._define(name, value, classify(name, value))

    def _define(self, name: str, value: Any, kind: GlobalKind) -> None:
        try:
            result = call_setter(self._library, _DEFINE_PREFIX, self.handle, name, value, kind)
        except OverflowError as exc:
            raise CompilationError(f"Failed to define global {kind.value} {name}: {exc}") from exc
        check_compile(self._library, result, f"Failed to define global {kind.value} {name}")

    def build(self) -> CompiledRuleSet:
        """
        Build the rules added so far.

        The compiler is empty afterwards; add more sources to build again.

        Returns:
            An OWNING rule set; release it (or hand it to an owning Scanner) when done

        Raises:
            CompilationError: Nothing was added or the native builder failed
        """
        if self._sources == 0:
            raise CompilationError("No rules added")

        rules = self._library.yrx_compiler_build(self.handle)
        if not rules:
            raise CompilationError(
                f"Failed to build rules: {last_error(self._library)}",
                diagnostics=self._errors_after_failure(),
            )
        logger.info("rules_built", sources=self._sources)
        # The native builder resets the compiler to its initial state.
        self._sources = 0
        return CompiledRuleSet(rules, library=self._library, ownership=Ownership.OWNING)

    def build_serialized(self) -> bytes:
        """
        Build the rules and return their native serialization.

        The intermediate rule set is released before returning.
        """
        rules = self.build()
        try:
            return rules.serialize()
        finally:
            rules.release()

    def _report(self, function_name: str) -> list[dict[str, Any]]:
        buffer = ctypes.POINTER(YRX_BUFFER)()
        function = getattr(self._library, function_name)
        result = function(self.handle, ctypes.pointer(buffer))
        check_compile(self._library, result, f"Failed to read {function_name}")

        raw = read_buffer(self._library, buffer)
        if not raw:
            return []
        try:
            parsed = json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise CompilationError(f"Invalid compiler report: {exc}") from exc
        return parsed if isinstance(parsed, list) else [parsed]

    def errors_json(self) -> list[dict[str, Any]]:
        """Compiler errors exactly as the native JSON report lists them."""
        return self._report("yrx_compiler_errors_json")

    def warnings_json(self) -> list[dict[str, Any]]:
        """Compiler warnings exactly as the native JSON report lists them."""
        return self._report("yrx_compiler_warnings_json")

    def errors(self) -> list[Diagnostic]:
        return [Diagnostic.from_native(entry, kind="error") for entry in self.errors_json()]

    def warnings(self) -> list[Diagnostic]:
        return [Diagnostic.from_native(entry, kind="warning") for entry in self.warnings_json()]

    def _errors_after_failure(self) -> list[Diagnostic]:
        # The report is auxiliary; failing to read it must not hide the original error.
        try:
            return self.errors()
        except CompilationError as exc:
            logger.debug("compiler_errors_unavailable", error=exc.message)
            return []

    def destroy(self) -> None:
        """Release the native compiler. Safe to call more than once."""
        handle, self._handle = self._handle, None
        if handle is not None:
            self._library.yrx_compiler_destroy(handle)

    def __enter__(self) -> "RuleCompiler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.destroy()
