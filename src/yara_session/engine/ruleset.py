"""
Compiled rule set handle with explicit ownership.

A YRX_RULES object may be shared by many scanners, but exactly one holder
destroys it. Every CompiledRuleSet is either OWNING (it destroys the handle on
release) or BORROWED (release only forgets the handle). Ownership moves with
``transfer()``, which demotes the previous holder to BORROWED.
"""

from __future__ import annotations

import ctypes
import threading
from typing import Any, Iterator, Optional

from yara_session.domain.entities import Rule
from yara_session.domain.errors import CompilationError, SessionClosedError
from yara_session.domain.value_objects import Ownership
from yara_session.infrastructure.native import check_compile, check_scan, get_library
from yara_session.infrastructure.native.types import RULE_CALLBACK, YRX_BUFFER
from yara_session.shared.logging import get_logger

logger = get_logger("engine.ruleset")


def read_buffer(library: Any, buffer: "ctypes._Pointer[YRX_BUFFER]") -> bytes:
    """Copy a native YRX_BUFFER into Python bytes and release it."""
    try:
        contents = buffer.contents
        if not contents.length:
            return b""
        return ctypes.string_at(contents.data, contents.length)
    finally:
        library.yrx_buffer_destroy(buffer)


class CompiledRuleSet:
    """Opaque, immutable YRX_RULES handle."""

    def __init__(
        self,
        handle: int,
        library: Any = None,
        ownership: Ownership = Ownership.OWNING,
    ):
        """
        Wrap a native rules handle.

        Args:
            handle: Address of the YRX_RULES object
            library: Native function table; defaults to the process-wide library
            ownership: Whether this holder destroys the handle
        """
        if not handle:
            raise CompilationError("Cannot wrap a NULL rules handle")
        self._handle: Optional[int] = handle
        self._library = library if library is not None else get_library()
        self._ownership = ownership
        self._lock = threading.Lock()

    @classmethod
    def deserialize(cls, data: bytes, library: Any = None) -> "CompiledRuleSet":
        """
        Rebuild rules from bytes produced by ``serialize`` (or build_serialized).

        Args:
            data: Opaque serialized rules, passed to the library unchanged
            library: Native function table

        Returns:
            An OWNING rule set

        Raises:
            CompilationError: The library rejected the blob
        """
        library = library if library is not None else get_library()
        blob = bytes(data or b"")
        handle = ctypes.c_void_p()
        result = library.yrx_rules_deserialize(blob, len(blob), ctypes.pointer(handle))
        check_compile(library, result, "Failed to deserialize rules")
        logger.debug("ruleset_deserialized", size=len(blob))
        return cls(handle.value, library=library, ownership=Ownership.OWNING)

    @property
    def handle(self) -> int:
        """Native address; raises once the rule set was released."""
        if self._handle is None:
            raise SessionClosedError("Rule set has been released")
        return self._handle

    @property
    def library(self) -> Any:
        return self._library

    @property
    def ownership(self) -> Ownership:
        return self._ownership

    @property
    def owns_handle(self) -> bool:
        return self._ownership is Ownership.OWNING

    @property
    def released(self) -> bool:
        return self._handle is None

    def borrow(self) -> "CompiledRuleSet":
        """Return a non-owning view of the same native rules."""
        return CompiledRuleSet(self.handle, library=self._library, ownership=Ownership.BORROWED)

    def transfer(self) -> "CompiledRuleSet":
        """
        Move ownership to a new holder.

        The returned object owns the handle and this one becomes BORROWED,
        so the handle is still destroyed exactly once.
        """
        with self._lock:
            handle = self.handle
            ownership = self._ownership
            self._ownership = Ownership.BORROWED
        return CompiledRuleSet(handle, library=self._library, ownership=ownership)

    def serialize(self) -> bytes:
        """
        Serialize the rules with the native serializer.

        Returns:
            Opaque bytes; store and transmit them unchanged
        """
        buffer = ctypes.POINTER(YRX_BUFFER)()
        result = self._library.yrx_rules_serialize(self.handle, ctypes.pointer(buffer))
        check_compile(self._library, result, "Failed to serialize rules")
        data = read_buffer(self._library, buffer)
        logger.debug("ruleset_serialized", size=len(data))
        return data

    def __iter__(self) -> Iterator[Rule]:
        from .inspector import iter_rules

        return iter_rules(self)

    @property
    def rule_count(self) -> int:
        """Number of rules, counted without decoding their details."""
        count = 0

        def on_rule(rule: Optional[int], _user_data: Optional[int]) -> None:
            nonlocal count
            if rule:
                count += 1

        callback = RULE_CALLBACK(on_rule)
        result = self._library.yrx_rules_iter(self.handle, callback, None)
        check_scan(self._library, result, "Failed to iterate rules")
        return count

    def release(self) -> None:
        """Destroy the native rules if owning; forget the handle either way. Idempotent."""
        with self._lock:
            handle, self._handle = self._handle, None
        if handle is None:
            return
        if self._ownership is Ownership.OWNING:
            self._library.yrx_rules_destroy(handle)
            logger.debug("ruleset_destroyed")

    def __enter__(self) -> "CompiledRuleSet":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._handle is None else hex(self._handle)
        return f"CompiledRuleSet({state}, {self._ownership.value})"


def compile_source(source: str, library: Any = None) -> CompiledRuleSet:
    """
    Compile rule source in one step with yrx_compile.

    Args:
        source: Complete rule source
        library: Native function table

    Returns:
        An OWNING rule set

    Raises:
        CompilationError: The source was rejected
    """
    library = library if library is not None else get_library()
    if not source or not source.strip():
        raise CompilationError("No rules added")

    handle = ctypes.c_void_p()
    result = library.yrx_compile(source.encode("utf-8"), ctypes.pointer(handle))
    check_compile(library, result, "Failed to compile rules")
    return CompiledRuleSet(handle.value, library=library, ownership=Ownership.OWNING)
