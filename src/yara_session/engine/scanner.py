"""
Scan sessions over compiled YARA-X rules.

A Scanner moves through three states:

    EMPTY --add_rule()*/compile()--> READY --scan()*--> CLOSED
    from_rules()/from_serialized() ------> READY

Scanning, timeouts and globals are only available in READY. Nothing leaves
CLOSED. Scanners are not thread-safe; the rule set they scan with may be
shared by scanners on other threads.
"""

from __future__ import annotations

import ctypes
import uuid
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Union

from yara_session.config import get_config
from yara_session.domain.entities import MatchRecord, Rule, ScanResults
from yara_session.domain.errors import (
    CompilationError,
    NotCompiledError,
    ScanError,
    SessionClosedError,
    UnsupportedTypeError,
)
from yara_session.domain.value_objects import DEFAULT_NAMESPACE, GlobalKind
from yara_session.infrastructure.native import check_scan, get_library, last_error
from yara_session.infrastructure.native.types import RULE_CALLBACK, ResultCode
from yara_session.shared.logging import get_logger, scan_context

from .compiler import RuleCompiler
from .extractor import CallbackGuard, MatchExtractor
from .globals import call_setter, classify
from .inspector import iter_rules
from .ruleset import CompiledRuleSet, compile_source

logger = get_logger("engine.scanner")

_SET_PREFIX = "yrx_scanner_set_global"

ScanInput = Union[bytes, bytearray, memoryview, str, None]
MatchHandler = Callable[[MatchRecord], Any]


class SessionState(Enum):
    """Lifecycle of a scanner."""

    EMPTY = "empty"  # No rules bound yet
    READY = "ready"  # Bound to compiled rules; scans allowed
    CLOSED = "closed"  # Native resources released


def normalize_input(data: ScanInput) -> bytes:
    """
    Turn scan input into the bytes handed to the native scanner.

    None and empty input both become b"". Text is encoded as UTF-8.
    """
    if data is None:
        return b""
    if isinstance(data, bytes):
        return data
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"Cannot scan object of type {type(data).__name__}")


def timeout_seconds(milliseconds: int) -> int:
    """
    Convert a timeout in milliseconds to the whole seconds the native scanner takes.

    Partial seconds round up, so 1..999 ms becomes 1 s and no positive
    timeout turns into 0.
    """
    return -(-milliseconds // 1000)


class Scanner:
    """
    Scan session bound to one compiled rule set.

    Examples:
        with Scanner.open(sources=[rule]) as scanner:
            for record in scanner.scan(b"hello world"):
                print(record.qualified_name, record.total_matches)
    """

    def __init__(self, library: Any = None):
        """
        Create an empty scanner.

        Args:
            library: Native function table; defaults to the process-wide library
        """
        self._library_override = library
        self._sources: list[tuple[str, Optional[str]]] = []
        self._rules: Optional[CompiledRuleSet] = None
        self._handle: Optional[int] = None
        self._callback: Any = None
        self._timeout_ms: Optional[int] = None
        self._globals: dict[str, Any] = {}
        self._state = SessionState.EMPTY
        self.session_id = uuid.uuid4().hex[:12]

    # Construction ---------------------------------------------------------

    @classmethod
    def from_rules(
        cls,
        rules: CompiledRuleSet,
        owns_rules: bool = False,
    ) -> "Scanner":
        """
        Create a READY scanner over already compiled rules.

        Args:
            rules: Compiled rule set, possibly shared with other scanners
            owns_rules: Take over ownership, so close() destroys the rules.
                The caller's ``rules`` object becomes BORROWED.

        Returns:
            Scanner in READY state
        """
        scanner = cls(library=rules.library)
        scanner._bind(rules.borrow())
        # Ownership moves only once the native scanner exists; a failed bind
        # leaves the caller's rules owned and intact.
        if owns_rules:
            scanner._rules = rules.transfer()
        return scanner

    @classmethod
    def from_serialized(cls, data: bytes, library: Any = None) -> "Scanner":
        """
        Create a READY scanner from serialized rules.

        The deserialized rules have no other holder, so the scanner owns them.
        """
        scanner = cls(library=library)
        scanner._bind(CompiledRuleSet.deserialize(data, library=scanner.library))
        return scanner

    @classmethod
    @contextmanager
    def open(
        cls,
        rules: Optional[CompiledRuleSet] = None,
        serialized: Optional[bytes] = None,
        sources: Optional[Iterable[str]] = None,
        owns_rules: bool = False,
        library: Any = None,
    ) -> Iterator["Scanner"]:
        """
        Scoped scanner: closed on every exit from the ``with`` block.

        Exactly one of ``rules``, ``serialized`` or ``sources`` must be given.

        Raises:
            ValueError: Zero or several rule origins were given
        """
        given = [origin for origin in (rules, serialized, sources) if origin is not None]
        if len(given) != 1:
            raise ValueError("Provide exactly one of rules, serialized or sources")

        if rules is not None:
            scanner = cls.from_rules(rules, owns_rules=owns_rules)
        elif serialized is not None:
            scanner = cls.from_serialized(serialized, library=library)
        else:
            scanner = cls(library=library)
            try:
                for source in sources:
                    scanner.add_rule(source)
                scanner.compile()
            except BaseException:
                scanner.close()
                raise

        try:
            yield scanner
        finally:
            scanner.close()

    # State ------------------------------------------------------------------

    @property
    def library(self) -> Any:
        if self._library_override is None:
            self._library_override = get_library()
        return self._library_override

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is SessionState.CLOSED

    @property
    def rules(self) -> Optional[CompiledRuleSet]:
        return self._rules

    @property
    def timeout_ms(self) -> Optional[int]:
        return self._timeout_ms

    @property
    def globals(self) -> dict[str, Any]:
        """Globals set on this scanner so far."""
        return dict(self._globals)

    def _require_ready(self) -> int:
        if self._state is SessionState.CLOSED:
            raise SessionClosedError("Scanner has been closed")
        if self._state is SessionState.EMPTY or self._handle is None:
            raise NotCompiledError("Rules not compiled. Call compile() first.")
        return self._handle

    # Compilation ------------------------------------------------------------

    def add_rule(self, source: str, namespace: Optional[str] = None) -> None:
        """
        Queue rule source for compile().

        Args:
            source: Rule source text
            namespace: Namespace for these rules; ``default`` when omitted

        Raises:
            CompilationError: The scanner already holds compiled rules
        """
        if self._state is SessionState.CLOSED:
            raise SessionClosedError("Scanner has been closed")
        if self._state is SessionState.READY:
            raise CompilationError("Rules already compiled; create a new scanner to add rules")
        self._sources.append((source, namespace))

    def compile(self) -> None:
        """
        Compile the queued sources and bind the scanner to the result.

        Raises:
            CompilationError: No sources, rejected sources, or scanner creation failed
        """
        if self._state is SessionState.CLOSED:
            raise SessionClosedError("Scanner has been closed")
        if self._state is SessionState.READY:
            raise CompilationError("Rules already compiled")
        if not self._sources:
            raise CompilationError("No rules added")

        if any(namespace for _, namespace in self._sources):
            rules = self._compile_with_namespaces()
        else:
            joined = "\n".join(source for source, _ in self._sources)
            rules = compile_source(joined, library=self.library)
        self._bind(rules)

    def _compile_with_namespaces(self) -> CompiledRuleSet:
        with RuleCompiler(library=self.library) as compiler:
            for source, namespace in self._sources:
                compiler.new_namespace(namespace or DEFAULT_NAMESPACE)
                compiler.add_source(source)
            return compiler.build()

    def _bind(self, rules: CompiledRuleSet) -> None:
        handle = ctypes.c_void_p()
        result = self.library.yrx_scanner_create(rules.handle, ctypes.pointer(handle))
        if result != ResultCode.SUCCESS:
            message = f"Failed to create scanner: {last_error(self.library)}"
            rules.release()
            raise CompilationError(message, result_code=result)

        self._rules = rules
        self._handle = handle.value
        self._state = SessionState.READY
        logger.debug("scanner_ready", session_id=self.session_id, owns_rules=rules.owns_handle)

        default_timeout = get_config().default_timeout_ms
        if default_timeout is not None:
            try:
                self.set_timeout(default_timeout)
            except ScanError:
                self.close()
                raise

    # Scanning ---------------------------------------------------------------

    def scan(
        self,
        data: ScanInput = None,
        on_match: Optional[MatchHandler] = None,
    ) -> Optional[ScanResults]:
        """
        Scan ``data`` with the bound rules.

        Args:
            data: Buffer to scan; None is treated as an empty buffer
            on_match: Called with each MatchRecord as the engine reports it

        Returns:
            The matching rules in discovery order, or None when ``on_match`` is given

        Raises:
            NotCompiledError: The scanner is not READY
            ScanError: The scan failed or timed out (``error.timeout`` is True)
        """
        handle = self._require_ready()
        buffer = normalize_input(data)
        results = ScanResults()
        extractor = MatchExtractor(self.library)
        guard = CallbackGuard()

        @guard.wrap
        def on_matching_rule(rule: Optional[int], _user_data: Optional[int]) -> None:
            record = extractor.match_record(rule)
            if on_match is not None:
                on_match(record)
            else:
                results.append(record)

        # Kept on the session: the native scanner holds this pointer.
        self._callback = RULE_CALLBACK(on_matching_rule)

        with scan_context(session_id=self.session_id, size=len(buffer)):
            result = self.library.yrx_scanner_on_matching_rule(handle, self._callback, None)
            check_scan(self.library, result, "Failed to set callback")

            result = self.library.yrx_scanner_scan(handle, buffer, len(buffer))
            guard.raise_if_failed()
            if result == ResultCode.SCAN_TIMEOUT:
                logger.warning("scan_timeout", timeout_ms=self._timeout_ms)
            check_scan(self.library, result, "Scan failed")

            logger.info("scan_completed", matches=len(results), streamed=on_match is not None)

        if on_match is not None:
            return None
        return results

    def each_rule(self) -> Iterator[Rule]:
        """
        Iterate the rules this scanner scans with.

        Raises:
            NotCompiledError: The scanner is not READY
        """
        self._require_ready()
        return iter_rules(self._rules)

    # Configuration ----------------------------------------------------------

    def set_timeout(self, milliseconds: int) -> None:
        """
        Abort later scans that run longer than ``milliseconds``.

        The native scanner counts whole seconds; the value is rounded up.

        Raises:
            ScanError: Negative value, or the library rejected it
        """
        handle = self._require_ready()
        if isinstance(milliseconds, bool) or not isinstance(milliseconds, int) or milliseconds < 0:
            raise ScanError(f"Invalid timeout {milliseconds!r}; expected a non-negative integer")

        result = self.library.yrx_scanner_set_timeout(handle, timeout_seconds(milliseconds))
        check_scan(self.library, result, "Failed to set timeout")
        self._timeout_ms = milliseconds

    def set_global_str(self, name: str, value: str) -> None:
        self._set_global(name, value, GlobalKind.TEXT)

    def set_global_bool(self, name: str, value: bool) -> None:
        self._set_global(name, value, GlobalKind.BOOL)

    def set_global_int(self, name: str, value: int) -> None:
        self._set_global(name, value, GlobalKind.INT)

    def set_global_float(self, name: str, value: float) -> None:
        self._set_global(name, value, GlobalKind.FLOAT)

    def set_global(self, name: str, value: Any) -> None:
        """
        Override a global, choosing the setter from the value's type.

        Raises:
            UnsupportedTypeError: The value is not str, bool, int or float
            ScanError: The global was not defined at compile time, or has another type
        """
        self._set_global(name, value, classify(name, value))

    def set_globals(self, values: Mapping[str, Any], strict: Optional[bool] = None) -> None:
        """
        Override several globals.

        Args:
            values: Global name to value
            strict: Raise on the first unsupported or rejected value (default from
                configuration, normally True). When False, such entries are skipped
                and the remaining ones are still applied.
        """
        self._require_ready()
        if strict is None:
            strict = get_config().strict_globals

        for name, value in values.items():
            try:
                self.set_global(name, value)
            except (UnsupportedTypeError, ScanError) as exc:
                if strict:
                    raise
                logger.warning("global_skipped", session_id=self.session_id, name=name, error=exc.message)

    def _set_global(self, name: str, value: Any, kind: GlobalKind) -> None:
        handle = self._require_ready()
        try:
            result = call_setter(self.library, _SET_PREFIX, handle, name, value, kind)
        except OverflowError as exc:
            raise ScanError(f"Failed to set global {kind.value} {name}: {exc}") from exc
        check_scan(self.library, result, f"Failed to set global {kind.value} {name}")
        self._globals[name] = value

    # Release ----------------------------------------------------------------

    def close(self) -> None:
        """
        Release the native scanner, and the rules if this scanner owns them.

        Safe to call more than once.
        """
        if self._state is SessionState.CLOSED:
            return

        handle, self._handle = self._handle, None
        if handle is not None:
            self.library.yrx_scanner_destroy(handle)
        if self._rules is not None:
            self._rules.release()

        self._callback = None
        self._state = SessionState.CLOSED
        logger.debug("scanner_closed", session_id=self.session_id)

    def __enter__(self) -> "Scanner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Scanner(session_id={self.session_id!r}, state={self._state.value})"


def scan_once(source: str, data: ScanInput, library: Any = None) -> ScanResults:
    """Compile ``source``, scan ``data`` once and release everything."""
    with Scanner.open(sources=[source], library=library) as scanner:
        return scanner.scan(data)
