"""
Extraction of rule details and pattern matches from native rule handles.

Each iteration API of the library takes a C callback. The callbacks defined
here only append decoded values to a list that lives for the duration of the
native call. Exceptions cannot cross the C boundary, so every callback runs
under a CallbackGuard that records the first failure and re-raises it once the
native call has returned.
"""

from __future__ import annotations

import ctypes
from typing import Any, Callable, Optional, TypeVar

from yara_session.domain.entities import MatchRecord, Rule
from yara_session.domain.errors import ScanError
from yara_session.domain.value_objects import DEFAULT_NAMESPACE, PatternMatch, TaggedValue
from yara_session.infrastructure.native import check_scan, decode_metadata, decode_sized_text
from yara_session.infrastructure.native.types import (
    MATCH_CALLBACK,
    METADATA_CALLBACK,
    PATTERN_CALLBACK,
    TAG_CALLBACK,
)
from yara_session.shared.logging import get_logger

logger = get_logger("engine.extractor")

F = TypeVar("F", bound=Callable[..., None])


class CallbackGuard:
    """Carries exceptions raised inside C callbacks back to the caller."""

    def __init__(self) -> None:
        self.error: Optional[BaseException] = None

    def wrap(self, func: F) -> F:
        """Wrap ``func`` so it records its first exception instead of raising."""
        def guarded(*args: Any) -> None:
            if self.error is not None:
                return
            try:
                func(*args)
            except BaseException as exc:
                self.error = exc

        return guarded  # type: ignore[return-value]

    def raise_if_failed(self) -> None:
        if self.error is not None:
            error, self.error = self.error, None
            raise error


class MatchExtractor:
    """Reads identifiers, metadata, tags and pattern matches of native rules."""

    def __init__(self, library: Any):
        self._library = library

    def _read_string(self, function_name: str, handle: int, what: str) -> str:
        pointer = ctypes.c_void_p()
        length = ctypes.c_size_t()
        function = getattr(self._library, function_name)
        result = function(handle, ctypes.pointer(pointer), ctypes.pointer(length))
        check_scan(self._library, result, f"Failed to read {what}")
        return decode_sized_text(pointer.value, length.value)

    def identifier(self, rule: int) -> str:
        return self._read_string("yrx_rule_identifier", rule, "rule identifier")

    def namespace(self, rule: int) -> str:
        """Namespace of the rule; an empty native namespace reads as ``default``."""
        namespace = self._read_string("yrx_rule_namespace", rule, "rule namespace")
        return namespace or DEFAULT_NAMESPACE

    def pattern_identifier(self, pattern: int) -> str:
        return self._read_string("yrx_pattern_identifier", pattern, "pattern identifier")

    def metadata(self, rule: int) -> dict[str, TaggedValue]:
        """Decoded metadata of the rule; records of unknown type are skipped."""
        metadata: dict[str, TaggedValue] = {}
        guard = CallbackGuard()

        @guard.wrap
        def on_metadata(address: Optional[int], _user_data: Optional[int]) -> None:
            decoded = decode_metadata(address)
            if decoded is not None:
                key, value = decoded
                metadata[key] = value

        callback = METADATA_CALLBACK(on_metadata)
        result = self._library.yrx_rule_iter_metadata(rule, callback, None)
        guard.raise_if_failed()
        check_scan(self._library, result, "Failed to iterate rule metadata")
        return metadata

    def tags(self, rule: int) -> tuple[str, ...]:
        tags: list[str] = []
        guard = CallbackGuard()

        @guard.wrap
        def on_tag(tag: Optional[bytes], _user_data: Optional[int]) -> None:
            if tag:
                tags.append(tag.decode("utf-8", errors="replace"))

        callback = TAG_CALLBACK(on_tag)
        result = self._library.yrx_rule_iter_tags(rule, callback, None)
        guard.raise_if_failed()
        check_scan(self._library, result, "Failed to iterate rule tags")
        return tuple(tags)

    def pattern_matches(self, rule: int) -> dict[str, list[PatternMatch]]:
        """
        Occurrences of every pattern of a matching rule.

        Patterns without occurrences are listed with an empty list. Matches
        keep the order in which the engine reports them.
        """
        patterns: dict[str, list[PatternMatch]] = {}
        guard = CallbackGuard()

        @guard.wrap
        def on_pattern(pattern: Optional[int], _user_data: Optional[int]) -> None:
            if not pattern:
                return
            matches = patterns.setdefault(self.pattern_identifier(pattern), [])

            @guard.wrap
            def on_match(match: Any, _match_user_data: Optional[int]) -> None:
                if not match:
                    return
                occurrence = match.contents
                if occurrence.length == 0:
                    logger.debug("empty_match_skipped", offset=occurrence.offset)
                    return
                matches.append(PatternMatch(int(occurrence.offset), int(occurrence.length)))

            match_callback = MATCH_CALLBACK(on_match)
            match_result = self._library.yrx_pattern_iter_matches(pattern, match_callback, None)
            check_scan(self._library, match_result, "Failed to iterate pattern matches")

        callback = PATTERN_CALLBACK(on_pattern)
        result = self._library.yrx_rule_iter_patterns(rule, callback, None)
        guard.raise_if_failed()
        check_scan(self._library, result, "Failed to iterate rule patterns")
        return patterns

    def match_record(self, rule: int) -> MatchRecord:
        """Everything known about a rule that just matched."""
        if not rule:
            raise ScanError("Matching rule callback received a NULL rule")
        return MatchRecord(
            identifier=self.identifier(rule),
            namespace=self.namespace(rule),
            tags=self.tags(rule),
            metadata=self.metadata(rule),
            pattern_matches=self.pattern_matches(rule),
        )

    def rule(self, rule: int) -> Rule:
        """Static description of a rule, without pattern matches."""
        return Rule(
            identifier=self.identifier(rule),
            namespace=self.namespace(rule),
            metadata=self.metadata(rule),
            tags=self.tags(rule),
        )
